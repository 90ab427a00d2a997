from __future__ import annotations

import datetime as dt
import os
from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from fbar.errors import ConfigError
from fbar.normalize import normalize_currency


CONFIG_ENV_VAR = "FBAR_CONFIG"


def _decimal_from_yaml(v):
    # YAML floats would otherwise carry binary noise into Decimal (1.1 -> 1.100000000000000088...).
    if isinstance(v, float):
        return Decimal(str(v))
    return v


def _none_if_blank(v):
    if v is None:
        return None
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


class Provider(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    handle: str
    address: str = ""


class AliasRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_id: str
    institution: Optional[str] = None

    @field_validator("raw_id", mode="before")
    @classmethod
    def _raw_id(cls, v):
        return str(v).strip() if v is not None else v


class AccountDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    canonical_id: str = Field(alias="handle")
    display_name: str = ""
    provider_handle: str = ""
    provider: Optional[Provider] = None
    native_currency: str = Field(alias="currency_code")
    identifier1: str = ""
    identifier1_name: str = ""
    identifier2: Optional[str] = None
    identifier2_name: Optional[str] = None
    joint_holder_names: list[str] = Field(default_factory=list)
    ownership_fraction: Decimal = Decimal("1")
    threshold_participant: bool = True
    opening_date: Optional[dt.date] = None
    closing_date: Optional[dt.date] = None
    aliases: list[AliasRule] = Field(default_factory=list)

    @field_validator("canonical_id")
    @classmethod
    def _canonical_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("account handle must not be blank")
        return v

    @field_validator("native_currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        code = normalize_currency(v)
        if code is None:
            raise ValueError("currency_code is required")
        return code

    @field_validator("identifier1", "identifier2", mode="before")
    @classmethod
    def _identifier_str(cls, v):
        # Account numbers are often written unquoted in YAML and load as ints.
        v = _none_if_blank(v)
        return str(v).strip() if v is not None else v

    @field_validator("ownership_fraction", mode="before")
    @classmethod
    def _fraction_from_yaml(cls, v):
        return _decimal_from_yaml(v)

    @field_validator("ownership_fraction")
    @classmethod
    def _fraction_range(cls, v: Decimal) -> Decimal:
        if not (Decimal("0") < v <= Decimal("1")):
            raise ValueError(f"ownership_fraction must be in (0, 1], got {v}")
        return v

    @field_validator("closing_date", mode="before")
    @classmethod
    def _closing_blank(cls, v):
        return _none_if_blank(v)

    @field_validator("aliases", mode="before")
    @classmethod
    def _aliases(cls, v):
        out = []
        for a in v or []:
            if isinstance(a, (str, int)):
                out.append({"raw_id": str(a)})
            else:
                out.append(a)
        return out

    @model_validator(mode="after")
    def _window(self) -> "AccountDefinition":
        if self.opening_date and self.closing_date and self.closing_date < self.opening_date:
            raise ValueError(f"account {self.canonical_id}: closing_date precedes opening_date")
        return self

    @property
    def is_joint(self) -> bool:
        return bool(self.joint_holder_names)

    def open_on(self, date: dt.date) -> bool:
        if self.opening_date and date < self.opening_date:
            return False
        if self.closing_date and date > self.closing_date:
            return False
        return True

    def open_during(self, year: int) -> bool:
        if self.opening_date and self.opening_date > dt.date(year, 12, 31):
            return False
        if self.closing_date and self.closing_date < dt.date(year, 1, 1):
            return False
        return True

    def label(self) -> str:
        if self.display_name:
            return self.display_name
        provider = self.provider.name if self.provider else self.provider_handle
        parts = [p for p in (provider, self.identifier1) if p]
        return " ".join(parts) or self.canonical_id


class ExchangeRateEntry(BaseModel):
    currency_code: str
    rate: Decimal

    @field_validator("currency_code")
    @classmethod
    def _currency(cls, v: str) -> str:
        code = normalize_currency(v)
        if code is None:
            raise ValueError("currency_code is required")
        return code

    @field_validator("rate", mode="before")
    @classmethod
    def _rate_from_yaml(cls, v):
        return _decimal_from_yaml(v)

    @field_validator("rate")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Exchange rate must be greater than 0")
        return v


class AnnualFact(BaseModel):
    year: int
    exchange_rates: list[ExchangeRateEntry] = Field(default_factory=list)


class Facts(BaseModel):
    years: list[AnnualFact] = Field(default_factory=list)


class ReportSettings(BaseModel):
    reporting_currency: str = "USD"
    reporting_threshold: Decimal = Decimal("10000")
    identity_fallback: bool = True
    skip_invalid_records: bool = False
    # multiply: reporting units per source unit; divide: source units per reporting unit
    rate_convention: Literal["multiply", "divide"] = "multiply"

    @field_validator("reporting_currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        code = normalize_currency(v)
        if code is None:
            raise ValueError("reporting_currency is required")
        return code

    @field_validator("reporting_threshold", mode="before")
    @classmethod
    def _threshold_from_yaml(cls, v):
        return _decimal_from_yaml(v)


class FbarConfig(BaseModel):
    providers: list[Provider] = Field(default_factory=list)
    accounts: list[AccountDefinition] = Field(default_factory=list)
    fact_extensions: Optional[Facts] = None
    settings: ReportSettings = Field(default_factory=ReportSettings)

    @model_validator(mode="after")
    def _link_providers(self) -> "FbarConfig":
        by_handle = {p.handle: p for p in self.providers}
        linked: list[AccountDefinition] = []
        for a in self.accounts:
            if not a.provider_handle:
                linked.append(a)
                continue
            provider = by_handle.get(a.provider_handle)
            if provider is None:
                raise ValueError(f"account {a.canonical_id} references unknown provider {a.provider_handle}")
            linked.append(a.model_copy(update={"provider": provider}))
        self.accounts = linked
        return self


def candidate_paths(statements_dir: Optional[Path] = None) -> list[Path]:
    paths: list[Path] = []
    env = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env:
        paths.append(Path(env))
    if statements_dir is not None:
        paths.append(statements_dir / "data.yml")
    paths.append(Path("fbar.yaml"))
    home = Path(os.path.expanduser("~"))
    paths.append(home / ".fbar" / "fbar.yaml")
    return paths


def parse_config(text: str, *, origin: str = "<string>") -> FbarConfig:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{origin}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{origin}: expected a mapping at the top level")
    try:
        return FbarConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{origin}: {e}") from e


def load_config(path: Optional[Path] = None, *, statements_dir: Optional[Path] = None) -> tuple[FbarConfig, str]:
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        return parse_config(path.read_text(encoding="utf-8"), origin=str(path)), str(path)
    for p in candidate_paths(statements_dir):
        if p.exists():
            return parse_config(p.read_text(encoding="utf-8"), origin=str(p)), str(p)
    where = f" in {statements_dir}" if statements_dir is not None else ""
    raise ConfigError(f"data.yml not found{where} (set {CONFIG_ENV_VAR} or pass --config)")
