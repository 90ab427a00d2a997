from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import yaml
from pydantic import ValidationError

from fbar.config import Facts, FbarConfig
from fbar.errors import ConfigError
from fbar.normalize import normalize_currency


log = logging.getLogger(__name__)

BUILTIN_FACTS_PATH = Path(__file__).with_name("data") / "years.yml"
BUILTIN_REPORTING_CURRENCY = "USD"


class RateSource(str, enum.Enum):
    USER_PROVIDED = "USER_PROVIDED"
    BUILT_IN = "BUILT_IN"


@dataclass(frozen=True)
class ExchangeRate:
    currency: str
    year: int
    rate: Decimal
    convention: str = "multiply"  # multiply|divide
    source: RateSource = RateSource.USER_PROVIDED

    def apply(self, amount: Decimal) -> Decimal:
        """Unrounded reporting-currency value of `amount`."""
        if self.convention == "divide":
            return amount / self.rate
        return amount * self.rate


@dataclass(frozen=True)
class RateTable:
    reporting_currency: str
    rates: Mapping[tuple[str, int], ExchangeRate]

    def lookup(self, currency: str, year: int) -> Optional[ExchangeRate]:
        try:
            code = normalize_currency(currency)
        except ValueError:
            return None
        if code is None:
            return None
        return self.rates.get((code, int(year)))

    def for_year(self, year: int) -> list[ExchangeRate]:
        return sorted((r for (_, y), r in self.rates.items() if y == year), key=lambda r: r.currency)

    @classmethod
    def from_mapping(
        cls,
        rates: Mapping[tuple[str, int], Decimal],
        *,
        reporting_currency: str = "USD",
        convention: str = "multiply",
    ) -> "RateTable":
        out: dict[tuple[str, int], ExchangeRate] = {}
        for (currency, year), rate in rates.items():
            try:
                code = normalize_currency(currency)
            except ValueError as e:
                raise ConfigError(str(e)) from e
            if code is None:
                raise ConfigError(f"Exchange rate for year {year} has no currency code")
            rate = Decimal(str(rate)) if isinstance(rate, float) else Decimal(rate)
            if rate <= 0:
                raise ConfigError(f"Exchange rate for {code}/{year} must be greater than 0")
            out[(code, int(year))] = ExchangeRate(currency=code, year=int(year), rate=rate, convention=convention)
        return cls(reporting_currency=normalize_currency(reporting_currency), rates=MappingProxyType(out))


def load_builtin_facts(path: Path = BUILTIN_FACTS_PATH) -> Facts:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return Facts.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Built-in rate table unusable ({path}): {e}") from e


def _entries(facts: Facts, *, convention: str, source: RateSource) -> Iterable[ExchangeRate]:
    for annual in facts.years:
        for r in annual.exchange_rates:
            yield ExchangeRate(currency=r.currency_code, year=annual.year, rate=r.rate, convention=convention, source=source)


def build_rate_table(cfg: FbarConfig, *, builtin: Optional[Facts] = None, include_builtin: bool = True) -> RateTable:
    """
    User `fact_extensions` win over the built-in table. Built-in rates are quoted per USD and are only
    consulted when the report is in USD.
    """
    reporting = cfg.settings.reporting_currency
    out: dict[tuple[str, int], ExchangeRate] = {}
    if include_builtin and reporting == BUILTIN_REPORTING_CURRENCY:
        facts = builtin if builtin is not None else load_builtin_facts()
        for r in _entries(facts, convention="divide", source=RateSource.BUILT_IN):
            out[(r.currency, r.year)] = r
    if cfg.fact_extensions is not None:
        seen: set[tuple[str, int]] = set()
        for r in _entries(cfg.fact_extensions, convention=cfg.settings.rate_convention, source=RateSource.USER_PROVIDED):
            key = (r.currency, r.year)
            if key in seen:
                raise ConfigError(f"Exchange rate for {r.currency}/{r.year} given more than once in fact_extensions")
            seen.add(key)
            out[key] = r
    log.debug("Rate table: %d entries for reporting currency %s", len(out), reporting)
    return RateTable(reporting_currency=reporting, rates=MappingProxyType(out))
