from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class StatementRecord:
    raw_account_id: str
    institution_hint: Optional[str]
    date: dt.date
    balance: Decimal
    currency: Optional[str] = None
    source: Optional[str] = None  # "relative/path.csv:row"


@dataclass(frozen=True, order=True)
class YearKey:
    canonical_id: str
    year: int


@dataclass(frozen=True)
class YearMax:
    year_key: YearKey
    max_balance: Decimal
    max_date: dt.date
    source_currency: str


@dataclass(frozen=True)
class ConvertedMax:
    year_key: YearKey
    amount_reporting_currency: Decimal
    ownership_adjusted_amount: Decimal
    rate: Optional[Decimal] = None
    rate_source: Optional[str] = None


class ReportRow(BaseModel):
    canonical_id: str
    display_name: str
    year: int
    ownership_adjusted_amount: Decimal
    threshold_met: bool

    provider_name: str = ""
    provider_address: str = ""
    identifier1: str = ""
    identifier1_name: str = ""
    identifier2: Optional[str] = None
    identifier2_name: Optional[str] = None
    joint: bool = False
    joint_holder_names: list[str] = Field(default_factory=list)
    ownership_fraction: Decimal = Decimal("1")
    max_balance: Decimal = Decimal("0")
    source_currency: str = ""
    max_date: Optional[dt.date] = None
    amount_reporting_currency: Decimal = Decimal("0")
    rate: Optional[Decimal] = None
    rate_source: Optional[str] = None


class ReportResult(BaseModel):
    reporting_currency: str
    threshold: Decimal
    rows: list[ReportRow]
    year_totals: dict[int, Decimal] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
