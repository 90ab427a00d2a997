from __future__ import annotations

from typing import Iterable, Optional

from fbar.importers.base import StatementImporter, get_field
from fbar.models import StatementRecord
from fbar.normalize import parse_date, parse_decimal


class GenericBalanceCSVImporter(StatementImporter):
    format_name = "generic_balance_csv"

    def detect(self, headers: Iterable[str]) -> bool:
        hs = {h.strip().lower() for h in headers}
        return {"account", "date", "balance"}.issubset(hs)

    def parse_row(self, row: dict[str, str], *, institution_hint: Optional[str], source: Optional[str]) -> StatementRecord:
        return StatementRecord(
            raw_account_id=get_field(row, "account"),
            institution_hint=get_field(row, "institution") or institution_hint,
            date=parse_date(get_field(row, "date")),
            balance=parse_decimal(get_field(row, "balance")),
            currency=get_field(row, "currency") or None,
            source=source,
        )
