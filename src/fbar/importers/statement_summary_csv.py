from __future__ import annotations

from typing import Iterable, Optional

from fbar.importers.base import StatementImporter, get_field
from fbar.models import StatementRecord
from fbar.normalize import parse_date, parse_decimal


class StatementSummaryCSVImporter(StatementImporter):
    """Per-statement exports: one closing balance per statement period."""

    format_name = "statement_summary_csv"

    def detect(self, headers: Iterable[str]) -> bool:
        hs = {h.strip().lower() for h in headers}
        if not {"account number", "closing balance"}.issubset(hs):
            return False
        return bool(hs.intersection({"statement date", "period end"}))

    def parse_row(self, row: dict[str, str], *, institution_hint: Optional[str], source: Optional[str]) -> StatementRecord:
        return StatementRecord(
            raw_account_id=get_field(row, "Account Number"),
            institution_hint=get_field(row, "Institution", "Bank") or institution_hint,
            date=parse_date(get_field(row, "Statement Date", "Period End")),
            balance=parse_decimal(get_field(row, "Closing Balance")),
            currency=get_field(row, "Currency") or None,
            source=source,
        )
