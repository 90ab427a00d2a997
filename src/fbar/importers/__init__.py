from __future__ import annotations

from fbar.importers.base import StatementImporter
from fbar.importers.generic_balance_csv import GenericBalanceCSVImporter
from fbar.importers.statement_summary_csv import StatementSummaryCSVImporter


def default_importers() -> list[StatementImporter]:
    return [GenericBalanceCSVImporter(), StatementSummaryCSVImporter()]
