from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional

from fbar.core.converter import CurrencyConverter
from fbar.core.mapper import AccountMapper
from fbar.core.rows import ReportRowBuilder
from fbar.core.threshold import ThresholdEvaluator
from fbar.core.tracker import YearlyMaxTracker
from fbar.errors import InvalidRecord
from fbar.facts import RateTable
from fbar.models import ReportResult, ReportRow, StatementRecord, YearKey, YearMax
from fbar.registry import AccountRegistry


log = logging.getLogger(__name__)


def aggregate(
    records: Iterable[StatementRecord],
    *,
    registry: AccountRegistry,
    skip_invalid: bool = False,
    warnings: Optional[list[str]] = None,
) -> list[YearMax]:
    mapper = AccountMapper(registry)
    tracker = YearlyMaxTracker(registry)
    seen = 0
    for rec in records:
        seen += 1
        try:
            cid = mapper.resolve(rec.raw_account_id, rec.institution_hint, source=rec.source)
            account = registry.get(cid)
            if not account.open_on(rec.date):
                raise InvalidRecord(f"{cid} is not open on {rec.date.isoformat()}", source=rec.source)
            tracker.observe(cid, rec.date, rec.balance, rec.currency, source=rec.source)
        except InvalidRecord as e:
            if not skip_invalid:
                raise
            if warnings is not None:
                warnings.append(f"Skipped record: {e}")
    log.debug("Aggregated %d records into %d account-years", seen, len(tracker))
    return tracker.finalize()


def coverage_gaps(maxima: Iterable[YearMax], registry: AccountRegistry) -> list[YearKey]:
    """Open account-years within the observed span that have no statements at all."""
    keys = {m.year_key for m in maxima}
    if not keys:
        return []
    years = range(min(k.year for k in keys), max(k.year for k in keys) + 1)
    gaps: list[YearKey] = []
    for cid in sorted(registry.accounts):
        account = registry.get(cid)
        for year in years:
            key = YearKey(canonical_id=cid, year=year)
            if key not in keys and account.open_during(year):
                gaps.append(key)
    return gaps


def build_report(
    records: Iterable[StatementRecord],
    *,
    registry: AccountRegistry,
    rates: RateTable,
    threshold: Decimal,
    skip_invalid: bool = False,
    warnings: Optional[list[str]] = None,
) -> ReportResult:
    """
    Runs the whole balance pipeline. Either every row is produced or an FbarError propagates; nothing
    is returned for a partially processed run.

    `warnings` is extended in place, so diagnostics a lazy record source appends while being consumed
    end up in the result.
    """
    if warnings is None:
        warnings = []
    maxima = aggregate(records, registry=registry, skip_invalid=skip_invalid, warnings=warnings)

    converter = CurrencyConverter(rates)
    converted = {
        m.year_key: converter.convert_max(m, registry.get(m.year_key.canonical_id).ownership_fraction) for m in maxima
    }

    evaluator = ThresholdEvaluator(threshold, registry)
    flags, totals = evaluator.evaluate_all(converted.values())

    builder = ReportRowBuilder()
    rows: list[ReportRow] = []
    for m in maxima:
        account = registry.get(m.year_key.canonical_id)
        rows.append(builder.build(m, converted[m.year_key], account.ownership_fraction, flags[m.year_key], account))
    rows.sort(key=lambda r: (r.year, r.canonical_id))

    for gap in coverage_gaps(maxima, registry):
        warnings.append(f"No statements for {gap.canonical_id} in {gap.year} although the account was open")

    return ReportResult(
        reporting_currency=rates.reporting_currency,
        threshold=threshold,
        rows=rows,
        year_totals=totals,
        warnings=warnings,
    )
