from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from fbar.core.pipeline import build_report, coverage_gaps
from fbar.errors import InvalidRecord, MissingRate, UnmappedAccount
from fbar.facts import RateTable
from fbar.models import StatementRecord
from helpers import account, rec, registry


USD_ONLY = RateTable.from_mapping({}, reporting_currency="USD")


def _records():
    return [
        rec("acct-a", "2020-01-15", "6000", "USD"),
        rec("acct-b", "2020-03-01", "4500", "USD"),
        rec("acct-a", "2020-06-01", "5000", "USD"),
        rec("acct-b", "2021-02-01", "100", "USD"),
    ]


def _registry():
    return registry(account("A", aliases=["acct-a"]), account("B", aliases=["acct-b"]))


def test_rows_are_ordered_by_year_then_account_and_flagged_per_year():
    result = build_report(_records(), registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))
    assert [(r.year, r.canonical_id, r.ownership_adjusted_amount, r.threshold_met) for r in result.rows] == [
        (2020, "A", Decimal("6000.00"), True),
        (2020, "B", Decimal("4500.00"), True),
        (2021, "B", Decimal("100.00"), False),
    ]
    assert result.year_totals == {2020: Decimal("10500.00"), 2021: Decimal("100.00")}


def test_below_threshold_clears_every_row_of_the_year():
    records = [rec("acct-a", "2020-01-15", "6000", "USD"), rec("acct-b", "2020-03-01", "3999", "USD")]
    result = build_report(records, registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))
    assert [r.threshold_met for r in result.rows] == [False, False]


def test_foreign_currency_rows_and_joint_ownership():
    reg = registry(account("B", "EUR", ownership_fraction=Decimal("0.5")))
    rates = RateTable.from_mapping({("EUR", 2021): Decimal("1.10")}, reporting_currency="USD")
    result = build_report([rec("B", "2021-08-31", "9000")], registry=reg, rates=rates, threshold=Decimal("10000"))
    [row] = result.rows
    assert row.amount_reporting_currency == Decimal("9900.00")
    assert row.ownership_adjusted_amount == Decimal("4950.00")
    assert row.source_currency == "EUR"
    assert row.rate == Decimal("1.10")


def test_determinism():
    a = build_report(_records(), registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))
    b = build_report(_records(), registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))
    assert a.model_dump_json() == b.model_dump_json()


def test_unmapped_account_aborts_even_in_skip_mode():
    records = _records() + [rec("mystery", "2020-01-01", "1", "USD")]
    with pytest.raises(UnmappedAccount):
        build_report(records, registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"), skip_invalid=True)


def test_missing_rate_aborts():
    records = [rec("acct-a", "2020-01-15", "6000", "JPY")]
    with pytest.raises(MissingRate):
        build_report(records, registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))


def test_invalid_record_is_fatal_unless_skipping():
    bad = StatementRecord("acct-a", None, dt.date(2020, 2, 1), Decimal("Infinity"), "USD", source="x.csv:9")
    with pytest.raises(InvalidRecord):
        build_report(_records() + [bad], registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"))

    result = build_report(
        _records() + [bad], registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"), skip_invalid=True
    )
    assert len(result.rows) == 3
    assert any("x.csv:9" in w for w in result.warnings)


def test_observation_outside_account_window_is_invalid():
    reg = registry(account("A", opening_date=dt.date(2020, 5, 1), closing_date=dt.date(2020, 9, 30)))
    with pytest.raises(InvalidRecord):
        build_report([rec("A", "2020-10-01", "5", "USD")], registry=reg, rates=USD_ONLY, threshold=Decimal("1"))


def test_closed_or_unopened_accounts_are_not_coverage_gaps():
    reg = registry(
        account("A"),
        account("B", closing_date=dt.date(2020, 12, 31)),
        account("C", opening_date=dt.date(2022, 1, 1)),
    )
    records = [rec("A", "2020-01-01", "5", "USD"), rec("A", "2021-01-01", "5", "USD"), rec("B", "2020-05-01", "1", "USD")]
    result = build_report(records, registry=reg, rates=USD_ONLY, threshold=Decimal("10000"))
    assert result.warnings == []


def test_open_account_without_statements_is_a_coverage_gap():
    reg = registry(account("A"), account("B", closing_date=dt.date(2020, 12, 31)))
    records = [rec("A", "2020-01-01", "5", "USD"), rec("A", "2021-01-01", "5", "USD")]
    result = build_report(records, registry=reg, rates=USD_ONLY, threshold=Decimal("10000"))
    assert result.warnings == ["No statements for B in 2020 although the account was open"]
    assert [(r.canonical_id, r.year) for r in result.rows] == [("A", 2020), ("A", 2021)]


def test_no_observations_means_no_rows_and_no_gaps():
    reg = registry(account("A"))
    assert coverage_gaps([], reg) == []
    result = build_report([], registry=reg, rates=USD_ONLY, threshold=Decimal("10000"))
    assert result.rows == [] and result.year_totals == {}


def test_warnings_from_a_lazy_statement_source_reach_the_result(tmp_path):
    from fbar.ingest import iter_statements

    (tmp_path / "a.csv").write_text("account,date,balance,currency\nacct-a,2023-01-01,12,USD\nacct-a,2023-13-45,13,USD\n")
    (tmp_path / "empty.csv").write_text("account,date,balance\n")
    warnings: list[str] = []
    records = iter_statements(tmp_path, skip_invalid=True, warnings=warnings)
    result = build_report(
        records, registry=_registry(), rates=USD_ONLY, threshold=Decimal("10000"), skip_invalid=True, warnings=warnings
    )
    assert len(result.rows) == 1
    assert any(w.startswith("Skipped record: a.csv:3") for w in result.warnings)
    assert "empty.csv: no data rows" in result.warnings
