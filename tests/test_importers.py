from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from fbar.importers import default_importers
from fbar.importers.base import read_csv_rows
from fbar.normalize import parse_date, parse_decimal


def _importer(name: str):
    return next(i for i in default_importers() if i.format_name == name)


def test_generic_balance_csv():
    headers, rows = read_csv_rows("Account,Date,Balance,Currency,Institution\n12-34,2023-02-28,\"1,250.75\",chf,UBS\n")
    imp = _importer("generic_balance_csv")
    assert imp.detect(headers)
    r = imp.parse_row(rows[0], institution_hint="ignored", source="a.csv:2")
    assert r.raw_account_id == "12-34"
    assert r.institution_hint == "UBS"
    assert r.date == dt.date(2023, 2, 28)
    assert r.balance == Decimal("1250.75")
    assert r.currency == "chf"
    assert r.source == "a.csv:2"


def test_generic_balance_csv_without_currency_uses_directory_hint():
    headers, rows = read_csv_rows("account\tdate\tbalance\n555\t03/31/2023\t-12.00\n")
    imp = _importer("generic_balance_csv")
    r = imp.parse_row(rows[0], institution_hint="bank", source=None)
    assert r.currency is None
    assert r.institution_hint == "bank"
    assert r.balance == Decimal("-12.00")


def test_statement_summary_csv():
    content = "Account Number;Statement Date;Closing Balance;Currency\n1234567890;31.03.2023;5000.00;EUR\n"
    headers, rows = read_csv_rows(content)
    imp = _importer("statement_summary_csv")
    assert imp.detect(headers)
    assert not _importer("generic_balance_csv").detect(headers)
    r = imp.parse_row(rows[0], institution_hint="germanbank", source=None)
    assert (r.raw_account_id, r.date, r.balance, r.currency) == ("1234567890", dt.date(2023, 3, 31), Decimal("5000.00"), "EUR")


def test_statement_summary_detect_requires_a_date_column():
    assert not _importer("statement_summary_csv").detect(["Account Number", "Closing Balance"])
    assert _importer("statement_summary_csv").detect(["Account Number", "Period End", "Closing Balance"])


def test_parse_decimal_variants():
    assert parse_decimal("$1,234.56") == Decimal("1234.56")
    assert parse_decimal("CHF 1 234.50") == Decimal("1234.50")
    assert parse_decimal("1.234,56") == Decimal("1234.56")
    assert parse_decimal("(12.00)") == Decimal("-12.00")
    assert parse_decimal("0") == Decimal("0")
    for bad in ("", "abc", "NaN"):
        with pytest.raises(ValueError):
            parse_decimal(bad)


def test_parse_date_variants():
    assert parse_date("2023-12-31") == dt.date(2023, 12, 31)
    assert parse_date("2023-12-31T10:00:00") == dt.date(2023, 12, 31)
    assert parse_date("12/31/2023") == dt.date(2023, 12, 31)
    assert parse_date("31.12.2023") == dt.date(2023, 12, 31)
    assert parse_date("2023/12/31") == dt.date(2023, 12, 31)
    for bad in ("", "31/12/2023", "yesterday"):
        with pytest.raises(ValueError):
            parse_date(bad)


def test_unsniffable_content_falls_back_to_commas():
    headers, rows = read_csv_rows("account\n")
    assert headers == ["account"]
    assert rows == []
