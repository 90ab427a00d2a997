from __future__ import annotations

import datetime as dt
from decimal import Decimal

from fbar.config import Provider
from fbar.core.rows import ReportRowBuilder
from fbar.models import ConvertedMax, YearKey, YearMax
from helpers import account


def _inputs(amount: str = "9900.00"):
    key = YearKey("B", 2021)
    ym = YearMax(key, Decimal("9000"), dt.date(2021, 5, 1), "EUR")
    cm = ConvertedMax(key, Decimal(amount), Decimal(amount), rate=Decimal("1.10"), rate_source="USER_PROVIDED")
    return ym, cm


def test_ownership_adjustment_rounds_once():
    ym, cm = _inputs("1000.01")
    row = ReportRowBuilder().build(ym, cm, Decimal("0.5"), True)
    # 500.005 -> 500.00 (half to even)
    assert row.ownership_adjusted_amount == Decimal("500.00")
    row = ReportRowBuilder().build(ym, cm, Decimal("0.333"), True)
    assert row.ownership_adjusted_amount == Decimal("333.00")


def test_full_ownership_keeps_amount():
    ym, cm = _inputs()
    row = ReportRowBuilder().build(ym, cm, Decimal("1"), False)
    assert row.ownership_adjusted_amount == Decimal("9900.00")
    assert row.threshold_met is False
    assert row.display_name == "B"
    assert (row.year, row.max_date, row.source_currency) == (2021, dt.date(2021, 5, 1), "EUR")


def test_account_details_are_copied_onto_row():
    ym, cm = _inputs()
    a = account(
        "B",
        "EUR",
        provider_handle="bank",
        provider=Provider(name="Bank AG", handle="bank", address="Zurich"),
        identifier1="CH93",
        identifier1_name="iban",
        joint_holder_names=["Jane Doe"],
    )
    row = ReportRowBuilder().build(ym, cm, Decimal("0.5"), True, a)
    assert row.display_name == "Bank AG CH93"
    assert row.provider_address == "Zurich"
    assert row.joint is True
    assert row.joint_holder_names == ["Jane Doe"]
    assert row.ownership_adjusted_amount == Decimal("4950.00")
