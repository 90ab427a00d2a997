from __future__ import annotations

import csv
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from fbar.models import ReportRow
from fbar.normalize import money_2dp


REPORT_COLUMNS = [
    "year",
    "account",
    "display_name",
    "provider",
    "provider_address",
    "identifier1_name",
    "identifier1",
    "identifier2_name",
    "identifier2",
    "joint",
    "joint_holders",
    "ownership_fraction",
    "max_date",
    "max_balance",
    "currency",
    "rate",
    "rate_source",
    "max_value_reporting",
    "ownership_adjusted_value",
    "threshold_met",
]


def _money(value: Optional[Decimal]) -> str:
    return "" if value is None else str(money_2dp(value))


def report_record(r: ReportRow) -> dict[str, Any]:
    return {
        "year": r.year,
        "account": r.canonical_id,
        "display_name": r.display_name,
        "provider": r.provider_name,
        "provider_address": r.provider_address,
        "identifier1_name": r.identifier1_name,
        "identifier1": r.identifier1,
        "identifier2_name": r.identifier2_name or "",
        "identifier2": r.identifier2 or "",
        "joint": "yes" if r.joint else "no",
        "joint_holders": "; ".join(r.joint_holder_names),
        "ownership_fraction": str(r.ownership_fraction),
        "max_date": r.max_date.isoformat() if r.max_date else "",
        "max_balance": _money(r.max_balance),
        "currency": r.source_currency,
        "rate": "" if r.rate is None else str(r.rate),
        "rate_source": r.rate_source or "",
        "max_value_reporting": _money(r.amount_reporting_currency),
        "ownership_adjusted_value": _money(r.ownership_adjusted_amount),
        "threshold_met": "yes" if r.threshold_met else "no",
    }


def write_report_csv(rows: Iterable[ReportRow], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
            w.writeheader()
            for r in rows:
                w.writerow(report_record(r))
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def format_table(rows: list[ReportRow], *, currency: str = "USD") -> str:
    if not rows:
        return "(no rows)"
    headers = ("Year", "Account", "Max", "Date", f"Max {currency}", "Owned", "Threshold")
    body = [
        (
            str(r.year),
            r.canonical_id,
            f"{_money(r.max_balance)} {r.source_currency}",
            r.max_date.isoformat() if r.max_date else "",
            _money(r.amount_reporting_currency),
            _money(r.ownership_adjusted_amount),
            "met" if r.threshold_met else "not met",
        )
        for r in rows
    ]
    widths = [max(len(h), *(len(b[i]) for b in body)) for i, h in enumerate(headers)]
    right = {2, 4, 5}

    def line(cells: tuple[str, ...]) -> str:
        return "  ".join(c.rjust(widths[i]) if i in right else c.ljust(widths[i]) for i, c in enumerate(cells)).rstrip()

    out = [line(headers), line(tuple("-" * w for w in widths))]
    out.extend(line(b) for b in body)
    return "\n".join(out)
