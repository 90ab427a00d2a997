from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Optional


_WS_RE = re.compile(r"\s+")
_AMOUNT_NOISE_RE = re.compile(r"[^\d.,+\-]")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

_DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d", "%m/%d/%y", "%d.%m.%y")

CENTS = Decimal("0.01")


def parse_date(value: str) -> dt.date:
    s = (value or "").strip()
    if not s:
        raise ValueError("Missing date")
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(s.split()[0], fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r}")


def parse_decimal(value: str) -> Decimal:
    """
    Parses a statement balance.

    - currency symbols, codes and spaces are dropped: "CHF 1 234.50" -> 1234.50
    - parentheses mean negative: "(12.00)" -> -12.00
    - when both separators appear the last one is the decimal point: "1.234,56" -> 1234.56
    """
    s = (value or "").strip()
    if not s:
        raise ValueError("Missing amount")
    negative = s.startswith("(") and s.endswith(")")
    s = _AMOUNT_NOISE_RE.sub("", s)
    if "," in s and "." in s and s.rfind(",") > s.rfind("."):
        s = s.replace(".", "").replace(",", ".")
    else:
        s = s.replace(",", "")
    try:
        d = Decimal(s)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}") from None
    if not d.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return -d if negative else d


def money_2dp(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_EVEN)


def normalize_currency(value: Optional[str]) -> Optional[str]:
    s = (value or "").strip().upper()
    if not s:
        return None
    if not _CURRENCY_RE.match(s):
        raise ValueError(f"Invalid currency code: {value!r}")
    return s


def normalize_identifier(value: str) -> str:
    # "GB29 NWBK 6016 1331 9268 19" and "gb29nwbk60161331926819" name the same account.
    return _WS_RE.sub("", (value or "")).casefold()


def normalize_institution(value: Optional[str]) -> Optional[str]:
    s = _WS_RE.sub(" ", (value or "")).strip().casefold()
    return s or None
