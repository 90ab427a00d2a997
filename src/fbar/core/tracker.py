from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from fbar.errors import InvalidRecord
from fbar.models import YearKey, YearMax
from fbar.normalize import normalize_currency
from fbar.registry import AccountRegistry


class YearlyMaxTracker:
    """
    Keeps the highest balance per (account, calendar year).

    A stored maximum is only replaced by a strictly greater balance, so among equal balances the
    first one observed wins and its date and currency are kept.
    """

    def __init__(self, registry: Optional[AccountRegistry] = None):
        self.registry = registry
        self._buckets: dict[YearKey, YearMax] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._buckets

    def _currency_for(self, canonical_id: str, currency: Optional[str], source: Optional[str]) -> str:
        try:
            code = normalize_currency(currency)
        except ValueError as e:
            raise InvalidRecord(str(e), source=source) from None
        if code is not None:
            return code
        if self.registry is not None and canonical_id in self.registry:
            return self.registry.get(canonical_id).native_currency
        raise InvalidRecord(f"No currency for account {canonical_id} and no registry default", source=source)

    def observe(
        self,
        canonical_id: str,
        date: dt.date,
        balance: Decimal,
        currency: Optional[str] = None,
        *,
        source: Optional[str] = None,
    ) -> None:
        if not isinstance(date, dt.date):
            raise InvalidRecord(f"Invalid date: {date!r}", source=source)
        if isinstance(date, dt.datetime):
            date = date.date()
        if isinstance(balance, int) and not isinstance(balance, bool):
            balance = Decimal(balance)
        if not isinstance(balance, Decimal) or not balance.is_finite():
            raise InvalidRecord(f"Invalid balance: {balance!r}", source=source)

        code = self._currency_for(canonical_id, currency, source)
        key = YearKey(canonical_id=canonical_id, year=date.year)
        current = self._buckets.get(key)
        if current is None or balance > current.max_balance:
            self._buckets[key] = YearMax(year_key=key, max_balance=balance, max_date=date, source_currency=code)

    def get(self, canonical_id: str, year: int) -> Optional[YearMax]:
        return self._buckets.get(YearKey(canonical_id=canonical_id, year=year))

    def finalize(self) -> list[YearMax]:
        return [self._buckets[k] for k in sorted(self._buckets)]
