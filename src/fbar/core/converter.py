from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fbar.errors import InvalidRecord, MissingRate
from fbar.facts import ExchangeRate, RateTable
from fbar.models import ConvertedMax, YearMax
from fbar.normalize import money_2dp, normalize_currency


log = logging.getLogger(__name__)


def adjust_for_ownership(amount: Decimal, ownership_fraction: Decimal) -> Decimal:
    return money_2dp(amount * ownership_fraction)


class CurrencyConverter:
    def __init__(self, rates: RateTable):
        self.rates = rates

    @property
    def reporting_currency(self) -> str:
        return self.rates.reporting_currency

    def rate_for(self, source_currency: str, year: int) -> Optional[ExchangeRate]:
        """None when no conversion is needed; raises MissingRate when one is needed but unknown."""
        try:
            code = normalize_currency(source_currency)
        except ValueError as e:
            raise InvalidRecord(str(e)) from None
        if code == self.reporting_currency:
            return None
        rate = self.rates.lookup(code, year)
        if rate is None:
            raise MissingRate(code or str(source_currency), year, self.reporting_currency)
        return rate

    def convert(self, amount: Decimal, source_currency: str, year: int) -> Decimal:
        rate = self.rate_for(source_currency, year)
        if rate is None:
            return amount
        # Round once, after applying the rate.
        return money_2dp(rate.apply(amount))

    def convert_max(self, year_max: YearMax, ownership_fraction: Decimal = Decimal("1")) -> ConvertedMax:
        key = year_max.year_key
        rate = self.rate_for(year_max.source_currency, key.year)
        amount = year_max.max_balance if rate is None else money_2dp(rate.apply(year_max.max_balance))
        if rate is not None:
            log.debug(
                "%s %d: %s %s -> %s %s (rate %s, %s)",
                key.canonical_id,
                key.year,
                year_max.max_balance,
                year_max.source_currency,
                amount,
                self.reporting_currency,
                rate.rate,
                rate.source.value,
            )
        return ConvertedMax(
            year_key=key,
            amount_reporting_currency=amount,
            ownership_adjusted_amount=adjust_for_ownership(amount, ownership_fraction),
            rate=rate.rate if rate is not None else None,
            rate_source=rate.source.value if rate is not None else None,
        )
