from __future__ import annotations

from typing import Optional


class FbarError(Exception):
    pass


class ConfigError(FbarError):
    pass


class DuplicateAccountId(ConfigError):
    def __init__(self, canonical_id: str):
        self.canonical_id = canonical_id
        super().__init__(f"Account handle defined more than once: {canonical_id!r}")


class UnmappedAccount(FbarError):
    def __init__(self, raw_account_id: str, institution_hint: Optional[str] = None, source: Optional[str] = None):
        self.raw_account_id = raw_account_id
        self.institution_hint = institution_hint
        self.source = source
        where = f" ({source})" if source else ""
        inst = f" at institution {institution_hint!r}" if institution_hint else ""
        super().__init__(f"No account mapping for raw identifier {raw_account_id!r}{inst}{where}")


class MissingRate(FbarError):
    def __init__(self, currency: str, year: int, reporting_currency: str):
        self.currency = currency
        self.year = year
        self.reporting_currency = reporting_currency
        super().__init__(f"No exchange rate found for {currency} -> {reporting_currency} in year {year}")


class InvalidRecord(FbarError):
    def __init__(self, reason: str, source: Optional[str] = None):
        self.reason = reason
        self.source = source
        super().__init__(f"{source}: {reason}" if source else reason)
