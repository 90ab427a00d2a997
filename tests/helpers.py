from __future__ import annotations

import datetime as dt
from decimal import Decimal

from fbar.config import AccountDefinition
from fbar.models import StatementRecord
from fbar.registry import AccountRegistry, build_registry


def account(handle: str, currency: str = "USD", **kw) -> AccountDefinition:
    return AccountDefinition(handle=handle, currency_code=currency, **kw)


def registry(*accounts: AccountDefinition, identity_fallback: bool = True) -> AccountRegistry:
    return build_registry(accounts, identity_fallback=identity_fallback)


def rec(raw: str, date: str, balance: str, currency: str | None = None, institution: str | None = None) -> StatementRecord:
    return StatementRecord(
        raw_account_id=raw,
        institution_hint=institution,
        date=dt.date.fromisoformat(date),
        balance=Decimal(balance),
        currency=currency,
        source=f"test:{raw}:{date}",
    )
