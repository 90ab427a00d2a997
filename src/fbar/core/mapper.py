from __future__ import annotations

from collections import defaultdict
from typing import Optional

from fbar.errors import InvalidRecord, UnmappedAccount
from fbar.normalize import normalize_identifier, normalize_institution
from fbar.registry import AccountRegistry


class AccountMapper:
    """
    Resolves raw statement identifiers to canonical account handles.

    Lookup order:
    1. alias qualified by the institution hint
    2. unqualified alias
    3. when the hint is missing or names no known institution (e.g. a "2023" directory), a qualified
       alias that is unique across institutions
    4. the canonical handle itself (identity fallback, if enabled)
    """

    def __init__(self, registry: AccountRegistry):
        self.registry = registry
        by_raw: dict[str, set[str]] = defaultdict(set)
        institutions: set[str] = set()
        for (raw, inst), cid in registry.aliases.items():
            if inst is not None:
                by_raw[raw].add(cid)
                institutions.add(inst)
        self._qualified_by_raw = dict(by_raw)
        self._institutions = frozenset(institutions)

    def resolve(self, raw_account_id: str, institution_hint: Optional[str] = None, *, source: Optional[str] = None) -> str:
        raw = normalize_identifier(raw_account_id)
        if not raw:
            raise InvalidRecord("Missing account identifier", source=source)
        inst = normalize_institution(institution_hint)
        aliases = self.registry.aliases

        if inst is not None:
            cid = aliases.get((raw, inst))
            if cid is not None:
                return cid
        cid = aliases.get((raw, None))
        if cid is not None:
            return cid
        if inst is None or inst not in self._institutions:
            candidates = self._qualified_by_raw.get(raw) or set()
            if len(candidates) == 1:
                return next(iter(candidates))
        if self.registry.identity_fallback:
            cid = self.registry.identity(raw_account_id)
            if cid is not None:
                return cid
        raise UnmappedAccount(raw_account_id, institution_hint, source)
