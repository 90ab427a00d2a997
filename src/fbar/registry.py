from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from fbar.config import AccountDefinition, FbarConfig
from fbar.errors import ConfigError, DuplicateAccountId
from fbar.normalize import normalize_identifier, normalize_institution


AliasKey = tuple[str, Optional[str]]  # (normalized raw id, normalized institution or None)


@dataclass(frozen=True)
class AccountRegistry:
    accounts: Mapping[str, AccountDefinition]
    aliases: Mapping[AliasKey, str]
    identity_fallback: bool = True
    _identity: Mapping[str, str] = field(default_factory=dict, repr=False)

    def get(self, canonical_id: str) -> AccountDefinition:
        return self.accounts[canonical_id]

    def __contains__(self, canonical_id: object) -> bool:
        return canonical_id in self.accounts

    def __len__(self) -> int:
        return len(self.accounts)

    def identity(self, raw_account_id: str) -> Optional[str]:
        return self._identity.get(normalize_identifier(raw_account_id))

    def aliases_for(self, canonical_id: str) -> list[AliasKey]:
        return sorted((k for k, v in self.aliases.items() if v == canonical_id), key=lambda k: (k[0], k[1] or ""))


def _alias_keys(account: AccountDefinition) -> Iterable[AliasKey]:
    inst = normalize_institution(account.provider_handle)
    for ident in (account.identifier1, account.identifier2):
        if ident:
            yield normalize_identifier(ident), inst
    for rule in account.aliases:
        if rule.raw_id:
            yield normalize_identifier(rule.raw_id), normalize_institution(rule.institution)


def build_registry(accounts: Iterable[AccountDefinition], *, identity_fallback: bool = True) -> AccountRegistry:
    by_id: dict[str, AccountDefinition] = {}
    aliases: dict[AliasKey, str] = {}
    for account in accounts:
        if account.canonical_id in by_id:
            raise DuplicateAccountId(account.canonical_id)
        by_id[account.canonical_id] = account
        for key in _alias_keys(account):
            bound = aliases.setdefault(key, account.canonical_id)
            if bound != account.canonical_id:
                raw, inst = key
                scope = f" at {inst}" if inst else ""
                raise ConfigError(f"Alias {raw!r}{scope} is bound to both {bound} and {account.canonical_id}")

    identity: dict[str, str] = {}
    for cid in by_id:
        norm = normalize_identifier(cid)
        if norm in identity:
            raise DuplicateAccountId(cid)
        identity[norm] = cid

    return AccountRegistry(
        accounts=MappingProxyType(by_id),
        aliases=MappingProxyType(aliases),
        identity_fallback=identity_fallback,
        _identity=MappingProxyType(identity),
    )


def registry_from_config(cfg: FbarConfig) -> AccountRegistry:
    return build_registry(cfg.accounts, identity_fallback=cfg.settings.identity_fallback)
