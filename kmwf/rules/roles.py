"""
Role resolution over identity-provider session claims.

Roles may arrive in several metadata blocks, as a single string or a
list. They are merged into one canonical set and mapped to capabilities.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

KNOWN_ROLES = frozenset({
    "admin",
    "moderator",
    "inquiry_officer",
    "surveyor",
    "gullak_caretaker",
    "field_executive",
    "neki_bank_manager",
    "accountant",
    "user",
})

METADATA_KEYS = ("metadata", "public_metadata", "private_metadata", "unsafe_metadata")

CAPABILITIES: dict[str, frozenset[str]] = {
    "admin": frozenset({
        "dashboard:view", "certificates:issue", "certificates:view_stats",
        "notifications:send", "items:manage", "gullak:manage", "gullak:collect",
        "gullak:verify", "sponsorship:review",
    }),
    "moderator": frozenset({
        "dashboard:view", "certificates:issue", "certificates:view_stats",
        "notifications:send", "items:manage", "gullak:manage", "gullak:collect",
        "gullak:verify", "sponsorship:review",
    }),
    "neki_bank_manager": frozenset({"gullak:manage", "gullak:collect", "gullak:verify"}),
    "gullak_caretaker": frozenset({"gullak:collect"}),
    "field_executive": frozenset({"items:manage"}),
    "inquiry_officer": frozenset({"sponsorship:review"}),
    "surveyor": frozenset({"sponsorship:review"}),
    "accountant": frozenset({"certificates:view_stats"}),
    "user": frozenset(),
}


@dataclass(frozen=True)
class RoleSet:
    roles: frozenset[str]
    capabilities: frozenset[str]

    def has_any(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [v for v in value if isinstance(v, str)]
    return []


def _collect(claims: dict[str, Any]) -> Iterable[str]:
    for key in METADATA_KEYS:
        block = claims.get(key)
        if not isinstance(block, dict):
            continue
        yield from _as_list(block.get("role"))
        yield from _as_list(block.get("roles"))


def resolve_roles(claims: dict[str, Any] | None) -> RoleSet:
    """Merge every role claim into one canonical :class:`RoleSet`.

    Unknown role names are dropped. A user with no recognised role gets
    ``{"user"}``.
    """
    roles = {r.strip().lower() for r in _collect(claims or {})}
    roles &= KNOWN_ROLES
    if not roles:
        roles = {"user"}
    caps: set[str] = set()
    for role in roles:
        caps |= CAPABILITIES[role]
    return RoleSet(roles=frozenset(roles), capabilities=frozenset(caps))
