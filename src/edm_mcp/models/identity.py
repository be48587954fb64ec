"""Resolved caller identity.

Roles arrive as strings from the identity resolver; they are mapped once to
a capability set so policy code only ever tests capability membership.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class Capability(StrEnum):
    ADMIN = "admin"


ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    "admin": frozenset({Capability.ADMIN}),
}


def capabilities_for(roles: Iterable[str]) -> frozenset[Capability]:
    """Union of the capabilities granted by *roles* (unknown roles grant none)."""
    granted: set[Capability] = set()
    for role in roles:
        granted |= ROLE_CAPABILITIES.get(role.strip().lower(), frozenset())
    return frozenset(granted)


@dataclass(frozen=True)
class IdentityContext:
    """An already-resolved caller identity, passed explicitly per request."""

    user_id: str
    roles: tuple[str, ...] = ()
    organization_id: str | None = None
    permissions: tuple[str, ...] = ()
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("IdentityContext requires a non-empty user_id")

    @classmethod
    def from_roles(
        cls,
        user_id: str,
        roles: Iterable[str] = (),
        organization_id: str | None = None,
        permissions: Iterable[str] = (),
    ) -> IdentityContext:
        """Build a context, deriving capabilities from role names."""
        role_tuple = tuple(roles)
        return cls(
            user_id=user_id,
            roles=role_tuple,
            organization_id=organization_id,
            permissions=tuple(permissions),
            capabilities=capabilities_for(role_tuple),
        )

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def with_organization(self, organization_id: str) -> IdentityContext:
        return dataclasses.replace(self, organization_id=organization_id)
