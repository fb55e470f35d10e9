"""Authenticated actor identity handed to the services.

The core never authenticates.  Entry points turn whatever the auth layer
produced (a Django user, a JWT payload) into an ``Actor`` and services make
authorization decisions from its ``roles`` only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet
from uuid import UUID

from shared.domain.exceptions import Forbidden

BUYER = "buyer"
SELLER = "seller"
ADMIN = "admin"

ROLES = frozenset({BUYER, SELLER, ADMIN})


@dataclass(frozen=True)
class Actor:
    """Immutable (id, roles) pair for the user performing an operation."""

    id: Any
    roles: FrozenSet[str] = field(default_factory=lambda: frozenset({BUYER}))

    @property
    def is_admin(self) -> bool:
        return ADMIN in self.roles

    @property
    def is_seller(self) -> bool:
        return SELLER in self.roles

    @property
    def is_buyer(self) -> bool:
        return BUYER in self.roles

    def owns(self, owner_id: Any) -> bool:
        return str(self.id) == str(owner_id)

    def require_admin(self) -> None:
        if not self.is_admin:
            raise Forbidden("Admin role required.", actor_id=self.id)

    def require_owner_or_admin(self, owner_id: Any) -> None:
        if not (self.is_admin or self.owns(owner_id)):
            raise Forbidden("Not the owner of this resource.", actor_id=self.id)

    @classmethod
    def from_user(cls, user: Any) -> Actor:
        """Build an actor from a Django user (staff counts as admin)."""
        roles = set()
        groups = getattr(user, "groups", None)
        if groups is not None:
            roles.update(
                name for name in groups.values_list("name", flat=True) if name in ROLES
            )
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            roles.add(ADMIN)
        if not roles:
            roles.add(BUYER)
        return cls(id=user.pk, roles=frozenset(roles))

    @classmethod
    def system(cls) -> Actor:
        """Actor for scheduled jobs (no user row behind it)."""
        return cls(id=None, roles=frozenset({ADMIN}))


def as_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))
