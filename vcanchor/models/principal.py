from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Principal:
    """The caller behind a bearer token.

    ``name`` is the display name claim; it becomes ``candidateName`` on
    credentials the caller earns.
    """

    user_id: str
    roles: frozenset[str]
    name: str = ""

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Principal:
        return cls(
            user_id=str(claims["sub"]),
            roles=frozenset(claims.get("roles") or ()),
            name=claims.get("name") or "",
        )

    def holds(self, *roles: str) -> bool:
        """True when the caller has at least one of ``roles``."""
        return not self.roles.isdisjoint(roles)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles
