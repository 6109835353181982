"""
Request identity.

Authentication happens upstream (gateway / identity provider); it forwards the
authenticated member id and role set as headers:

    X-Member-Id: 42
    X-Member-Roles: Admin,Treasurer
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from fastapi import Depends, Header, HTTPException

ADMIN = "Admin"
TREASURER = "Treasurer"
REFEREE = "Referee"


@dataclass(frozen=True)
class Actor:
    member_id: int
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return ADMIN in self.roles

    def has_any(self, *roles: str) -> bool:
        return self.is_admin or any(r in self.roles for r in roles)


def get_actor(
    x_member_id: Optional[int] = Header(default=None),
    x_member_roles: str = Header(default=""),
) -> Actor:
    if x_member_id is None:
        raise HTTPException(status_code=401, detail="UNAUTHENTICATED: X-Member-Id header required")
    roles = frozenset(r.strip() for r in x_member_roles.split(",") if r.strip())
    return Actor(member_id=x_member_id, roles=roles)


def require_roles(*roles: str):
    """Dependency factory: the actor must hold one of ``roles`` (Admin always passes)."""

    def _check(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.has_any(*roles):
            raise HTTPException(status_code=403, detail=f"FORBIDDEN: requires one of {', '.join(roles)}")
        return actor

    return _check
