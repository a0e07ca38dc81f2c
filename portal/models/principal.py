from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    user_id: subject claim
    roles: portal roles (admin, client, teamMember)
    organization_id: the organization a client or team member belongs
        to; None for admins
    """

    user_id: str
    roles: frozenset[str]
    organization_id: UUID | None = None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return "admin" in self.roles

    def can_access_org(self, org_id: UUID) -> bool:
        return self.is_admin() or self.organization_id == org_id
