from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

USER_ROLES: tuple[str, ...] = ("admin", "client", "teamMember")


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    name: str = ""
    role: str = "client"  # admin|client|teamMember
    organization_id: UUID | None = None
    phone: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str = "",
        role: str = "client",
        organization_id: UUID | None = None,
        phone: str | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name,
            role=role,
            organization_id=organization_id,
            phone=phone,
            is_active=True,
            created_at=datetime.now(UTC),
        )
