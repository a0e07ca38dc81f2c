from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from portal.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def exists_with_role(self, role: str) -> bool: ...
    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    def clear(self) -> None:
        self._by_email.clear()
        self._by_id.clear()

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def exists_with_role(self, role: str) -> bool:
        return any(u.role == role for u in self._by_id.values())

    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int:
        return sum(
            1
            for u in self._by_id.values()
            if (organization_id is None or u.organization_id == organization_id)
            and (
                created_since is None
                or (u.created_at is not None and u.created_at >= created_since)
            )
        )
