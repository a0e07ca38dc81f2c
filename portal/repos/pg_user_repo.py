"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import UserRow
from portal.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            role=user.role,
            organization_id=user.organization_id,
            phone=user.phone,
            is_active=user.is_active,
            created_at=user.created_at,
        )
        # Savepoint so a unique violation leaves the request session usable.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("email already exists") from None

    async def exists_with_role(self, role: str) -> bool:
        stmt = select(UserRow.id).where(UserRow.role == role).limit(1)
        return (await self._session.execute(stmt)).first() is not None

    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(UserRow)
        if organization_id is not None:
            stmt = stmt.where(UserRow.organization_id == organization_id)
        if created_since is not None:
            stmt = stmt.where(UserRow.created_at >= created_since)
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name or "",
        role=row.role,
        organization_id=row.organization_id,
        phone=row.phone,
        is_active=row.is_active,
        created_at=row.created_at,
    )
