"""PostgreSQL implementation of InvitationRepo."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import InvitationRow
from portal.models.invitation import Invitation


class PgInvitationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, invitation: Invitation) -> None:
        row = InvitationRow(
            id=invitation.id,
            email=invitation.email,
            name=invitation.name,
            role=invitation.role,
            organization_id=invitation.organization_id,
            token=invitation.token,
            status=invitation.status,
            expires_at=invitation.expires_at,
            created_at=invitation.created_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def get_by_token(self, token: str) -> Invitation | None:
        stmt = select(InvitationRow).where(InvitationRow.token == token)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_invitation(row)

    async def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        stmt = select(InvitationRow).where(InvitationRow.id == invitation_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_invitation(row)

    async def set_status(
        self, invitation_id: UUID, status: str, *, only_if: str | None = None
    ) -> Invitation | None:
        # The conditional form keeps concurrent expiry/accept from
        # overwriting a terminal status.
        stmt = (
            update(InvitationRow)
            .where(InvitationRow.id == invitation_id)
            .values(status=status)
        )
        if only_if is not None:
            stmt = stmt.where(InvitationRow.status == only_if)
        await self._session.execute(stmt)
        return await self.get_by_id(invitation_id)

    async def list_pending(
        self, organization_id: UUID, now: datetime
    ) -> list[Invitation]:
        stmt = (
            select(InvitationRow)
            .where(
                InvitationRow.organization_id == organization_id,
                InvitationRow.status == "pending",
                InvitationRow.expires_at > now,
            )
            .order_by(InvitationRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_invitation(r) for r in rows]

    async def count(self, *, organization_id: UUID | None = None) -> int:
        stmt = select(func.count()).select_from(InvitationRow)
        if organization_id is not None:
            stmt = stmt.where(InvitationRow.organization_id == organization_id)
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_invitation(row: InvitationRow) -> Invitation:
    return Invitation(
        id=row.id,
        email=row.email,
        name=row.name,
        role=row.role,
        organization_id=row.organization_id,
        token=row.token,
        status=row.status,
        expires_at=row.expires_at,
        created_at=row.created_at,
    )
