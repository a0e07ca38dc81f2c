"""PostgreSQL implementation of OrgRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import OrganizationRow
from portal.models.organization import Organization


class PgOrgRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, org_id: UUID) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.id == org_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_org(row)

    async def get_by_code(self, code: str) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.code == code)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_org(row)

    async def add(self, org: Organization) -> None:
        row = OrganizationRow(
            id=org.id,
            code=org.code,
            name=org.name,
            company=org.company,
            email=org.email,
            phone=org.phone,
            industry=org.industry,
            address=org.address,
            plan=org.plan,
            status=org.status,
            created_at=org.created_at,
            updated_at=org.updated_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("code already exists") from None

    async def update(self, org: Organization) -> Organization | None:
        stmt = (
            update(OrganizationRow)
            .where(OrganizationRow.id == org.id)
            .values(
                code=org.code,
                name=org.name,
                company=org.company,
                email=org.email,
                phone=org.phone,
                industry=org.industry,
                address=org.address,
                plan=org.plan,
                status=org.status,
                updated_at=org.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(org.id)

    async def delete(self, org_id: UUID) -> bool:
        stmt = delete(OrganizationRow).where(OrganizationRow.id == org_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_all(self) -> list[Organization]:
        stmt = select(OrganizationRow).order_by(OrganizationRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_org(r) for r in rows]

    async def count(self) -> int:
        stmt = select(func.count()).select_from(OrganizationRow)
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        code=row.code,
        name=row.name,
        company=row.company,
        email=row.email,
        plan=row.plan,
        status=row.status,
        phone=row.phone,
        industry=row.industry,
        address=row.address,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
