"""PostgreSQL implementation of ProjectRepo."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import ProjectRow
from portal.models.project import Project


class PgProjectRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, project_id: UUID) -> Project | None:
        stmt = select(ProjectRow).where(ProjectRow.id == project_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_project(row)

    async def add(self, project: Project) -> None:
        row = ProjectRow(
            id=project.id,
            organization_id=project.organization_id,
            title=project.title,
            description=project.description,
            status=project.status,
            created_at=project.created_at,
            start_date=project.start_date,
            due_date=project.due_date,
            updated_at=project.updated_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def update(self, project: Project) -> Project | None:
        stmt = (
            update(ProjectRow)
            .where(ProjectRow.id == project.id)
            .values(
                organization_id=project.organization_id,
                title=project.title,
                description=project.description,
                status=project.status,
                start_date=project.start_date,
                due_date=project.due_date,
                updated_at=project.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(project.id)

    async def delete(self, project_id: UUID) -> bool:
        result = await self._session.execute(
            delete(ProjectRow).where(ProjectRow.id == project_id)
        )
        return result.rowcount > 0

    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Project]:
        stmt = select(ProjectRow).order_by(ProjectRow.created_at.desc())
        if organization_id is not None:
            stmt = stmt.where(ProjectRow.organization_id == organization_id)
        if status is not None:
            stmt = stmt.where(ProjectRow.status == status)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_project(r) for r in rows]

    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(ProjectRow)
        if organization_id is not None:
            stmt = stmt.where(ProjectRow.organization_id == organization_id)
        if created_since is not None:
            stmt = stmt.where(ProjectRow.created_at >= created_since)
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_project(row: ProjectRow) -> Project:
    return Project(
        id=row.id,
        organization_id=row.organization_id,
        title=row.title,
        status=row.status,
        created_at=row.created_at,
        start_date=row.start_date,
        description=row.description,
        due_date=row.due_date,
        updated_at=row.updated_at,
    )
