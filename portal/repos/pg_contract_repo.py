"""PostgreSQL implementation of ContractRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import ContractRow, VideoRow
from portal.models.contract import Contract, Video


class PgContractRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, contract_id: UUID) -> Contract | None:
        stmt = select(ContractRow).where(ContractRow.id == contract_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_contract(row)

    async def add(self, contract: Contract) -> None:
        self._session.add(
            ContractRow(
                id=contract.id,
                organization_id=contract.organization_id,
                title=contract.title,
                package_type=contract.package_type,
                start_date=contract.start_date,
                end_date=contract.end_date,
                total_months=contract.total_months,
                sync_call_day=contract.sync_call_day,
                value=contract.value,
                status=contract.status,
                description=contract.description,
                terms=contract.terms,
                created_at=contract.created_at,
                updated_at=contract.updated_at,
            )
        )
        await self._session.flush()

    async def update(self, contract: Contract) -> Contract | None:
        stmt = (
            update(ContractRow)
            .where(ContractRow.id == contract.id)
            .values(
                organization_id=contract.organization_id,
                title=contract.title,
                package_type=contract.package_type,
                start_date=contract.start_date,
                end_date=contract.end_date,
                total_months=contract.total_months,
                sync_call_day=contract.sync_call_day,
                value=contract.value,
                status=contract.status,
                description=contract.description,
                terms=contract.terms,
                updated_at=contract.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(contract.id)

    async def delete(self, contract_id: UUID) -> bool:
        # Explicit so the in-memory and PostgreSQL repos behave the same
        # even on a schema created without the ON DELETE CASCADE.
        await self._session.execute(
            delete(VideoRow).where(VideoRow.contract_id == contract_id)
        )
        result = await self._session.execute(
            delete(ContractRow).where(ContractRow.id == contract_id)
        )
        return result.rowcount > 0

    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Contract]:
        stmt = select(ContractRow).order_by(ContractRow.created_at.desc())
        if organization_id is not None:
            stmt = stmt.where(ContractRow.organization_id == organization_id)
        if status is not None:
            stmt = stmt.where(ContractRow.status == status)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_contract(r) for r in rows]

    async def count(self, *, organization_id: UUID | None = None) -> int:
        stmt = select(func.count()).select_from(ContractRow)
        if organization_id is not None:
            stmt = stmt.where(ContractRow.organization_id == organization_id)
        return (await self._session.execute(stmt)).scalar_one()

    # --- videos ---

    async def get_video(self, contract_id: UUID, video_id: UUID) -> Video | None:
        stmt = select(VideoRow).where(
            VideoRow.id == video_id, VideoRow.contract_id == contract_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_video(row)

    async def add_video(self, video: Video) -> None:
        self._session.add(
            VideoRow(
                id=video.id,
                contract_id=video.contract_id,
                title=video.title,
                description=video.description,
                status=video.status,
                due_date=video.due_date,
                delivery_date=video.delivery_date,
                revision_count=video.revision_count,
                feedback=list(video.feedback),
                created_at=video.created_at,
                updated_at=video.updated_at,
            )
        )
        await self._session.flush()

    async def update_video(self, video: Video) -> Video | None:
        stmt = (
            update(VideoRow)
            .where(VideoRow.id == video.id)
            .values(
                title=video.title,
                description=video.description,
                status=video.status,
                due_date=video.due_date,
                delivery_date=video.delivery_date,
                revision_count=video.revision_count,
                feedback=list(video.feedback),
                updated_at=video.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_video(video.contract_id, video.id)

    async def list_videos(self, contract_id: UUID) -> list[Video]:
        stmt = (
            select(VideoRow)
            .where(VideoRow.contract_id == contract_id)
            .order_by(VideoRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_video(r) for r in rows]


def _row_to_contract(row: ContractRow) -> Contract:
    return Contract(
        id=row.id,
        organization_id=row.organization_id,
        title=row.title,
        package_type=row.package_type,
        start_date=row.start_date,
        value=float(row.value),
        status=row.status,
        end_date=row.end_date,
        total_months=row.total_months,
        sync_call_day=row.sync_call_day,
        description=row.description,
        terms=row.terms,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_video(row: VideoRow) -> Video:
    return Video(
        id=row.id,
        contract_id=row.contract_id,
        title=row.title,
        status=row.status,
        description=row.description,
        due_date=row.due_date,
        delivery_date=row.delivery_date,
        revision_count=row.revision_count,
        feedback=tuple(row.feedback or ()),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
