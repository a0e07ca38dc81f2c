from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from portal.models.project import Project


class ProjectRepo(Protocol):
    async def get_by_id(self, project_id: UUID) -> Project | None: ...
    async def add(self, project: Project) -> None: ...
    async def update(self, project: Project) -> Project | None: ...
    async def delete(self, project_id: UUID) -> bool: ...
    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Project]: ...
    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int: ...


class InMemoryProjectRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Project] = {}

    def clear(self) -> None:
        self._by_id.clear()

    async def get_by_id(self, project_id: UUID) -> Project | None:
        return self._by_id.get(project_id)

    async def add(self, project: Project) -> None:
        self._by_id[project.id] = project

    async def update(self, project: Project) -> Project | None:
        if project.id not in self._by_id:
            return None
        self._by_id[project.id] = project
        return project

    async def delete(self, project_id: UUID) -> bool:
        return self._by_id.pop(project_id, None) is not None

    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Project]:
        found = [
            p
            for p in self._by_id.values()
            if (organization_id is None or p.organization_id == organization_id)
            and (status is None or p.status == status)
        ]
        return sorted(found, key=lambda p: p.created_at, reverse=True)

    async def count(
        self,
        *,
        organization_id: UUID | None = None,
        created_since: datetime | None = None,
    ) -> int:
        return sum(
            1
            for p in self._by_id.values()
            if (organization_id is None or p.organization_id == organization_id)
            and (created_since is None or p.created_at >= created_since)
        )
