from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.organization import Organization


class OrgRepo(Protocol):
    async def get_by_id(self, org_id: UUID) -> Organization | None: ...
    async def get_by_code(self, code: str) -> Organization | None: ...
    async def add(self, org: Organization) -> None: ...
    async def update(self, org: Organization) -> Organization | None: ...
    async def delete(self, org_id: UUID) -> bool: ...
    async def list_all(self) -> list[Organization]: ...
    async def count(self) -> int: ...


class InMemoryOrgRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Organization] = {}

    def clear(self) -> None:
        self._by_id.clear()

    async def get_by_id(self, org_id: UUID) -> Organization | None:
        return self._by_id.get(org_id)

    async def get_by_code(self, code: str) -> Organization | None:
        return next((o for o in self._by_id.values() if o.code == code), None)

    async def add(self, org: Organization) -> None:
        if await self.get_by_code(org.code) is not None:
            raise ValueError("code already exists")
        self._by_id[org.id] = org

    async def update(self, org: Organization) -> Organization | None:
        if org.id not in self._by_id:
            return None
        self._by_id[org.id] = org
        return org

    async def delete(self, org_id: UUID) -> bool:
        return self._by_id.pop(org_id, None) is not None

    async def list_all(self) -> list[Organization]:
        return sorted(
            self._by_id.values(),
            key=lambda o: o.created_at.timestamp() if o.created_at else 0.0,
            reverse=True,
        )

    async def count(self) -> int:
        return len(self._by_id)
