from __future__ import annotations

from typing import Protocol
from uuid import UUID

from portal.models.contract import Contract, Video


class ContractRepo(Protocol):
    """Contracts and the videos delivered under them.

    Videos belong to exactly one contract and are removed with it, so
    they share a repo rather than getting their own.
    """

    async def get_by_id(self, contract_id: UUID) -> Contract | None: ...
    async def add(self, contract: Contract) -> None: ...
    async def update(self, contract: Contract) -> Contract | None: ...
    async def delete(self, contract_id: UUID) -> bool: ...
    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Contract]: ...
    async def count(self, *, organization_id: UUID | None = None) -> int: ...

    async def get_video(self, contract_id: UUID, video_id: UUID) -> Video | None: ...
    async def add_video(self, video: Video) -> None: ...
    async def update_video(self, video: Video) -> Video | None: ...
    async def list_videos(self, contract_id: UUID) -> list[Video]: ...


class InMemoryContractRepo:
    def __init__(self) -> None:
        self._contracts: dict[UUID, Contract] = {}
        self._videos: dict[UUID, Video] = {}

    def clear(self) -> None:
        self._contracts.clear()
        self._videos.clear()

    async def get_by_id(self, contract_id: UUID) -> Contract | None:
        return self._contracts.get(contract_id)

    async def add(self, contract: Contract) -> None:
        self._contracts[contract.id] = contract

    async def update(self, contract: Contract) -> Contract | None:
        if contract.id not in self._contracts:
            return None
        self._contracts[contract.id] = contract
        return contract

    async def delete(self, contract_id: UUID) -> bool:
        if self._contracts.pop(contract_id, None) is None:
            return False
        for vid in [v.id for v in self._videos.values() if v.contract_id == contract_id]:
            del self._videos[vid]
        return True

    async def list_filtered(
        self, *, organization_id: UUID | None = None, status: str | None = None
    ) -> list[Contract]:
        found = [
            c
            for c in self._contracts.values()
            if (organization_id is None or c.organization_id == organization_id)
            and (status is None or c.status == status)
        ]
        return sorted(
            found,
            key=lambda c: c.created_at.timestamp() if c.created_at else 0.0,
            reverse=True,
        )

    async def count(self, *, organization_id: UUID | None = None) -> int:
        return sum(
            1
            for c in self._contracts.values()
            if organization_id is None or c.organization_id == organization_id
        )

    async def get_video(self, contract_id: UUID, video_id: UUID) -> Video | None:
        v = self._videos.get(video_id)
        if v is None or v.contract_id != contract_id:
            return None
        return v

    async def add_video(self, video: Video) -> None:
        self._videos[video.id] = video

    async def update_video(self, video: Video) -> Video | None:
        if video.id not in self._videos:
            return None
        self._videos[video.id] = video
        return video

    async def list_videos(self, contract_id: UUID) -> list[Video]:
        found = [v for v in self._videos.values() if v.contract_id == contract_id]
        return sorted(
            found, key=lambda v: v.created_at.timestamp() if v.created_at else 0.0
        )
