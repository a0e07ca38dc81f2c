from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from portal.models.invitation import Invitation


class InvitationRepo(Protocol):
    async def add(self, invitation: Invitation) -> None: ...
    async def get_by_token(self, token: str) -> Invitation | None: ...
    async def set_status(
        self, invitation_id: UUID, status: str, *, only_if: str | None = None
    ) -> Invitation | None: ...
    async def list_pending(
        self, organization_id: UUID, now: datetime
    ) -> list[Invitation]: ...
    async def count(self, *, organization_id: UUID | None = None) -> int: ...


class InMemoryInvitationRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Invitation] = {}

    def clear(self) -> None:
        self._by_id.clear()

    async def add(self, invitation: Invitation) -> None:
        if await self.get_by_token(invitation.token) is not None:
            raise ValueError("token already exists")
        self._by_id[invitation.id] = invitation

    async def get_by_token(self, token: str) -> Invitation | None:
        return next((i for i in self._by_id.values() if i.token == token), None)

    async def set_status(
        self, invitation_id: UUID, status: str, *, only_if: str | None = None
    ) -> Invitation | None:
        """Update status; with *only_if*, leave rows in any other status alone.

        Returns the stored invitation after the call, or None if unknown.
        """
        inv = self._by_id.get(invitation_id)
        if inv is None:
            return None
        if only_if is None or inv.status == only_if:
            inv = replace(inv, status=status)
            self._by_id[invitation_id] = inv
        return inv

    async def list_pending(
        self, organization_id: UUID, now: datetime
    ) -> list[Invitation]:
        found = [
            i
            for i in self._by_id.values()
            if i.organization_id == organization_id
            and i.status == "pending"
            and i.expires_at > now
        ]
        return sorted(found, key=lambda i: i.created_at, reverse=True)

    async def count(self, *, organization_id: UUID | None = None) -> int:
        return sum(
            1
            for i in self._by_id.values()
            if organization_id is None or i.organization_id == organization_id
        )
