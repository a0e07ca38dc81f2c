from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, get_args
from uuid import UUID, uuid4

from portal.models.organization import OrganizationSummary

InvitationRole = Literal["client", "teamMember"]
INVITATION_ROLES: tuple[str, ...] = get_args(InvitationRole)

InvitationStatus = Literal["pending", "accepted", "expired"]

INVITATION_TTL = timedelta(days=7)

# 32 random bytes -> 64 hex chars (256 bits)
TOKEN_BYTES = 32


def generate_invitation_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


@dataclass(frozen=True, slots=True)
class Invitation:
    id: UUID
    email: str
    name: str
    role: InvitationRole
    organization_id: UUID
    token: str
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime

    @staticmethod
    def new(
        *,
        email: str,
        name: str,
        role: InvitationRole,
        organization_id: UUID,
        now: datetime,
    ) -> Invitation:
        return Invitation(
            id=uuid4(),
            email=email,
            name=name,
            role=role,
            organization_id=organization_id,
            token=generate_invitation_token(),
            status="pending",
            expires_at=now + INVITATION_TTL,
            created_at=now,
        )


def is_expired(invitation: Invitation, now: datetime) -> bool:
    """True once *now* has reached ``expires_at``.

    Pure predicate: looks only at the timestamp, not the stored status.
    """
    return invitation.expires_at <= now


@dataclass(frozen=True, slots=True)
class InvitationDetails:
    invitation: Invitation
    organization: OrganizationSummary | None
