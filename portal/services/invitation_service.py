"""Invitation token lifecycle.

An invitation starts ``pending`` and ends either ``accepted`` or
``expired``; neither terminal state is ever left.  Expiry is applied
lazily: a pending invitation past its ``expires_at`` is already invalid,
and ``expire_if_needed`` writes the ``expired`` status the next time the
token is looked at.
"""

from __future__ import annotations

import logging
from uuid import UUID

from portal.core.metrics import INVITATION_EVENTS
from portal.models.invitation import (
    INVITATION_ROLES,
    Invitation,
    InvitationDetails,
    is_expired,
)
from portal.models.organization import OrganizationSummary
from portal.repos.invitation_repo import InvitationRepo
from portal.repos.org_repo import OrgRepo
from portal.services.clock import Clock, utc_now
from portal.services.errors import InvalidInvitationError, NotFoundError

logger = logging.getLogger(__name__)


def _token_hint(token: str) -> str:
    return token[:8] + "..."


class InvitationService:
    def __init__(
        self,
        orgs: OrgRepo,
        invitations: InvitationRepo,
        clock: Clock = utc_now,
    ) -> None:
        self._orgs = orgs
        self._invitations = invitations
        self._clock = clock

    async def create(
        self, *, email: str, name: str, role: str, organization_id: UUID
    ) -> Invitation:
        if role not in INVITATION_ROLES:
            raise ValueError(f"role must be one of {INVITATION_ROLES}")
        if await self._orgs.get_by_id(organization_id) is None:
            raise NotFoundError("organization", organization_id)

        invitation = Invitation.new(
            email=email.strip().lower(),
            name=name,
            role=role,
            organization_id=organization_id,
            now=self._clock(),
        )
        await self._invitations.add(invitation)
        INVITATION_EVENTS.labels(event="created").inc()
        logger.info(
            "Invitation created role=%s",
            role,
            extra={
                "invitation_id": str(invitation.id),
                "organization_id": str(organization_id),
            },
        )
        return invitation

    def is_expired(self, invitation: Invitation) -> bool:
        return is_expired(invitation, self._clock())

    async def expire_if_needed(self, token: str) -> Invitation | None:
        """Persist ``expired`` on a pending invitation whose time is up.

        Returns the invitation as stored afterwards, or None for an
        unknown token.  Safe to call concurrently.
        """
        invitation = await self._invitations.get_by_token(token)
        if invitation is None:
            return None
        if invitation.status != "pending" or not self.is_expired(invitation):
            return invitation

        updated = await self._invitations.set_status(
            invitation.id, "expired", only_if="pending"
        )
        INVITATION_EVENTS.labels(event="expired").inc()
        logger.info(
            "Invitation expired token=%s",
            _token_hint(token),
            extra={"invitation_id": str(invitation.id)},
        )
        return updated

    async def is_valid(self, token: str) -> bool:
        invitation = await self.expire_if_needed(token)
        if invitation is None:
            return False
        return invitation.status == "pending" and not self.is_expired(invitation)

    async def get_by_token(self, token: str) -> InvitationDetails:
        invitation = await self._invitations.get_by_token(token)
        if invitation is None:
            raise NotFoundError("invitation", _token_hint(token))

        org = await self._orgs.get_by_id(invitation.organization_id)
        return InvitationDetails(
            invitation=invitation,
            organization=OrganizationSummary.of(org) if org is not None else None,
        )

    async def accept(self, token: str) -> Invitation:
        """Mark the invitation accepted.

        Accepting twice returns the accepted record unchanged.  Expiry is
        not re-checked here; callers run ``is_valid`` first.
        """
        invitation = await self._invitations.get_by_token(token)
        if invitation is None:
            raise NotFoundError("invitation", _token_hint(token))
        if invitation.status == "accepted":
            return invitation
        if invitation.status == "expired":
            raise InvalidInvitationError()

        updated = await self._invitations.set_status(
            invitation.id, "accepted", only_if="pending"
        )
        if updated is None or updated.status != "accepted":
            raise InvalidInvitationError()

        INVITATION_EVENTS.labels(event="accepted").inc()
        logger.info(
            "Invitation accepted",
            extra={
                "invitation_id": str(invitation.id),
                "organization_id": str(invitation.organization_id),
            },
        )
        return updated

    async def get_pending_by_organization(
        self, organization_id: UUID
    ) -> list[Invitation]:
        return await self._invitations.list_pending(organization_id, self._clock())
