"""Invitation endpoints.

Admins create invitations; the invitee follows the emailed link, the
frontend validates the token and finally completes registration.  The
two public endpoints are rate limited because the token is the only
credential involved.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from portal.api.auth import AuthResponse, user_out
from portal.api.dependencies import (
    InvitationServiceDep,
    ReposDep,
    TaskQueueDep,
    require_admin,
)
from portal.api.ratelimit import require_rate_limit
from portal.core.config import SETTINGS
from portal.core.metrics import INVITATION_EVENTS
from portal.models.invitation import Invitation, InvitationRole
from portal.models.principal import Principal
from portal.services import auth_service, token_service
from portal.services.email_service import invitation_link
from portal.services.errors import ConflictError, InvalidInvitationError, NotFoundError
from portal.services.rate_limiter import INVITATION_LIMIT
from portal.services.task_queue import INVITATION_EMAIL_QUEUE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invitations", tags=["invitations"])

_invitation_rate_limit = require_rate_limit(INVITATION_LIMIT, scope="invitations")

INVALID_TOKEN_DETAIL = "Invalid or expired invitation token"


class InvitationIn(BaseModel):
    email: str
    name: str
    role: InvitationRole
    organization_id: UUID


class InvitationOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    organization_id: str
    status: str
    expires_at: datetime
    created_at: datetime


class InvitationCreatedOut(InvitationOut):
    invite_link: str


class OrganizationSummaryOut(BaseModel):
    id: str
    name: str
    company: str


class InvitationDetailsOut(BaseModel):
    name: str
    email: str
    role: str
    organization: OrganizationSummaryOut | None


class CompleteIn(BaseModel):
    token: str
    password: str
    phone: str | None = None


def invitation_out(inv: Invitation) -> InvitationOut:
    return InvitationOut(
        id=str(inv.id),
        email=inv.email,
        name=inv.name,
        role=inv.role,
        organization_id=str(inv.organization_id),
        status=inv.status,
        expires_at=inv.expires_at,
        created_at=inv.created_at,
    )


@router.post("", response_model=InvitationCreatedOut, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    body: InvitationIn,
    invitations: InvitationServiceDep,
    queue: TaskQueueDep,
    principal: Annotated[Principal, Depends(require_admin)],
) -> InvitationCreatedOut:
    if not body.name.strip() or "@" not in body.email:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="name and a valid email are required",
        )

    try:
        inv = await invitations.create(
            email=body.email,
            name=body.name.strip(),
            role=body.role,
            organization_id=body.organization_id,
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail="organization not found") from None

    # Email is best effort: a queue outage must not undo the invitation.
    try:
        await queue.enqueue(
            INVITATION_EMAIL_QUEUE,
            {
                "invitation_id": str(inv.id),
                "email": inv.email,
                "name": inv.name,
                "token": inv.token,
            },
        )
    except Exception:
        INVITATION_EVENTS.labels(event="email_enqueue_failed").inc()
        logger.exception(
            "Could not enqueue invitation email", extra={"invitation_id": str(inv.id)}
        )

    logger.info("Invitation issued by user=%s", principal.user_id)
    return InvitationCreatedOut(
        **invitation_out(inv).model_dump(),
        invite_link=invitation_link(SETTINGS.base_url, inv.token),
    )


@router.get(
    "/validate",
    response_model=InvitationDetailsOut,
    dependencies=[Depends(_invitation_rate_limit)],
)
async def validate_invitation(
    token: Annotated[str, Query(min_length=1)],
    invitations: InvitationServiceDep,
) -> InvitationDetailsOut:
    inv = await invitations.expire_if_needed(token)
    if inv is None or inv.status != "pending" or invitations.is_expired(inv):
        raise HTTPException(status_code=400, detail=INVALID_TOKEN_DETAIL)

    details = await invitations.get_by_token(token)
    org = details.organization
    return InvitationDetailsOut(
        name=details.invitation.name,
        email=details.invitation.email,
        role=details.invitation.role,
        organization=(
            OrganizationSummaryOut(id=str(org.id), name=org.name, company=org.company)
            if org is not None
            else None
        ),
    )


@router.post(
    "/complete",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(_invitation_rate_limit)],
)
async def complete_invitation(
    body: CompleteIn,
    repos: ReposDep,
    invitations: InvitationServiceDep,
) -> AuthResponse:
    try:
        user = await auth_service.register_invited_user(
            repos.users,
            invitations,
            token=body.token,
            password=body.password,
            phone=body.phone,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        ) from None
    except (InvalidInvitationError, NotFoundError):
        raise HTTPException(status_code=400, detail=INVALID_TOKEN_DETAIL) from None
    except ConflictError:
        raise HTTPException(
            status_code=409, detail="A user with this email already exists"
        ) from None

    token = token_service.create_access_token(
        sub=str(user.id), roles=[user.role], org_id=user.organization_id
    )
    return AuthResponse(access_token=token, user=user_out(user))
