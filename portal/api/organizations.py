"""Organization (client account) management.

Admins manage every organization.  Clients and team members can read
their own organization, its projects and its quota.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from portal.api.dependencies import (
    ClockDep,
    InvitationServiceDep,
    QuotaCheckerDep,
    ReposDep,
    partial_update,
    require_admin,
    require_org_access,
)
from portal.api.invitations import InvitationOut, invitation_out
from portal.api.projects import ProjectOut, project_out
from portal.models.organization import Organization, OrganizationStatus, Plan
from portal.models.principal import Principal
from portal.services.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# --- Pydantic schemas ---


class OrganizationIn(BaseModel):
    name: str
    company: str
    email: str
    plan: Plan
    code: str | None = None
    status: OrganizationStatus = "active"
    phone: str | None = None
    industry: str | None = None
    address: str | None = None


class OrganizationUpdate(BaseModel):
    name: str | None = None
    company: str | None = None
    email: str | None = None
    plan: Plan | None = None
    code: str | None = None
    status: OrganizationStatus | None = None
    phone: str | None = None
    industry: str | None = None
    address: str | None = None


class OrganizationOut(BaseModel):
    id: str
    code: str
    name: str
    company: str
    email: str
    plan: str
    status: str
    monthly_quota: int
    phone: str | None = None
    industry: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrganizationListItem(OrganizationOut):
    project_count: int
    user_count: int


class QuotaOut(BaseModel):
    organization_id: str
    plan: str
    limit: int
    used: int
    remaining: int
    window_start: datetime


def org_out(org: Organization) -> OrganizationOut:
    return OrganizationOut(
        id=str(org.id),
        code=org.code,
        name=org.name,
        company=org.company,
        email=org.email,
        plan=org.plan,
        status=org.status,
        monthly_quota=org.monthly_quota,
        phone=org.phone,
        industry=org.industry,
        address=org.address,
        created_at=org.created_at,
        updated_at=org.updated_at,
    )


def _check_email(email: str) -> str:
    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="invalid email address",
        )
    return email


async def _get_or_404(repos: ReposDep, organization_id: UUID) -> Organization:
    org = await repos.orgs.get_by_id(organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")
    return org


# --- Endpoints ---


@router.get("", response_model=list[OrganizationListItem])
async def list_organizations(
    repos: ReposDep,
    _principal: Annotated[Principal, Depends(require_admin)],
) -> list[OrganizationListItem]:
    items = []
    for org in await repos.orgs.list_all():
        items.append(
            OrganizationListItem(
                **org_out(org).model_dump(),
                project_count=await repos.projects.count(organization_id=org.id),
                user_count=await repos.users.count(organization_id=org.id),
            )
        )
    return items


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationIn,
    repos: ReposDep,
    principal: Annotated[Principal, Depends(require_admin)],
) -> OrganizationOut:
    if not body.name.strip() or not body.company.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="name and company are required",
        )
    email = _check_email(body.email)

    if body.code and await repos.orgs.get_by_code(body.code) is not None:
        raise HTTPException(status_code=409, detail="organization code already taken")

    org = Organization.new(
        name=body.name.strip(),
        company=body.company.strip(),
        email=email,
        plan=body.plan,
        code=body.code,
        status=body.status,
        phone=body.phone,
        industry=body.industry,
        address=body.address,
    )
    try:
        await repos.orgs.add(org)
    except ValueError:
        # Generated code collided with an existing one.
        raise HTTPException(
            status_code=409, detail="organization code already taken"
        ) from None

    logger.info(
        "Organization created code=%s plan=%s by user=%s",
        org.code,
        org.plan,
        principal.user_id,
        extra={"organization_id": str(org.id)},
    )
    return org_out(org)


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(
    organization_id: UUID,
    repos: ReposDep,
    _principal: Annotated[Principal, Depends(require_org_access)],
) -> OrganizationOut:
    return org_out(await _get_or_404(repos, organization_id))


@router.put("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    organization_id: UUID,
    body: OrganizationUpdate,
    repos: ReposDep,
    clock: ClockDep,
    _principal: Annotated[Principal, Depends(require_admin)],
) -> OrganizationOut:
    org = await _get_or_404(repos, organization_id)
    changes = partial_update(
        body, required=("name", "company", "email", "plan", "code", "status")
    )

    if "email" in changes:
        changes["email"] = _check_email(changes["email"])
    if "code" in changes and changes["code"] != org.code:
        if await repos.orgs.get_by_code(changes["code"]) is not None:
            raise HTTPException(
                status_code=409, detail="organization code already taken"
            )

    updated = await repos.orgs.update(replace(org, **changes, updated_at=clock()))
    if updated is None:
        raise HTTPException(status_code=404, detail="organization not found")

    if "plan" in changes and changes["plan"] != org.plan:
        logger.info(
            "Organization plan changed %s -> %s",
            org.plan,
            updated.plan,
            extra={"organization_id": str(org.id)},
        )
    return org_out(updated)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    organization_id: UUID,
    repos: ReposDep,
    _principal: Annotated[Principal, Depends(require_admin)],
) -> Response:
    await _get_or_404(repos, organization_id)

    dependants = {
        "projects": await repos.projects.count(organization_id=organization_id),
        "contracts": await repos.contracts.count(organization_id=organization_id),
        "invitations": await repos.invitations.count(organization_id=organization_id),
    }
    blocking = [name for name, n in dependants.items() if n]
    if blocking:
        logger.warning(
            "Organization delete refused, still has %s",
            ", ".join(blocking),
            extra={"organization_id": str(organization_id)},
        )
        raise HTTPException(
            status_code=409,
            detail=f"organization still has {', '.join(blocking)}",
        )

    await repos.orgs.delete(organization_id)
    logger.info("Organization deleted", extra={"organization_id": str(organization_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{organization_id}/projects", response_model=list[ProjectOut])
async def list_organization_projects(
    organization_id: UUID,
    repos: ReposDep,
    _principal: Annotated[Principal, Depends(require_org_access)],
) -> list[ProjectOut]:
    await _get_or_404(repos, organization_id)
    projects = await repos.projects.list_filtered(organization_id=organization_id)
    return [project_out(p) for p in projects]


@router.get("/{organization_id}/quota", response_model=QuotaOut)
async def get_organization_quota(
    organization_id: UUID,
    repos: ReposDep,
    quota: QuotaCheckerDep,
    clock: ClockDep,
    _principal: Annotated[Principal, Depends(require_org_access)],
) -> QuotaOut:
    org = await _get_or_404(repos, organization_id)
    try:
        usage = await quota.usage(organization_id, clock())
    except NotFoundError:
        raise HTTPException(status_code=404, detail="organization not found") from None
    return QuotaOut(
        organization_id=str(organization_id),
        plan=org.plan,
        limit=usage.limit,
        used=usage.used,
        remaining=usage.remaining,
        window_start=usage.window_start,
    )


@router.get("/{organization_id}/invitations", response_model=list[InvitationOut])
async def list_pending_invitations(
    organization_id: UUID,
    repos: ReposDep,
    invitations: InvitationServiceDep,
    _principal: Annotated[Principal, Depends(require_admin)],
) -> list[InvitationOut]:
    await _get_or_404(repos, organization_id)
    pending = await invitations.get_pending_by_organization(organization_id)
    return [invitation_out(i) for i in pending]
