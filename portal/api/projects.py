"""Project endpoints.

Creating a project spends one unit of the organization's monthly quota.
Status can be set freely on update; ``/advance`` steps one position
along the production order.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from portal.api.dependencies import (
    ClockDep,
    QuotaCheckerDep,
    ReposDep,
    ensure_org_access,
    partial_update,
    require_staff,
    require_user,
)
from portal.models.principal import Principal
from portal.models.project import Project, ProjectStatus, next_project_status
from portal.services.errors import NotFoundError, QuotaExceededError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectIn(BaseModel):
    title: str
    organization_id: UUID
    status: ProjectStatus
    description: str | None = None
    start_date: date | None = None
    due_date: date | None = None


class ProjectUpdate(BaseModel):
    title: str | None = None
    status: ProjectStatus | None = None
    description: str | None = None
    start_date: date | None = None
    due_date: date | None = None


class ProjectOut(BaseModel):
    id: str
    organization_id: str
    title: str
    status: str
    created_at: datetime
    start_date: date
    description: str | None = None
    due_date: date | None = None
    updated_at: datetime | None = None


def project_out(p: Project) -> ProjectOut:
    return ProjectOut(
        id=str(p.id),
        organization_id=str(p.organization_id),
        title=p.title,
        status=p.status,
        created_at=p.created_at,
        start_date=p.start_date,
        description=p.description,
        due_date=p.due_date,
        updated_at=p.updated_at,
    )


async def _get_or_404(repos: ReposDep, project_id: UUID, principal: Principal) -> Project:
    project = await repos.projects.get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="project not found")
    ensure_org_access(principal, project.organization_id)
    return project


@router.get("", response_model=list[ProjectOut])
async def list_projects(
    repos: ReposDep,
    principal: Annotated[Principal, Depends(require_user)],
    status_filter: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    organization_id: UUID | None = None,
) -> list[ProjectOut]:
    if not principal.is_admin():
        # Non-admins only ever see their own organization.
        if principal.organization_id is None:
            return []
        if organization_id is not None:
            ensure_org_access(principal, organization_id)
        organization_id = principal.organization_id

    projects = await repos.projects.list_filtered(
        organization_id=organization_id, status=status_filter
    )
    return [project_out(p) for p in projects]


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectIn,
    repos: ReposDep,
    quota: QuotaCheckerDep,
    clock: ClockDep,
    principal: Annotated[Principal, Depends(require_staff)],
) -> ProjectOut:
    if not body.title.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="title is required",
        )
    ensure_org_access(principal, body.organization_id)

    now = clock()
    try:
        await quota.check_and_reserve(body.organization_id, now)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="organization not found") from None
    except QuotaExceededError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from None

    project = Project.new(
        organization_id=body.organization_id,
        title=body.title.strip(),
        created_at=now,
        start_date=body.start_date,
        status=body.status,
        description=body.description,
        due_date=body.due_date,
    )
    await repos.projects.add(project)
    logger.info(
        "Project created by user=%s",
        principal.user_id,
        extra={
            "organization_id": str(project.organization_id),
            "project_id": str(project.id),
        },
    )
    return project_out(project)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: UUID,
    repos: ReposDep,
    principal: Annotated[Principal, Depends(require_user)],
) -> ProjectOut:
    return project_out(await _get_or_404(repos, project_id, principal))


@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    repos: ReposDep,
    clock: ClockDep,
    principal: Annotated[Principal, Depends(require_staff)],
) -> ProjectOut:
    project = await _get_or_404(repos, project_id, principal)
    changes = partial_update(body, required=("title", "status", "start_date"))

    updated = await repos.projects.update(replace(project, **changes, updated_at=clock()))
    if updated is None:
        raise HTTPException(status_code=404, detail="project not found")
    return project_out(updated)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    repos: ReposDep,
    principal: Annotated[Principal, Depends(require_staff)],
) -> Response:
    project = await _get_or_404(repos, project_id, principal)
    await repos.projects.delete(project.id)
    logger.info("Project deleted", extra={"project_id": str(project.id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/advance", response_model=ProjectOut)
async def advance_project(
    project_id: UUID,
    repos: ReposDep,
    clock: ClockDep,
    principal: Annotated[Principal, Depends(require_staff)],
) -> ProjectOut:
    project = await _get_or_404(repos, project_id, principal)
    new_status = next_project_status(project.status)
    if new_status == project.status:
        return project_out(project)

    updated = await repos.projects.update(
        replace(project, status=new_status, updated_at=clock())
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="project not found")
    logger.info(
        "Project advanced %s -> %s",
        project.status,
        new_status,
        extra={"project_id": str(project.id)},
    )
    return project_out(updated)
