"""Contracts (content packages) and the videos delivered under them.

Admin only.  Videos move through the production stages one step at a
time; a video in review can be sent back to editing with feedback.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from portal.api.dependencies import ClockDep, ReposDep, partial_update, require_admin
from portal.models.contract import (
    Contract,
    ContractStatus,
    DeliverableStepError,
    PackageType,
    Video,
)
from portal.models.principal import Principal

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/contracts",
    tags=["contracts"],
    dependencies=[Depends(require_admin)],
)


# --- Pydantic schemas ---


class ContractIn(BaseModel):
    organization_id: UUID
    title: str
    package_type: PackageType
    start_date: date
    value: float = Field(ge=0)
    status: ContractStatus = "draft"
    end_date: date | None = None
    total_months: int | None = Field(default=None, ge=1)
    sync_call_day: int | None = Field(default=None, ge=1, le=31)
    description: str | None = None
    terms: str | None = None


class ContractUpdate(BaseModel):
    organization_id: UUID | None = None
    title: str | None = None
    package_type: PackageType | None = None
    start_date: date | None = None
    value: float | None = Field(default=None, ge=0)
    status: ContractStatus | None = None
    end_date: date | None = None
    total_months: int | None = Field(default=None, ge=1)
    sync_call_day: int | None = Field(default=None, ge=1, le=31)
    description: str | None = None
    terms: str | None = None


class ContractOut(BaseModel):
    id: str
    organization_id: str
    title: str
    package_type: str
    start_date: date
    value: float
    status: str
    end_date: date | None = None
    total_months: int | None = None
    sync_call_day: int | None = None
    description: str | None = None
    terms: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VideoIn(BaseModel):
    title: str
    description: str | None = None
    due_date: date | None = None


class RevisionIn(BaseModel):
    feedback: str = Field(min_length=1)


class VideoOut(BaseModel):
    id: str
    contract_id: str
    title: str
    status: str
    progress_percent: int
    revision_count: int
    feedback: list[str]
    description: str | None = None
    due_date: date | None = None
    delivery_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContractDetailOut(ContractOut):
    videos: list[VideoOut]


def contract_out(c: Contract) -> ContractOut:
    return ContractOut(
        id=str(c.id),
        organization_id=str(c.organization_id),
        title=c.title,
        package_type=c.package_type,
        start_date=c.start_date,
        value=c.value,
        status=c.status,
        end_date=c.end_date,
        total_months=c.total_months,
        sync_call_day=c.sync_call_day,
        description=c.description,
        terms=c.terms,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def video_out(v: Video) -> VideoOut:
    return VideoOut(
        id=str(v.id),
        contract_id=str(v.contract_id),
        title=v.title,
        status=v.status,
        progress_percent=v.progress_percent,
        revision_count=v.revision_count,
        feedback=list(v.feedback),
        description=v.description,
        due_date=v.due_date,
        delivery_date=v.delivery_date,
        created_at=v.created_at,
        updated_at=v.updated_at,
    )


async def _get_or_404(repos: ReposDep, contract_id: UUID) -> Contract:
    contract = await repos.contracts.get_by_id(contract_id)
    if contract is None:
        raise HTTPException(status_code=404, detail="contract not found")
    return contract


async def _get_video_or_404(repos: ReposDep, contract_id: UUID, video_id: UUID) -> Video:
    video = await repos.contracts.get_video(contract_id, video_id)
    if video is None:
        raise HTTPException(status_code=404, detail="video not found")
    return video


async def _require_org(repos: ReposDep, organization_id: UUID) -> None:
    if await repos.orgs.get_by_id(organization_id) is None:
        raise HTTPException(status_code=404, detail="organization not found")


# --- Contracts ---


@router.get("", response_model=list[ContractOut])
async def list_contracts(
    repos: ReposDep,
    organization_id: UUID | None = None,
    status_filter: Annotated[ContractStatus | None, Query(alias="status")] = None,
) -> list[ContractOut]:
    contracts = await repos.contracts.list_filtered(
        organization_id=organization_id, status=status_filter
    )
    return [contract_out(c) for c in contracts]


@router.post("", response_model=ContractOut, status_code=status.HTTP_201_CREATED)
async def create_contract(
    body: ContractIn,
    repos: ReposDep,
    principal: Annotated[Principal, Depends(require_admin)],
) -> ContractOut:
    if not body.title.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="title is required",
        )
    await _require_org(repos, body.organization_id)

    contract = Contract.new(**body.model_dump())
    await repos.contracts.add(contract)
    logger.info(
        "Contract created package=%s by user=%s",
        contract.package_type,
        principal.user_id,
        extra={"organization_id": str(contract.organization_id)},
    )
    return contract_out(contract)


@router.get("/{contract_id}", response_model=ContractDetailOut)
async def get_contract(contract_id: UUID, repos: ReposDep) -> ContractDetailOut:
    contract = await _get_or_404(repos, contract_id)
    videos = await repos.contracts.list_videos(contract_id)
    return ContractDetailOut(
        **contract_out(contract).model_dump(),
        videos=[video_out(v) for v in videos],
    )


@router.put("/{contract_id}", response_model=ContractOut)
async def update_contract(
    contract_id: UUID,
    body: ContractUpdate,
    repos: ReposDep,
    clock: ClockDep,
) -> ContractOut:
    contract = await _get_or_404(repos, contract_id)
    changes = partial_update(
        body,
        required=("organization_id", "title", "package_type", "start_date", "value", "status"),
    )
    if "organization_id" in changes:
        await _require_org(repos, changes["organization_id"])

    updated = await repos.contracts.update(replace(contract, **changes, updated_at=clock()))
    if updated is None:
        raise HTTPException(status_code=404, detail="contract not found")
    return contract_out(updated)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(contract_id: UUID, repos: ReposDep) -> Response:
    await _get_or_404(repos, contract_id)
    await repos.contracts.delete(contract_id)
    logger.info("Contract %s deleted with its videos", contract_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Videos ---


@router.get("/{contract_id}/videos", response_model=list[VideoOut])
async def list_videos(contract_id: UUID, repos: ReposDep) -> list[VideoOut]:
    await _get_or_404(repos, contract_id)
    return [video_out(v) for v in await repos.contracts.list_videos(contract_id)]


@router.post(
    "/{contract_id}/videos",
    response_model=VideoOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_video(contract_id: UUID, body: VideoIn, repos: ReposDep) -> VideoOut:
    await _get_or_404(repos, contract_id)
    if not body.title.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="title is required",
        )
    video = Video.new(
        contract_id=contract_id,
        title=body.title.strip(),
        description=body.description,
        due_date=body.due_date,
    )
    await repos.contracts.add_video(video)
    return video_out(video)


@router.post("/{contract_id}/videos/{video_id}/advance", response_model=VideoOut)
async def advance_video(
    contract_id: UUID,
    video_id: UUID,
    repos: ReposDep,
    clock: ClockDep,
) -> VideoOut:
    video = await _get_video_or_404(repos, contract_id, video_id)
    try:
        advanced = video.advanced(clock())
    except DeliverableStepError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None

    updated = await repos.contracts.update_video(advanced)
    if updated is None:
        raise HTTPException(status_code=404, detail="video not found")
    logger.info("Video %s advanced %s -> %s", video.id, video.status, updated.status)
    return video_out(updated)


@router.post("/{contract_id}/videos/{video_id}/revisions", response_model=VideoOut)
async def request_revision(
    contract_id: UUID,
    video_id: UUID,
    body: RevisionIn,
    repos: ReposDep,
    clock: ClockDep,
) -> VideoOut:
    video = await _get_video_or_404(repos, contract_id, video_id)
    try:
        revised = video.with_revision(body.feedback, clock())
    except DeliverableStepError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None

    updated = await repos.contracts.update_video(revised)
    if updated is None:
        raise HTTPException(status_code=404, detail="video not found")
    logger.info("Revision %d requested for video %s", updated.revision_count, video.id)
    return video_out(updated)
