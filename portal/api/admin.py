from __future__ import annotations

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from portal.api.dependencies import ClockDep, ReposDep, require_admin
from portal.models.principal import Principal
from portal.services.quota_service import month_window_start

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

RECENT_REGISTRATION_WINDOW = timedelta(days=7)


class StatsOut(BaseModel):
    total_organizations: int
    total_users: int
    recent_registrations: int
    projects_this_month: int


@router.get("/stats", response_model=StatsOut)
async def admin_stats(
    repos: ReposDep,
    clock: ClockDep,
    principal: Annotated[Principal, Depends(require_admin)],
) -> StatsOut:
    logger.info("Admin stats requested by user=%s", principal.user_id)
    now = clock()
    return StatsOut(
        total_organizations=await repos.orgs.count(),
        total_users=await repos.users.count(),
        recent_registrations=await repos.users.count(
            created_since=now - RECENT_REGISTRATION_WINDOW
        ),
        projects_this_month=await repos.projects.count(
            created_since=month_window_start(now)
        ),
    )
