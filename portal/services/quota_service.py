"""Monthly project quota enforcement.

Each organization may create a fixed number of projects per calendar
month, set by its plan (studio: 16, anything else: 8).  The window is
the calendar month of the proposed creation time, starting on the 1st
at 00:00:00 in that datetime's own timezone (UTC throughout the portal).

The check is read-then-act: it counts existing projects and the caller
inserts afterwards.  Two concurrent creations for one organization can
both pass and overshoot the quota by one.  No row lock is taken.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from portal.core.metrics import QUOTA_CHECKS
from portal.models.organization import monthly_quota_for
from portal.repos.org_repo import OrgRepo
from portal.repos.project_repo import ProjectRepo
from portal.services.errors import NotFoundError, QuotaExceededError

logger = logging.getLogger(__name__)


def month_window_start(at: datetime) -> datetime:
    return at.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True, slots=True)
class QuotaDecision:
    organization_id: UUID
    limit: int
    used: int
    window_start: datetime

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit


class QuotaChecker:
    def __init__(self, orgs: OrgRepo, projects: ProjectRepo) -> None:
        self._orgs = orgs
        self._projects = projects

    async def usage(self, organization_id: UUID, at: datetime) -> QuotaDecision:
        """Current usage for the month containing *at*. Never raises on quota."""
        org = await self._orgs.get_by_id(organization_id)
        if org is None:
            raise NotFoundError("organization", organization_id)

        window_start = month_window_start(at)
        used = await self._projects.count(
            organization_id=organization_id, created_since=window_start
        )
        return QuotaDecision(
            organization_id=organization_id,
            limit=monthly_quota_for(org.plan),
            used=used,
            window_start=window_start,
        )

    async def check_and_reserve(
        self, organization_id: UUID, proposed_creation_time: datetime
    ) -> QuotaDecision:
        """Permit or refuse one more project for this month.

        Raises NotFoundError for an unknown organization and
        QuotaExceededError when the month's allowance is used up.
        Nothing is written; the caller creates the project.
        """
        decision = await self.usage(organization_id, proposed_creation_time)
        if decision.exhausted:
            QUOTA_CHECKS.labels(result="rejected").inc()
            logger.warning(
                "Project quota reached",
                extra={"organization_id": str(organization_id)},
            )
            raise QuotaExceededError(decision.limit)

        QUOTA_CHECKS.labels(result="permitted").inc()
        logger.debug(
            "Quota check passed used=%d limit=%d",
            decision.used,
            decision.limit,
            extra={"organization_id": str(organization_id)},
        )
        return decision
