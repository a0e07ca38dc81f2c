from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, get_args
from uuid import UUID, uuid4

ProjectStatus = Literal[
    "not_started", "writing", "filming", "editing", "revising", "delivered"
]

# Production order.  The UI steps through this list one position at a time.
PROJECT_STATUSES: tuple[str, ...] = get_args(ProjectStatus)


def next_project_status(status: str) -> str:
    """Return the status after *status*; ``delivered`` stays ``delivered``."""
    idx = PROJECT_STATUSES.index(status)
    return PROJECT_STATUSES[min(idx + 1, len(PROJECT_STATUSES) - 1)]


@dataclass(frozen=True, slots=True)
class Project:
    id: UUID
    organization_id: UUID
    title: str
    status: ProjectStatus
    created_at: datetime
    start_date: date
    description: str | None = None
    due_date: date | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        title: str,
        created_at: datetime,
        start_date: date | None = None,
        status: ProjectStatus = "not_started",
        description: str | None = None,
        due_date: date | None = None,
    ) -> Project:
        return Project(
            id=uuid4(),
            organization_id=organization_id,
            title=title,
            status=status,
            created_at=created_at,
            start_date=start_date or created_at.date(),
            description=description,
            due_date=due_date,
            updated_at=created_at,
        )
