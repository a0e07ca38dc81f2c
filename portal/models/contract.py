from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Literal, get_args
from uuid import UUID, uuid4

ContractStatus = Literal["draft", "sent", "signed", "active", "completed", "cancelled"]

PackageType = Literal["creator", "studio"]

VideoStatus = Literal[
    "planning", "scripting", "production", "editing", "review", "completed"
]
VIDEO_STATUSES: tuple[str, ...] = get_args(VideoStatus)


class DeliverableStepError(ValueError):
    """A video cannot make the requested move from its current stage."""


@dataclass(frozen=True, slots=True)
class Contract:
    id: UUID
    organization_id: UUID
    title: str
    package_type: PackageType
    start_date: date
    value: float
    status: ContractStatus = "draft"
    end_date: date | None = None
    total_months: int | None = None
    sync_call_day: int | None = None
    description: str | None = None
    terms: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        title: str,
        package_type: PackageType,
        start_date: date,
        value: float,
        status: ContractStatus = "draft",
        end_date: date | None = None,
        total_months: int | None = None,
        sync_call_day: int | None = None,
        description: str | None = None,
        terms: str | None = None,
    ) -> Contract:
        now = datetime.now(UTC)
        return Contract(
            id=uuid4(),
            organization_id=organization_id,
            title=title,
            package_type=package_type,
            start_date=start_date,
            value=value,
            status=status,
            end_date=end_date,
            total_months=total_months,
            sync_call_day=sync_call_day,
            description=description,
            terms=terms,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class Video:
    id: UUID
    contract_id: UUID
    title: str
    status: VideoStatus = "planning"
    description: str | None = None
    due_date: date | None = None
    delivery_date: datetime | None = None
    revision_count: int = 0
    feedback: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(
        *,
        contract_id: UUID,
        title: str,
        description: str | None = None,
        due_date: date | None = None,
    ) -> Video:
        now = datetime.now(UTC)
        return Video(
            id=uuid4(),
            contract_id=contract_id,
            title=title,
            description=description,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )

    @property
    def progress_percent(self) -> int:
        idx = VIDEO_STATUSES.index(self.status)
        return round((idx + 1) / len(VIDEO_STATUSES) * 100)

    def advanced(self, now: datetime) -> Video:
        """Move to the next production stage, stamping delivery on completion."""
        if self.status == "completed":
            raise DeliverableStepError("video is already completed")
        new_status = VIDEO_STATUSES[VIDEO_STATUSES.index(self.status) + 1]
        return replace(
            self,
            status=new_status,
            delivery_date=now if new_status == "completed" else self.delivery_date,
            updated_at=now,
        )

    def with_revision(self, feedback: str, now: datetime) -> Video:
        """Send a video in review back to editing with client feedback."""
        if self.status != "review":
            raise DeliverableStepError("revisions can only be requested during review")
        return replace(
            self,
            status="editing",
            feedback=(*self.feedback, feedback),
            revision_count=self.revision_count + 1,
            updated_at=now,
        )
