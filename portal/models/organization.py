from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

Plan = Literal["creator", "studio"]
OrganizationStatus = Literal["active", "inactive"]

# Monthly project allowance per plan.  Anything that is not "studio"
# (including plans this code does not know about) gets the creator tier.
STUDIO_MONTHLY_QUOTA = 16
DEFAULT_MONTHLY_QUOTA = 8


def monthly_quota_for(plan: str | None) -> int:
    return STUDIO_MONTHLY_QUOTA if plan == "studio" else DEFAULT_MONTHLY_QUOTA


def generate_org_code() -> str:
    return f"ORG-{secrets.token_hex(3).upper()}"


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    code: str
    name: str
    company: str
    email: str
    plan: Plan = "creator"
    status: OrganizationStatus = "active"
    phone: str | None = None
    industry: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def monthly_quota(self) -> int:
        return monthly_quota_for(self.plan)

    @staticmethod
    def new(
        *,
        name: str,
        company: str,
        email: str,
        plan: Plan = "creator",
        code: str | None = None,
        status: OrganizationStatus = "active",
        phone: str | None = None,
        industry: str | None = None,
        address: str | None = None,
    ) -> Organization:
        now = datetime.now(UTC)
        return Organization(
            id=uuid4(),
            code=code or generate_org_code(),
            name=name,
            company=company,
            email=email,
            plan=plan,
            status=status,
            phone=phone,
            industry=industry,
            address=address,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class OrganizationSummary:
    """Display-only slice of an organization, joined onto invitations."""

    id: UUID
    name: str
    company: str

    @staticmethod
    def of(org: Organization) -> OrganizationSummary:
        return OrganizationSummary(id=org.id, name=org.name, company=org.company)
