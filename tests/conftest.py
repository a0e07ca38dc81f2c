from __future__ import annotations

import asyncio
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

# Settings are read once at import time; pin them before portal loads.
os.environ["APP_ENV"] = "test"
os.environ["ADMIN_SETUP_KEY"] = "test-setup-key-0123"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)
os.environ.pop("BASE_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from portal.api.dependencies import get_clock  # noqa: E402
from portal.api.ratelimit import rate_limiter  # noqa: E402
from portal.main import app  # noqa: E402
from portal.models.organization import Organization  # noqa: E402
from portal.models.project import Project  # noqa: E402
from portal.models.user import User  # noqa: E402
from portal.repos.registry import IN_MEMORY, reset_in_memory  # noqa: E402
from portal.services import token_service  # noqa: E402
from portal.services.auth_service import hash_password  # noqa: E402
from portal.services.task_queue import task_queue  # noqa: E402

# Ensure repo root is on sys.path so `import portal` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeClock:
    """Settable stand-in for utc_now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Empty every in-memory repository between tests."""
    reset_in_memory()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(rate_limiter, "_buckets"):
        rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_dependency_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def clock() -> FakeClock:
    """Freeze request time at mid-June 2026 for every route."""
    fake = FakeClock(datetime(2026, 6, 15, 12, 0, tzinfo=UTC))
    app.dependency_overrides[get_clock] = lambda: fake
    return fake


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
    org_id=None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles, org_id=org_id)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


async def _add(repo, item):
    await repo.add(item)
    return item


def create_test_org(name: str = "Acme Media", plan: str = "creator") -> Organization:
    """Create and persist an org in the in-memory repo."""
    org = Organization.new(
        name=name,
        company=f"{name} LLC",
        email=f"{name.lower().replace(' ', '.')}@example.com",
        plan=plan,
    )
    return asyncio.run(_add(IN_MEMORY.orgs, org))


def create_test_projects(
    org: Organization, count: int, created_at: datetime
) -> list[Project]:
    projects = [
        Project.new(organization_id=org.id, title=f"Video {i}", created_at=created_at)
        for i in range(count)
    ]
    for p in projects:
        asyncio.run(_add(IN_MEMORY.projects, p))
    return projects


def create_test_user(
    email: str = "client@example.com",
    password: str = "correct-horse",
    role: str = "client",
    org: Organization | None = None,
) -> User:
    user = User.new(
        email=email,
        password_hash=hash_password(password),
        name="Test User",
        role=role,
        organization_id=org.id if org else None,
    )
    return asyncio.run(_add(IN_MEMORY.users, user))
