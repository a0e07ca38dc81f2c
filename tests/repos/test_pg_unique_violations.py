"""Unique-constraint violations from Postgres surface as ValueError.

Handlers translate ValueError from ``add`` into 409, the same as the
in-memory repos, so the database error must not leak as a 500.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import IntegrityError

from portal.models.organization import Organization
from portal.models.user import User
from portal.repos.pg_org_repo import PgOrgRepo
from portal.repos.pg_user_repo import PgUserRepo


class _UniqueViolationSession:
    """Stands in for AsyncSession; the savepoint flush hits a duplicate key."""

    def __init__(self) -> None:
        self.added: list[object] = []
        self.savepoints = 0

    def add(self, row: object) -> None:
        self.added.append(row)

    @asynccontextmanager
    async def begin_nested(self):
        self.savepoints += 1
        yield
        raise IntegrityError("INSERT", {}, Exception("duplicate key value"))


def test_duplicate_user_email_raises_value_error() -> None:
    session = _UniqueViolationSession()
    user = User.new(email="ada@example.com", password_hash="x", name="Ada", role="client")

    with pytest.raises(ValueError, match="email already exists"):
        asyncio.run(PgUserRepo(session).add(user))  # type: ignore[arg-type]

    assert session.savepoints == 1


def test_duplicate_org_code_raises_value_error() -> None:
    session = _UniqueViolationSession()
    org = Organization.new(
        name="Acme Media",
        company="Acme Media LLC",
        email="hello@acme.test",
        code="ORG-FIXED",
    )

    with pytest.raises(ValueError, match="code already exists"):
        asyncio.run(PgOrgRepo(session).add(org))  # type: ignore[arg-type]
