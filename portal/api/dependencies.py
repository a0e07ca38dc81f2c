from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated, Any
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from portal.db.engine import async_session_factory
from portal.models.principal import Principal
from portal.repos.registry import IN_MEMORY, Repos
from portal.services import token_service
from portal.services.clock import Clock, utc_now
from portal.services.invitation_service import InvitationService
from portal.services.quota_service import QuotaChecker
from portal.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    org_claim = claims.get("org_id")
    try:
        org_id = UUID(org_claim) if org_claim else None
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        organization_id=org_id,
    )


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles."""

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                roles,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


require_admin = require_role("admin")
require_staff = require_any_role({"admin", "teamMember"})


def require_org_access(
    organization_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> Principal:
    """Admins see every organization; everyone else only their own.

    Reads ``organization_id`` from the route path.
    """
    if not principal.can_access_org(organization_id):
        logger.warning(
            "Access denied: user=%s not in organization",
            principal.user_id,
            extra={"organization_id": str(organization_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this organization",
        )
    return principal


def ensure_org_access(principal: Principal, organization_id: UUID) -> None:
    """Inline form of require_org_access for routes keyed by another id."""
    if not principal.can_access_org(organization_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this organization",
        )


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


def partial_update(body: BaseModel, *, required: tuple[str, ...]) -> dict[str, Any]:
    """Fields the client sent on a PUT.

    An explicit ``null`` clears an optional column; it is refused for
    columns listed in *required*.
    """
    changes = body.model_dump(exclude_unset=True)
    nulled = [name for name in required if name in changes and changes[name] is None]
    if nulled:
        raise HTTPException(
            status_code=422,
            detail=f"{', '.join(nulled)} cannot be null",
        )
    return changes


# ---------------------------------------------------------------------------
# Persistence and services
# ---------------------------------------------------------------------------


async def get_repos() -> AsyncGenerator[Repos, None]:
    """Request-scoped repositories.

    With a database: one session per request, committed when the handler
    returns or raises HTTPException (a handled outcome, so work already
    done such as a lazy invitation expiry is kept), rolled back on any
    other error.  Without one: the shared in-memory bundle.
    """
    if async_session_factory is None:
        yield IN_MEMORY
        return

    async with async_session_factory() as session:
        try:
            yield Repos.postgres(session)
        except HTTPException:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()


def get_clock() -> Clock:
    return utc_now


def get_task_queue() -> TaskQueue:
    return task_queue


ReposDep = Annotated[Repos, Depends(get_repos)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_quota_checker(repos: ReposDep) -> QuotaChecker:
    return QuotaChecker(repos.orgs, repos.projects)


def get_invitation_service(repos: ReposDep, clock: ClockDep) -> InvitationService:
    return InvitationService(repos.orgs, repos.invitations, clock)


QuotaCheckerDep = Annotated[QuotaChecker, Depends(get_quota_checker)]
InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]
TaskQueueDep = Annotated[TaskQueue, Depends(get_task_queue)]
