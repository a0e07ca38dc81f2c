"""Authentication endpoints (/auth/login, /auth/admin-setup, /auth/me).

Login and admin setup both return { access_token, token_type, user }.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from portal.api.dependencies import ReposDep, require_user
from portal.api.ratelimit import require_rate_limit
from portal.core.config import SETTINGS
from portal.models.principal import Principal
from portal.models.user import User
from portal.services import auth_service, token_service
from portal.services.errors import ConflictError
from portal.services.rate_limiter import ADMIN_SETUP_LIMIT, LOGIN_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LoginIn(BaseModel):
    email: str
    password: str


class AdminSetupIn(BaseModel):
    name: str
    email: str
    password: str
    setup_key: str


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    organization_id: str | None = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MeOut(BaseModel):
    user_id: str
    roles: list[str]
    organization_id: str | None = None


def user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        organization_id=str(user.organization_id) if user.organization_id else None,
    )


def _issue(user: User) -> AuthResponse:
    token = token_service.create_access_token(
        sub=str(user.id),
        roles=[user.role],
        org_id=user.organization_id,
    )
    return AuthResponse(access_token=token, user=user_out(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(require_rate_limit(LOGIN_LIMIT, scope="login"))],
)
async def login(payload: LoginIn, repos: ReposDep) -> AuthResponse:
    email = payload.email.lower().strip()

    user = await auth_service.authenticate_user(repos.users, email, payload.password)
    if user is None:
        logger.warning("Login failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid email or password"},
        )

    logger.info("Login succeeded user_id=%s", user.id)
    return _issue(user)


@router.post(
    "/admin-setup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(ADMIN_SETUP_LIMIT, scope="admin-setup"))],
)
async def admin_setup(payload: AdminSetupIn, repos: ReposDep) -> AuthResponse:
    """Create the very first admin account, guarded by ADMIN_SETUP_KEY."""
    if not auth_service.setup_key_matches(SETTINGS.admin_setup_key, payload.setup_key):
        logger.warning("Admin setup rejected: bad or disabled setup key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Invalid setup key"},
        )

    email = payload.email.lower().strip()
    name = payload.name.strip()
    if not EMAIL_RE.match(email):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"message": "Invalid email address"},
        )
    if not name:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"message": "Name is required"},
        )
    if len(payload.password) < auth_service.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"message": "Password must be at least 8 characters"},
        )

    try:
        user = await auth_service.create_first_admin(
            repos.users, name=name, email=email, password=payload.password
        )
    except ConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e)},
        ) from None

    return _issue(user)


@router.get("/me", response_model=MeOut)
def me(principal: Annotated[Principal, Depends(require_user)]) -> MeOut:
    return MeOut(
        user_id=principal.user_id,
        roles=sorted(principal.roles),
        organization_id=(
            str(principal.organization_id) if principal.organization_id else None
        ),
    )
