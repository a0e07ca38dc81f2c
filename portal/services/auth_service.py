from __future__ import annotations

import hmac
import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from portal.models.user import User
from portal.repos.user_repo import UserRepo
from portal.services.errors import ConflictError, InvalidInvitationError
from portal.services.invitation_service import InvitationService

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

MIN_PASSWORD_LENGTH = 8
MIN_SETUP_KEY_LENGTH = 12


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User | None:
    user = await repo.get_by_email(email)
    if user is None:
        return None
    if not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def setup_key_matches(configured: str | None, supplied: str) -> bool:
    """Admin bootstrap key check.

    A missing, short or placeholder key disables bootstrap entirely.
    """
    if not configured or len(configured) < MIN_SETUP_KEY_LENGTH or configured == "test":
        return False
    return hmac.compare_digest(configured.encode(), supplied.encode())


async def create_first_admin(
    repo: UserRepo, *, name: str, email: str, password: str
) -> User:
    if await repo.exists_with_role("admin"):
        raise ConflictError("an admin account already exists")
    if await repo.get_by_email(email) is not None:
        raise ConflictError("email already registered")

    user = User.new(
        email=email, password_hash=hash_password(password), name=name, role="admin"
    )
    await repo.add(user)
    logger.info("Admin account created user=%s", user.id)
    return user


async def register_invited_user(
    repo: UserRepo,
    invitations: InvitationService,
    *,
    token: str,
    password: str,
    phone: str | None = None,
) -> User:
    """Create the account an invitation was issued for, then accept it."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not await invitations.is_valid(token):
        raise InvalidInvitationError()

    details = await invitations.get_by_token(token)
    invitation = details.invitation
    if await repo.get_by_email(invitation.email) is not None:
        raise ConflictError("email already registered")

    user = User.new(
        email=invitation.email,
        password_hash=hash_password(password),
        name=invitation.name,
        role=invitation.role,
        organization_id=invitation.organization_id,
        phone=phone,
    )
    try:
        await repo.add(user)
    except ValueError:
        raise ConflictError("email already registered") from None
    await invitations.accept(token)
    logger.info(
        "Invited user registered user=%s role=%s",
        user.id,
        user.role,
        extra={"organization_id": str(invitation.organization_id)},
    )
    return user
