"""Typed errors raised by the portal services.

Routers translate these into HTTPException; nothing matches on message
text.  SQLAlchemy errors are deliberately not part of this set.
"""

from __future__ import annotations


class PortalError(Exception):
    pass


class NotFoundError(PortalError):
    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class QuotaExceededError(PortalError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Monthly project limit ({limit}) reached for this organization")
        self.limit = limit


class InvalidInvitationError(PortalError):
    def __init__(self) -> None:
        super().__init__("Invalid or expired invitation token")


class ConflictError(PortalError):
    pass
