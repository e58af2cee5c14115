"""Error taxonomy shared by session providers, adapters and the store."""
from __future__ import annotations


class TaskboardError(Exception):
    """Base class for every failure raised by taskboard services."""

    code = "taskboard_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(TaskboardError):
    """A required field was blank or malformed."""

    code = "validation_error"


class AuthError(TaskboardError):
    code = "auth_error"


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"


class DuplicateEmailError(AuthError):
    code = "duplicate_email"


class NotFoundError(TaskboardError):
    """Mutation or deletion of an id that does not exist (or is not visible)."""

    code = "not_found"


class PersistenceError(TaskboardError):
    """The backing store was unreachable or rejected the write."""

    code = "persistence_error"


class UnauthenticatedError(TaskboardError):
    """A call that needs an active session was made without one."""

    code = "unauthenticated"


def require_text(value: str | None, field: str) -> str:
    """Return ``value`` trimmed, raising ValidationError when it is blank."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be blank")
    return cleaned
