"""
Error taxonomy for token generation, connection setup, and the read query.

Handlers only need to tell ``PermissionDeniedError`` (403) apart from every
other ``DatabaseError`` (500).
"""

from typing import Any

PERMISSION_DENIED_MESSAGE = (
    "Permission denied: the compute instance's IAM role is not allowed "
    "to authenticate to the database"
)

# MySQL ER_ACCESS_DENIED_ERROR
MYSQL_ACCESS_DENIED = 1045

_PERMISSION_HINTS = ("access denied", "accessdenied", "credentials", "permission")


class DatabaseError(Exception):
    """Base class for everything that can go wrong talking to the database."""

    def __init__(self, message: str = "", *, cause: BaseException | None = None):
        if not message and cause is not None:
            message = describe(cause)
        super().__init__(message)
        self.cause = cause


class AuthError(DatabaseError):
    """Raised when an auth token cannot be generated."""

    pass


class PermissionDeniedError(AuthError):
    """Raised when the compute identity lacks rights to authenticate."""

    def __init__(self, message: str = PERMISSION_DENIED_MESSAGE, *, cause: Any = None):
        super().__init__(message, cause=cause)


class DatabaseConnectionError(DatabaseError):
    """Raised when a physical connection cannot be opened or validated."""

    pass


class QueryError(DatabaseError):
    """Raised when the read query fails on an established connection."""

    pass


def describe(exc: BaseException) -> str:
    """Human-readable cause; never empty."""
    text = str(exc).strip()
    return text or type(exc).__name__


def has_permission_hint(exc: BaseException) -> bool:
    """Fallback for identity clients that only expose a name and a message."""
    haystack = f"{type(exc).__name__} {exc}".lower()
    return any(hint in haystack for hint in _PERMISSION_HINTS)


def is_mysql_access_denied(exc: BaseException) -> bool:
    args = getattr(exc, "args", ())
    return bool(args) and args[0] == MYSQL_ACCESS_DENIED
