"""Translation of asyncpg / socket failures into the API exception taxonomy."""

import errno
import logging
import socket

from core.exceptions import (
    ConnectionException,
    ConstraintViolationException,
    DatabaseException,
    RecipeAPIException,
)

logger = logging.getLogger(__name__)

# connection_exception class plus admin_shutdown, crash_shutdown, cannot_connect_now
TRANSIENT_SQLSTATES = frozenset(
    {"08000", "08001", "08003", "08004", "08006", "57P01", "57P02", "57P03"}
)

TRANSIENT_ERRNOS = frozenset(
    {errno.ECONNRESET, errno.ECONNREFUSED, errno.EHOSTUNREACH, errno.ENETUNREACH}
)

# sqlstate -> (code, status, message)
CONSTRAINT_VIOLATIONS = {
    "23505": ("DUPLICATE_RESOURCE", 409, "Resource already exists"),
    "23503": ("INVALID_REFERENCE", 400, "Referenced resource does not exist or is still in use"),
    "23502": ("MISSING_REQUIRED_FIELD", 400, "Required field is missing"),
    "23514": ("INVALID_FIELD_VALUE", 400, "Field value violates a constraint"),
}


def is_transient_error(exc: BaseException) -> bool:
    """Whether a failure is worth retrying verbatim after a backoff."""
    if getattr(exc, "sqlstate", None) in TRANSIENT_SQLSTATES:
        return True
    if isinstance(exc, socket.gaierror):
        return True
    if isinstance(exc, (ConnectionResetError, ConnectionRefusedError, ConnectionAbortedError)):
        return True
    if isinstance(exc, OSError) and exc.errno in TRANSIENT_ERRNOS:
        return True
    return False


def map_database_error(exc: BaseException) -> RecipeAPIException:
    """Convert a driver error into a RecipeAPIException.

    Exceptions that are already part of the taxonomy are returned unchanged.
    Constraint violations keep only the constraint name in their details so the
    raw server message never reaches a client.
    """
    if isinstance(exc, RecipeAPIException):
        return exc

    sqlstate = getattr(exc, "sqlstate", None)
    if sqlstate in CONSTRAINT_VIOLATIONS:
        code, status_code, message = CONSTRAINT_VIOLATIONS[sqlstate]
        constraint = getattr(exc, "constraint_name", None)
        details = [f"constraint: {constraint}"] if constraint else []
        return ConstraintViolationException(
            message, code=code, status_code=status_code, details=details, constraint=constraint
        )

    if is_transient_error(exc):
        return ConnectionException(details=[str(exc)])

    return DatabaseException(details=[str(exc)])
