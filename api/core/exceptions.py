"""Custom exceptions for the recipe API"""

from typing import List, Optional


class RecipeAPIException(Exception):
    """Base exception for the recipe API"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[List[str]] = None,
        code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.details = list(details or [])
        self.code = code
        super().__init__(self.message)


class DatabaseException(RecipeAPIException):
    """Database-related exceptions"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[List[str]] = None,
        code: str = "DATABASE_ERROR",
        status_code: int = 500,
    ):
        super().__init__(message, status_code=status_code, details=details, code=code)


class ConnectionException(DatabaseException):
    """The database could not be reached, after retries where they apply"""

    def __init__(
        self,
        message: str = "Database is unavailable",
        details: Optional[List[str]] = None,
        code: str = "DATABASE_UNAVAILABLE",
    ):
        super().__init__(message, details=details, code=code, status_code=503)


class PoolExhaustedException(ConnectionException):
    """No pooled connection became free before the connect timeout"""

    def __init__(self, message: str = "Database connection pool exhausted", details: Optional[List[str]] = None):
        super().__init__(message, details=details, code="POOL_EXHAUSTED")


class ConstraintViolationException(DatabaseException):
    """A foreign-key, unique, not-null or check constraint rejected the statement"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[List[str]] = None,
        constraint: Optional[str] = None,
    ):
        self.constraint = constraint
        super().__init__(message, details=details, code=code, status_code=status_code)


class ValidationException(RecipeAPIException):
    """Validation-related exceptions"""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[List[str]] = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(message, status_code=400, details=details, code=code)


class NotFoundException(RecipeAPIException):
    """Resource not found exceptions"""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[List[str]] = None,
        code: str = "NOT_FOUND",
    ):
        super().__init__(message, status_code=404, details=details, code=code)


class ConflictException(RecipeAPIException):
    """Resource conflict exceptions"""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[List[str]] = None,
        code: str = "CONFLICT",
    ):
        super().__init__(message, status_code=409, details=details, code=code)


class ConfigurationError(RecipeAPIException):
    """Application code passed an invalid identifier or shape to the query layer"""

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message, status_code=500, details=details, code="CONFIGURATION_ERROR")
