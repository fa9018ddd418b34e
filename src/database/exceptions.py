"""Custom exceptions for database operations."""

from typing import Optional


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Database not configured or not reachable."""
    pass


class DatabaseOperationError(DatabaseError):
    """A read or write against one table failed."""

    def __init__(self, message: str, table: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.table = table
        self.operation = operation


class DatabaseConstraintError(DatabaseOperationError):
    """Database constraint violation (duplicate, foreign key, etc)."""
    pass


class EntityNotFoundError(DatabaseError):
    """Requested entity not found."""
    pass


class AppDataFetchError(DatabaseOperationError):
    """The aggregate application data fetch aborted on one of its reads."""

    def __init__(self, source: str, cause: Exception):
        super().__init__(
            f"Failed to fetch {source}: {cause}",
            table=getattr(cause, "table", None),
            operation="select",
        )
        self.source = source
        self.cause = cause


class ValidationError(DatabaseError):
    """Data validation failed before database operation."""
    pass


class PasswordResetError(DatabaseError):
    """Password reset token is invalid, expired or already used."""
    pass
