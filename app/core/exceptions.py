"""
Exception classes for the application.

Every class carries a machine readable ``code`` that the global exception
handlers copy into the error envelope.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors mapped onto the ``{success: false}`` envelope."""

    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        if code:
            self.code = code
        self.details = details


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: Any = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code, details)


class UnauthorizedError(AppError):
    """Raised when no valid credential accompanies the request."""

    def __init__(self, message: str = "Authentication required", code: str = "AUTH_REQUIRED"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, code)


class ForbiddenError(AppError):
    """Raised when the principal's role or ownership does not allow the operation."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        code: str = "INSUFFICIENT_PERMISSIONS",
    ):
        super().__init__(status.HTTP_403_FORBIDDEN, message, code)


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id=None):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"{resource_type} not found",
            "NOT_FOUND",
            {"resource": resource_type, "id": resource_id} if resource_id is not None else None,
        )


class ConflictError(AppError):
    """Raised when there's a conflict with existing data."""

    def __init__(self, message: str, code: str = "DUPLICATE_ENTRY"):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code)


class InternalError(AppError):
    """Raised for unexpected failures; ``details`` only reach development clients."""

    def __init__(self, message: str = "Internal server error", code: str = "INTERNAL_ERROR", details: Any = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, code, details)


class DatabaseError(InternalError):
    """Raised when database operations fail."""

    def __init__(self, message: str = "Database operation failed", details: Any = None):
        super().__init__(message, "DATABASE_ERROR", details)
