# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the TuitionDesk backend.

Services raise these; `app.errors` turns them into the JSON error envelope
using each class's `status_code`. Repositories raise `RepositoryException`,
which surfaces as a generic 500.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the unified error payload."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "error": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails for reasons the caller cannot fix."""


# Specific business exceptions


class InvalidStatusTransitionException(ConflictException):
    """Raised when a term adjustment is moved along a transition the lifecycle forbids."""

    def __init__(self, current: str, target: str):
        super().__init__(
            message=f"Cannot move term adjustment from '{current}' to '{target}'",
            code="INVALID_STATUS_TRANSITION",
            details={"current_status": current, "target_status": target},
        )


class AdjustmentAlreadyProcessedException(ConflictException):
    """
    Raised when a confirm call finds the adjustment no longer in draft.

    Reported as 404 so clients that only distinguish "not found" keep working,
    while the code and message tell an operator it was already applied.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, adjustment_id: str, current_status: Optional[str] = None):
        super().__init__(
            message=(
                "Adjustment not found or already confirmed. "
                "It may have been processed by another user."
            ),
            code="ADJUSTMENT_ALREADY_PROCESSED",
            details={"adjustment_id": adjustment_id, "current_status": current_status},
        )


class RepositoryException(Exception):
    """A query or write failed in the data access layer."""
