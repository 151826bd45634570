# backend/fitsaga/core/exceptions.py
"""
Domain-specific exceptions for the FitSaga platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


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

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# Booking / ledger business exceptions


class SessionNotFoundError(NotFoundException):
    def __init__(self, session_id: str):
        super().__init__(
            message="Session not found",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id},
        )


class SessionUnavailableError(BusinessRuleException):
    """Raised when a session exists but is no longer open for booking."""

    def __init__(self, session_id: str, session_status: str):
        super().__init__(
            message=f"Session is {session_status} and cannot be booked",
            code="SESSION_UNAVAILABLE",
            details={"session_id": session_id, "status": session_status},
        )


class SessionFullError(ConflictException):
    def __init__(self, session_id: str, capacity: Optional[int] = None):
        details: Dict[str, Any] = {"session_id": session_id}
        if capacity is not None:
            details["capacity"] = capacity
        super().__init__(message="Session is full", code="SESSION_FULL", details=details)


class AlreadyBookedError(ConflictException):
    def __init__(self, session_id: str, booking_id: str):
        super().__init__(
            message="You already have a booking for this session",
            code="ALREADY_BOOKED",
            details={"session_id": session_id, "booking_id": booking_id},
        )


class SessionStartedError(BusinessRuleException):
    def __init__(self, session_id: str, start_time: str):
        super().__init__(
            message="Session has already started",
            code="SESSION_STARTED",
            details={"session_id": session_id, "start_time": start_time},
        )


class InsufficientCreditsError(BusinessRuleException):
    """Raised when the permitted credit pools cannot cover a deduction."""

    def __init__(self, required: int, available: int, pool: str):
        self.required = required
        self.available = available
        self.pool = pool
        super().__init__(
            message=f"Not enough credits: {required} required, {available} available",
            code="INSUFFICIENT_CREDITS",
            details={"required": required, "available": available, "pool": pool},
        )


class BookingNotFoundError(NotFoundException):
    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking not found",
            code="BOOKING_NOT_FOUND",
            details={"booking_id": booking_id},
        )


class AlreadyCancelledError(ConflictException):
    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking is already cancelled",
            code="ALREADY_CANCELLED",
            details={"booking_id": booking_id},
        )


class InvalidAdjustmentError(ValidationException):
    def __init__(self, amount: Any, reason: str = "Adjustment amount must be a nonzero integer"):
        super().__init__(
            message=reason,
            code="INVALID_ADJUSTMENT",
            details={"amount": repr(amount)},
        )


class UserNotFoundError(NotFoundException):
    def __init__(self, user_id: str):
        super().__init__(
            message="User not found",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class LedgerConsistencyError(ServiceException):
    """
    An invariant that atomicity should guarantee was found broken.

    Not a business-rule rejection: it points at a defect elsewhere (negative
    balance after a mutation, replay mismatch, enrollment underflow).
    """

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="LEDGER_CONSISTENCY_VIOLATION", details=details)


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
