"""
Domain-specific exceptions for the scheduling core.

Configuration problems (bad timezone, bad booking config, bad recurrence rule)
are operator-facing and surface as 5xx-class errors. Booking outcomes a
visitor can cause ("slot taken", "slot not offered") map to 4xx responses.
An invalid cancellation link is not an exception at all: the token service
returns ``None``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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
        """Default conversion to HTTPException (override in subclasses)."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Configuration errors (fail loud)


class InvalidTimezoneException(ServiceException):
    """Raised when an IANA zone identifier cannot be resolved."""

    def __init__(self, timezone_name: Optional[str]):
        super().__init__(
            message=f"Unknown timezone: {timezone_name!r}",
            code="INVALID_TIMEZONE",
            details={"timezone": timezone_name},
        )


class InvalidConfigException(ServiceException):
    """Raised when a booking configuration cannot produce slots."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_CONFIG", details=details or {})


class InvalidRecurrenceRuleException(ServiceException):
    """Raised when a recurrence rule is missing or has contradictory fields."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_RECURRENCE_RULE", details=details or {})


# Visitor-facing booking outcomes


class SlotUnavailableException(ConflictException):
    """Raised when a requested slot has been taken since it was offered."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message
            or "The requested time slot is no longer available. Please choose another time.",
            code="SLOT_UNAVAILABLE",
            details=details or {},
        )


class SlotNotFoundException(ValidationException):
    """Raised when a requested slot is not one the tenant's schedule offers."""

    def __init__(self, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="The requested time slot is not valid. Please check availability.",
            code="SLOT_NOT_FOUND",
            details=details or {},
        )


class CancellationNotAllowedException(BusinessRuleException):
    """Raised when an event's status does not allow a cancellation."""

    def __init__(self, status_value: str):
        super().__init__(
            message=f"Booking cannot be cancelled (status: {status_value})",
            code="CANCELLATION_NOT_ALLOWED",
            details={"status": status_value},
        )
