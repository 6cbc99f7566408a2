# backend/quorum/core/exceptions.py
"""
Domain-specific exceptions for the quorum availability core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
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
    """Raised when input validation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
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


# Specific availability exceptions


class InvalidTimeFormatException(ValidationException):
    """Raised when a time string is not HH:MM (or the 24:00 end-of-day literal)."""

    def __init__(self, value: object):
        super().__init__(
            message=f"Invalid time {value!r}: expected HH:MM (00:00-23:59) or 24:00",
            code="INVALID_TIME_FORMAT",
            details={"value": str(value)},
        )


class InvalidTimezoneException(ValidationException):
    """Raised when a timezone identifier is not in the IANA database."""

    def __init__(self, timezone_name: object):
        super().__init__(
            message=f"Unknown timezone: {timezone_name!r}",
            code="INVALID_TIMEZONE",
            details={"timezone": str(timezone_name)},
        )


class InvalidRuleException(ValidationException):
    """Raised when a rule input does not have the shape its rule type requires."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_RULE", details=details or {})


class DateRangeTooLargeException(BusinessRuleException):
    """Raised when an aggregation is requested over more days than allowed."""

    def __init__(self, requested_days: int, max_days: int):
        super().__init__(
            message=f"Date range of {requested_days} days exceeds the limit of {max_days} days",
            code="DATE_RANGE_TOO_LARGE",
            details={
                "requested_days": requested_days,
                "max_days": max_days,
            },
        )
