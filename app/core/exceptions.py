"""
Base exception classes for application-wide error handling.

Every domain error in the project derives from BaseApplicationError so that
views, Celery tasks and the webhook endpoint can render a consistent payload
with a machine-readable error code.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input or amounts outside business bounds
    ├── NotFoundError - Referenced record does not exist
    ├── ConflictError - State conflicts (duplicates, illegal transitions)
    └── ExternalServiceError - Payment/payout/refund provider failures

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Refund exceeds order total", error_code="REFUND_EXCEEDS_TOTAL")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, states)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Order not found",
                "error_code": "ORDER_NOT_FOUND",
                "details": {"order_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for malformed webhook payloads, non-positive or oversized amounts,
    unbalanced ledger groups and similar service-layer checks. DRF serializer
    validation stays in serializers.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a referenced record (order, payout, refund) does not exist."""

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Covers duplicate refunds, illegal state transitions, stale versions and
    lock contention. HTTP 409 Conflict is the matching status.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Provider adapters translate SDK errors into subclasses of this class so
    that callers never depend on a vendor exception type.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
