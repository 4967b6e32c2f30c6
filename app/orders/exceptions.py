"""
Order-specific exceptions.

Exception Hierarchy:
    OrderNotFoundError (NotFoundError) - Order lookup failed
    InvalidTransitionError (ConflictError) - Status change not allowed
    CommissionValidationError (ValidationError) - Bad line item input
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError


class OrderNotFoundError(NotFoundError):
    """Raised when a referenced order does not exist."""

    default_error_code: str = "ORDER_NOT_FOUND"


class InvalidTransitionError(ConflictError):
    """
    Raised when an order status change is not a legal transition.

    Example:
        raise InvalidTransitionError(
            "Cannot move order from 'pending' to 'shipped'",
            details={"current_status": "pending", "target_status": "shipped"},
        )
    """

    default_error_code: str = "INVALID_TRANSITION"


class CommissionValidationError(ValidationError):
    """Raised when line item quantities, prices or rates are out of range."""

    default_error_code: str = "INVALID_LINE_ITEM"
