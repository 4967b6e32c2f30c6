"""
Payment-specific exceptions for payment operations.

This module provides the exceptions raised by webhook ingestion,
reconciliation, payouts and refunds, plus the provider error family that
adapters translate SDK errors into.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── WebhookSignatureError - Signature missing or wrong (400, no state change)
    ├── IdempotencyStoreError - Dedup store failed for a non-duplicate reason (500)
    ├── PaymentNotFoundError (NotFoundError family)
    │   ├── PayoutNotFoundError
    │   └── RefundNotFoundError
    └── (see families below)

    ValidationError family:
        WebhookPayloadError - Malformed webhook body
        PaymentAmountMismatchError - Event amount/currency differs from order
        RefundValidationError - Refund amount out of range

    ConflictError family:
        RefundNotAllowedError - Business rule rejects the refund
        PayoutNotRetryableError - Manual retry of a payout that is not failed
        LockAcquisitionError - Distributed lock timeout

    ExternalServiceError family:
        ProviderError - Base for payout/refund provider failures
            ├── ProviderDeclinedError - Declined (permanent)
            ├── ProviderInvalidAccountError - Bad destination (permanent)
            ├── ProviderInvalidRequestError - Bad parameters (permanent)
            ├── ProviderAuthenticationError - Bad credentials (permanent)
            ├── ProviderRateLimitError - Rate limited (transient, retry)
            ├── ProviderUnavailableError - Connection/5xx (transient, retry)
            └── ProviderTimeoutError - Timed out (transient, retry)

Usage:
    from payments.exceptions import ProviderError, RefundNotAllowedError

    try:
        provider.send_payout(request)
    except ProviderError as e:
        if e.is_retryable:
            schedule_retry()
        else:
            mark_failed(e.message)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for payment domain errors."""

    default_error_code: str = "PAYMENT_ERROR"


class WebhookSignatureError(PaymentError):
    """
    Raised when a webhook signature is missing or does not match.

    Nothing is written when this is raised; the endpoint answers 400.
    """

    default_error_code: str = "INVALID_SIGNATURE"


class IdempotencyStoreError(PaymentError):
    """
    Raised when claiming an event key fails for a reason other than a
    duplicate (connection lost, table missing, ...).

    The event is not processed and the webhook answers 500 so that the
    provider redelivers it.
    """

    default_error_code: str = "IDEMPOTENCY_STORE_ERROR"


class WebhookPayloadError(ValidationError):
    """Raised when a webhook body cannot be parsed into a payment event."""

    default_error_code: str = "INVALID_PAYLOAD"


class PaymentAmountMismatchError(ValidationError):
    """
    Raised when a payment event's amount or currency differs from the order.

    Example:
        raise PaymentAmountMismatchError(
            "Payment amount 100.00 RON does not match order total 110.00 RON",
            details={"expected_cents": 11000, "received_cents": 10000},
        )
    """

    default_error_code: str = "AMOUNT_MISMATCH"


class RefundValidationError(ValidationError):
    """Raised when a refund amount is non-positive or exceeds the order total."""

    default_error_code: str = "INVALID_REFUND_AMOUNT"


class RefundNotAllowedError(ConflictError):
    """
    Raised when business rules reject a refund request or approval.

    The error_code carries the structured reason:
        REFUND_ALREADY_EXISTS - Order already has a non-void refund
        ORDER_NOT_REFUNDABLE - Order status does not allow refunds
        PAYOUT_IN_PROGRESS - A payout for the order is being sent
        SAME_ACTOR - Approver is the requester
        APPROVAL_NOT_PENDING - Refund is not waiting for approval
        REFUND_NOT_VOIDABLE - Only pending or failed refunds can be voided
    """

    default_error_code: str = "REFUND_NOT_ALLOWED"


class PayoutNotRetryableError(ConflictError):
    """Raised when a manual retry targets a payout that is not failed."""

    default_error_code: str = "PAYOUT_NOT_RETRYABLE"


class PaymentNotFoundError(NotFoundError):
    default_error_code: str = "PAYMENT_NOT_FOUND"


class PayoutNotFoundError(PaymentNotFoundError):
    default_error_code: str = "PAYOUT_NOT_FOUND"


class RefundNotFoundError(PaymentNotFoundError):
    default_error_code: str = "REFUND_NOT_FOUND"


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(ExternalServiceError):
    """
    Base exception for payout and refund provider failures.

    Provides common attributes for provider error handling:
    - provider_code: The provider's own error code
    - is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry
    """

    default_error_code: str = "PROVIDER_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if provider_code:
            details["provider_code"] = provider_code
        super().__init__(message, error_code=error_code, details=details)
        self.provider_code = provider_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class ProviderDeclinedError(ProviderError):
    default_error_code: str = "PROVIDER_DECLINED"
    is_retryable: bool = False


class ProviderInvalidAccountError(ProviderError):
    """Destination account is missing, restricted or cannot receive funds."""

    default_error_code: str = "INVALID_PROVIDER_ACCOUNT"
    is_retryable: bool = False


class ProviderInvalidRequestError(ProviderError):
    default_error_code: str = "INVALID_PROVIDER_REQUEST"
    is_retryable: bool = False


class ProviderAuthenticationError(ProviderError):
    default_error_code: str = "PROVIDER_AUTHENTICATION_FAILED"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (retry with backoff)
# -----------------------------------------------------------------------------


class ProviderRateLimitError(ProviderError):
    default_error_code: str = "PROVIDER_RATE_LIMITED"
    is_retryable: bool = True


class ProviderUnavailableError(ProviderError):
    """Connection failure or 5xx from the provider."""

    default_error_code: str = "PROVIDER_UNAVAILABLE"
    is_retryable: bool = True


class ProviderTimeoutError(ProviderError):
    """The call exceeded STRIPE_API_TIMEOUT_SECONDS; treat as transient."""

    default_error_code: str = "PROVIDER_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process holds the lock and it could not be acquired within
    the timeout period.

    Example:
        lock = DistributedLock("payout-batch", ttl=900, timeout=0)
        if not lock.acquire():
            raise LockAcquisitionError(
                "Failed to acquire lock 'payout-batch'",
                details={"key": "payout-batch", "timeout": 0}
            )
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"
