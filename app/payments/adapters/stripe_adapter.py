"""
Stripe adapter for payouts and refunds.

This module provides StripeAdapter, the Stripe-backed implementation of
the PayoutProvider and RefundProvider contracts. Payouts are Stripe
Connect transfers to the seller's connected account; refunds are Stripe
refunds of the order's PaymentIntent.

Features:
- Bounded timeouts on all API calls (a timeout is a transient failure)
- SDK errors translated to ProviderError subclasses carrying is_retryable
- Structured logging with timing
- Idempotency keys passed through to Stripe

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK-level network retries (default: 0)

Usage:
    adapter = StripeAdapter()
    result = adapter.send_payout(
        PayoutRequest(
            payout_id=str(payout.id),
            seller_id=str(seller.id),
            destination="acct_123",
            amount_cents=9000,
            currency="RON",
            idempotency_key=IdempotencyKeyGenerator.generate("payout", payout.id),
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import random
import time
import uuid
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from payments.adapters.base import PayoutResult, RefundResult
from payments.exceptions import (
    ProviderAuthenticationError,
    ProviderDeclinedError,
    ProviderError,
    ProviderInvalidAccountError,
    ProviderInvalidRequestError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

if TYPE_CHECKING:
    from typing import Any

    from payments.adapters.base import PayoutRequest, RefundRequest


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for provider calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Payouts and refunds always use attempt 1, so every retry of the same
    entity sends the same key and the provider deduplicates the transfer.

    Example:
        key = IdempotencyKeyGenerator.generate("payout", payout.id)
        # "payout:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_provider_error(error: Exception) -> bool:
    """True if ``error`` is a transient provider error that can be retried."""
    if isinstance(error, ProviderError):
        return error.is_retryable
    return False


def backoff_delay(
    attempt: int,
    base: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
) -> float:
    """
    Calculate exponential backoff delay with optional jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Add 0-25% random jitter

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 1: 2.0 - 2.5 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2 ** max(attempt, 0)), max_delay)
    if jitter:
        delay += delay * random.uniform(0, 0.25)
    return delay


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Stripe implementation of PayoutProvider and RefundProvider.

    Holds its own credentials and HTTP client; nothing is read from the
    stripe module globals at call time except the error classes.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.timeout = (
            timeout if timeout is not None else getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        )
        self.max_retries = (
            max_retries if max_retries is not None else getattr(settings, "STRIPE_MAX_RETRIES", 0)
        )
        self._configure_stripe()

    def _configure_stripe(self) -> None:
        """Install a timeout-bounded HTTP client for Stripe requests."""
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
        stripe.max_network_retries = self.max_retries

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # PayoutProvider
    # =========================================================================

    def send_payout(self, request: PayoutRequest) -> PayoutResult:
        """
        Create a Connect transfer to the seller's account.

        Raises:
            ProviderInvalidAccountError: Destination missing or restricted
            ProviderRateLimitError / ProviderUnavailableError /
            ProviderTimeoutError: Transient, retry later
        """
        logger = self.get_logger()
        log_context = {
            "operation": "send_payout",
            "payout_id": request.payout_id,
            "amount_cents": request.amount_cents,
            "destination": request.destination,
            "idempotency_key": request.idempotency_key,
        }

        if not request.destination:
            raise ProviderInvalidAccountError(
                "Seller has no payout destination",
                details={"payout_id": request.payout_id},
            )

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            transfer = stripe.Transfer.create(
                amount=request.amount_cents,
                currency=request.currency.lower(),
                destination=request.destination,
                metadata={"payout_id": request.payout_id, **request.metadata},
                api_key=self.api_key,
                idempotency_key=request.idempotency_key,
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "transfer_id": transfer.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return PayoutResult(provider_ref=transfer.id)

    # =========================================================================
    # RefundProvider
    # =========================================================================

    def refund(self, request: RefundRequest) -> RefundResult:
        """
        Refund ``amount_cents`` of the order's PaymentIntent.

        Raises:
            ProviderInvalidRequestError: Order has no payment reference, or
                Stripe rejected the refund parameters
        """
        logger = self.get_logger()
        log_context = {
            "operation": "refund",
            "refund_id": request.refund_id,
            "order_id": request.order_id,
            "amount_cents": request.amount_cents,
            "idempotency_key": request.idempotency_key,
        }

        if not request.payment_ref:
            raise ProviderInvalidRequestError(
                "Order has no payment reference to refund",
                details={"order_id": request.order_id},
            )

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            refund = stripe.Refund.create(
                payment_intent=request.payment_ref,
                amount=request.amount_cents,
                metadata={"refund_id": request.refund_id, "order_id": request.order_id},
                api_key=self.api_key,
                idempotency_key=request.idempotency_key,
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "provider_refund_id": refund.id,
                "status": refund.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        if refund.status == "failed":
            raise ProviderDeclinedError(
                "Stripe reported the refund as failed",
                provider_code=getattr(refund, "failure_reason", None),
                details={"provider_ref": refund.id},
            )
        return RefundResult(provider_ref=refund.id, status=refund.status)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: stripe.StripeError,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to ProviderError subclasses.

        Raises:
            ProviderDeclinedError: Card or transfer declined
            ProviderInvalidAccountError: Invalid Connect account
            ProviderInvalidRequestError: Invalid request parameters
            ProviderAuthenticationError: Bad API key or permissions
            ProviderRateLimitError: Rate limited
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Connection failure or 5xx
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": getattr(error, "decline_code", None)},
            )
            raise ProviderDeclinedError(
                str(error.user_message or error),
                provider_code=error.code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if "account" in str(error).lower() or error.param == "destination":
                raise ProviderInvalidAccountError(str(error), provider_code=error.code) from error
            raise ProviderInvalidRequestError(str(error), provider_code=error.code) from error

        if isinstance(error, (stripe.AuthenticationError, stripe.PermissionError)):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise ProviderAuthenticationError(
                "Stripe authentication failed",
                provider_code="authentication_error",
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise ProviderRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                provider_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise ProviderTimeoutError(
                    "Stripe request timed out. Please retry.",
                    provider_code="timeout",
                ) from error
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise ProviderUnavailableError(
                "Could not connect to Stripe. Please retry.",
                provider_code="api_connection_error",
            ) from error

        logger.error(
            f"Stripe API error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise ProviderUnavailableError(
            "Stripe service error. Please retry.",
            provider_code="api_error",
        ) from error
