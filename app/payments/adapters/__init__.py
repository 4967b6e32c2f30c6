"""
Adapters for external payment collaborators.

All provider calls go through these adapters so that errors, timeouts,
idempotency and logging are handled the same way everywhere. Services
only see the Protocols in payments.adapters.base.

Usage:
    from payments.adapters import StripeAdapter, PayoutRequest

    StripeAdapter().send_payout(PayoutRequest(...))
"""

from payments.adapters.base import (
    InvoiceProvider,
    InvoiceResult,
    InvoiceType,
    Notifier,
    PayoutProvider,
    PayoutRequest,
    PayoutResult,
    RefundProvider,
    RefundRequest,
    RefundResult,
)
from payments.adapters.invoice import LoggingInvoiceProvider
from payments.adapters.notifier import EmailNotifier
from payments.adapters.stripe_adapter import (
    IdempotencyKeyGenerator,
    StripeAdapter,
    backoff_delay,
    is_retryable_provider_error,
)

__all__ = [
    "EmailNotifier",
    "IdempotencyKeyGenerator",
    "InvoiceProvider",
    "InvoiceResult",
    "InvoiceType",
    "LoggingInvoiceProvider",
    "Notifier",
    "PayoutProvider",
    "PayoutRequest",
    "PayoutResult",
    "RefundProvider",
    "RefundRequest",
    "RefundResult",
    "StripeAdapter",
    "backoff_delay",
    "is_retryable_provider_error",
]
