"""
Contracts for the external collaborators of the payments core.

Services depend on these Protocols, never on a concrete SDK. The
composition root (payments.container) resolves the configured
implementations from dotted paths in settings; tests pass fakes.

Providers signal failure by raising payments.exceptions.ProviderError
subclasses. Best-effort collaborators (invoices) report failure through
their result value instead, so callers can choose an explicit fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any

    from orders.models import Order
    from payments.models import Refund


class InvoiceType:
    RECEIPT = "receipt"
    INVOICE = "invoice"


# =============================================================================
# Requests / Results
# =============================================================================


@dataclass(frozen=True)
class PayoutRequest:
    """
    Money transfer to a seller.

    The idempotency key is stable for the payout, so a retried or
    re-released payout never results in a second transfer.
    """

    payout_id: str
    seller_id: str
    destination: str
    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PayoutResult:
    provider_ref: str
    status: str = "paid"


@dataclass(frozen=True)
class RefundRequest:
    refund_id: str
    order_id: str
    payment_ref: str | None
    amount_cents: int
    currency: str
    idempotency_key: str
    reason: str = ""


@dataclass(frozen=True)
class RefundResult:
    provider_ref: str
    status: str = "refunded"


@dataclass(frozen=True)
class InvoiceResult:
    """Outcome of an invoice request; ``ok`` drives the receipt fallback."""

    ok: bool
    invoice_type: str
    reference: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, invoice_type: str, reference: str) -> InvoiceResult:
        return cls(ok=True, invoice_type=invoice_type, reference=reference)

    @classmethod
    def failure(cls, invoice_type: str, error: str) -> InvoiceResult:
        return cls(ok=False, invoice_type=invoice_type, error=error)


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class PayoutProvider(Protocol):
    def send_payout(self, request: PayoutRequest) -> PayoutResult:
        """Transfer money to the seller, raising ProviderError on failure."""
        ...


@runtime_checkable
class RefundProvider(Protocol):
    def refund(self, request: RefundRequest) -> RefundResult:
        """Return money to the buyer, raising ProviderError on failure."""
        ...


@runtime_checkable
class InvoiceProvider(Protocol):
    def request_invoice(self, order_id: str, invoice_type: str) -> InvoiceResult: ...


@runtime_checkable
class Notifier(Protocol):
    def notify_payment_confirmed(self, order: Order) -> None: ...

    def notify_refund_failed(self, refund: Refund, reason: str) -> None: ...


def describe(provider: Any) -> str:
    """Dotted class name, used in log context."""
    cls = type(provider)
    return f"{cls.__module__}.{cls.__qualname__}"
