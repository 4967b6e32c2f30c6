"""
Payment provider callback parsing.

The provider delivers payment notifications in two wire variants:

    legacy  form-encoded: order_id, status, amount, currency, signature
    v2      JSON: {"payment": {"ntpID", "status", "amount", "currency"},
                   "order": {"orderID", "amount", "currency"},
                   "error": {"code", "message"}}

Both are parsed into a tagged callback (LegacyCallback | V2Callback) and
then normalized into one PaymentEvent, which is all the reconciler sees.

Amounts arrive in major units ("110.00", 110) and are converted to minor
units with decimal arithmetic.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Union

from django.conf import settings

from payments.exceptions import WebhookPayloadError, WebhookSignatureError
from payments.state_machines import WebhookSource

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any


PAID = "paid"
FAILED = "failed"

LEGACY_PAID_STATUSES = frozenset({"success", "paid", "confirmed"})
LEGACY_FAILED_STATUSES = frozenset(
    {"failed", "canceled", "cancelled", "rejected", "declined", "error"}
)

V2_PAID_STATUSES = frozenset({3, 5})
V2_FAILED_STATUSES = frozenset({4, 12})

SIGNATURE_FIELD = "signature"
V2_SIGNATURE_HEADER = "X-Signature"


# =============================================================================
# Callback Variants
# =============================================================================


@dataclass(frozen=True)
class LegacyCallback:
    """Form-encoded callback. ``fields`` holds every field except the signature."""

    order_id: str
    status: str
    amount: str
    currency: str
    signature: str
    fields: dict[str, str] = field(default_factory=dict)

    source = WebhookSource.LEGACY

    @property
    def raw_status(self) -> str:
        return self.status

    def payload(self) -> dict[str, Any]:
        return {**self.fields, SIGNATURE_FIELD: self.signature}


@dataclass(frozen=True)
class V2Callback:
    """JSON callback. ``raw_body`` is kept for signature verification."""

    payment: dict[str, Any]
    order: dict[str, Any]
    error: dict[str, Any]
    raw_body: bytes

    source = WebhookSource.V2

    @property
    def raw_status(self) -> str:
        return str(self.payment.get("status"))

    def payload(self) -> dict[str, Any]:
        return {"payment": self.payment, "order": self.order, "error": self.error}


Callback = Union[LegacyCallback, V2Callback]


@dataclass(frozen=True)
class PaymentEvent:
    """Provider-independent payment notification."""

    order_id: str
    status: str
    amount_cents: int
    currency: str
    provider_ref: str | None
    event_id: str
    source: str


# =============================================================================
# Parsing
# =============================================================================


def parse_callback(body: bytes, content_type: str, form: Mapping[str, str]) -> Callback:
    """
    Parse a raw request into one of the callback variants.

    JSON bodies are v2; anything else is read as a legacy form.

    Raises:
        WebhookPayloadError: body is not a recognizable callback
    """
    if "json" in (content_type or "").lower() or body.lstrip().startswith(b"{"):
        return parse_v2(body)
    return parse_legacy(form)


def parse_legacy(form: Mapping[str, str]) -> LegacyCallback:
    fields = {key: str(form[key]) for key in form if key != SIGNATURE_FIELD}
    missing = [name for name in ("order_id", "status", "amount") if not fields.get(name)]
    if missing:
        raise WebhookPayloadError(
            "Legacy callback is missing required fields",
            details={"missing": missing},
        )
    return LegacyCallback(
        order_id=fields["order_id"].strip(),
        status=fields["status"].strip().lower(),
        amount=fields["amount"].strip(),
        currency=(fields.get("currency") or settings.DEFAULT_CURRENCY).strip().upper(),
        signature=str(form.get(SIGNATURE_FIELD, "")),
        fields=fields,
    )


def parse_v2(body: bytes) -> V2Callback:
    try:
        data = json.loads(body or b"")
    except (ValueError, UnicodeDecodeError) as e:
        raise WebhookPayloadError("Callback body is not valid JSON") from e

    if not isinstance(data, dict):
        raise WebhookPayloadError("Callback body must be a JSON object")

    payment = data.get("payment") or {}
    order = data.get("order") or {}
    error = data.get("error") or {}
    if not all(isinstance(part, dict) for part in (payment, order, error)):
        raise WebhookPayloadError("payment, order and error must be objects")
    if not order.get("orderID"):
        raise WebhookPayloadError("v2 callback is missing order.orderID")
    if order.get("amount") is None and payment.get("amount") is None:
        raise WebhookPayloadError("v2 callback carries no amount")

    return V2Callback(payment=payment, order=order, error=error, raw_body=body)


def to_minor_units(amount: Any) -> int:
    """
    Convert a major-unit amount to minor units.

    Examples:
        to_minor_units("110.00") == 11000
        to_minor_units(110) == 11000
        to_minor_units("0.125") == 13
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as e:
        raise WebhookPayloadError(
            f"Invalid amount: {amount!r}",
            details={"amount": str(amount)},
        ) from e
    if not value.is_finite() or value < 0:
        raise WebhookPayloadError(
            f"Invalid amount: {amount!r}",
            details={"amount": str(amount)},
        )
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# Normalization
# =============================================================================


def derive_event_id(
    order_id: str,
    status: str,
    amount_cents: int,
    provider_ref: str | None,
) -> str:
    """
    Deterministic event key.

    With a provider transaction id the key is that id plus the status, so
    the same transaction reported in either wire variant collapses. Without
    one the key falls back to order, status and amount; a different status
    or amount is a different event.
    """
    if provider_ref:
        raw = f"txn|{provider_ref}|{status}"
    else:
        raw = f"derived|{order_id}|{status}|{amount_cents}"
    return hashlib.sha256(raw.encode()).hexdigest()


def _legacy_status(callback: LegacyCallback) -> str | None:
    if callback.status in LEGACY_PAID_STATUSES:
        return PAID
    if callback.status in LEGACY_FAILED_STATUSES:
        return FAILED
    return None


def _v2_status(callback: V2Callback) -> str | None:
    error_code = str(callback.error.get("code") or "0").strip()
    if error_code.strip("0"):
        return FAILED
    try:
        status = int(callback.payment.get("status"))
    except (TypeError, ValueError):
        return None
    if status in V2_PAID_STATUSES:
        return PAID
    if status in V2_FAILED_STATUSES:
        return FAILED
    return None


def normalize(callback: Callback) -> PaymentEvent | None:
    """
    Turn a callback into a PaymentEvent.

    Returns None when the reported status is neither paid nor failed.
    """
    if isinstance(callback, LegacyCallback):
        status = _legacy_status(callback)
        if status is None:
            return None
        order_id = callback.order_id
        amount_cents = to_minor_units(callback.amount)
        currency = callback.currency
        provider_ref = callback.fields.get("transaction_id") or None
    else:
        status = _v2_status(callback)
        if status is None:
            return None
        order_id = str(callback.order["orderID"]).strip()
        amount = callback.payment.get("amount")
        if amount is None:
            amount = callback.order.get("amount")
        amount_cents = to_minor_units(amount)
        currency = str(
            callback.payment.get("currency")
            or callback.order.get("currency")
            or settings.DEFAULT_CURRENCY
        ).upper()
        provider_ref = str(callback.payment.get("ntpID") or "").strip() or None

    return PaymentEvent(
        order_id=order_id,
        status=status,
        amount_cents=amount_cents,
        currency=currency,
        provider_ref=provider_ref,
        event_id=derive_event_id(order_id, status, amount_cents, provider_ref),
        source=callback.source,
    )


# =============================================================================
# Signatures
# =============================================================================


def sign_fields(fields: Mapping[str, str], secret: str) -> str:
    """Hex HMAC-SHA256 over ``key=value`` pairs sorted by key, joined by ``&``."""
    message = "&".join(f"{key}={fields[key]}" for key in sorted(fields))
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def sign_body(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(
    callback: Callback,
    secret: str,
    signature_header: str | None = None,
    verify_v2: bool = False,
) -> None:
    """
    Check the callback signature.

    Legacy callbacks are always verified. V2 callbacks are verified only
    when ``verify_v2`` is on.

    Raises:
        WebhookSignatureError: signature missing or wrong
    """
    if isinstance(callback, LegacyCallback):
        if not callback.signature:
            raise WebhookSignatureError("Missing callback signature")
        expected = sign_fields(callback.fields, secret)
        provided = callback.signature.strip().lower()
    else:
        if not verify_v2:
            return
        if not signature_header:
            raise WebhookSignatureError(f"Missing {V2_SIGNATURE_HEADER} header")
        expected = sign_body(callback.raw_body, secret)
        provided = signature_header.strip().lower()

    if not hmac.compare_digest(expected.encode(), provided.encode()):
        raise WebhookSignatureError(
            "Callback signature does not match",
            details={"source": callback.source},
        )
