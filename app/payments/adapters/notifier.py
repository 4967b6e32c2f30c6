"""
Email notifier for payment events.

Delivery goes through Django's email backend (EMAIL_BACKEND and friends).
Both notifications are best-effort: callers wrap them in an error boundary,
and a missing recipient is logged and skipped rather than treated as an
error.

Usage:
    notifier = EmailNotifier()
    notifier.notify_payment_confirmed(order)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.mail import send_mail

if TYPE_CHECKING:
    from orders.models import Order
    from payments.models import Refund

logger = logging.getLogger(__name__)


def _format_cents(amount_cents: int, currency: str) -> str:
    return f"{amount_cents / 100:.2f} {currency}"


class EmailNotifier:
    """Notifier implementation that sends plain-text emails."""

    def __init__(
        self,
        from_email: str | None = None,
        alert_recipients: list[str] | None = None,
    ) -> None:
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.alert_recipients = (
            alert_recipients
            if alert_recipients is not None
            else list(getattr(settings, "PAYMENTS_ALERT_EMAILS", []))
        )

    def notify_payment_confirmed(self, order: Order) -> None:
        """Email the buyer that the payment was received."""
        recipient = (order.metadata or {}).get("buyer_email")
        if not recipient:
            logger.info(
                "No buyer email on order, skipping payment confirmation",
                extra={"order_id": str(order.id)},
            )
            return

        send_mail(
            subject=f"Payment received for order {order.id}",
            message=(
                f"We received your payment of "
                f"{_format_cents(order.total_cents, order.currency)} "
                f"for order {order.id}."
            ),
            from_email=self.from_email,
            recipient_list=[recipient],
        )
        logger.info("Payment confirmation sent", extra={"order_id": str(order.id)})

    def notify_refund_failed(self, refund: Refund, reason: str) -> None:
        """Alert staff that a refund needs human follow-up."""
        if not self.alert_recipients:
            logger.warning(
                "No PAYMENTS_ALERT_EMAILS configured, refund failure alert not sent",
                extra={"refund_id": str(refund.id)},
            )
            return

        send_mail(
            subject=f"Refund {refund.id} failed",
            message=(
                f"Refund {refund.id} of "
                f"{_format_cents(refund.amount_cents, refund.currency)} "
                f"for order {refund.order_id} failed.\n\nReason: {reason}"
            ),
            from_email=self.from_email,
            recipient_list=self.alert_recipients,
        )
        logger.info("Refund failure alert sent", extra={"refund_id": str(refund.id)})
