"""
Django signals for payments app.

Signals:
    order_payment_confirmed: sent after the transaction that moved an order
        to paid has committed. Receivers get ``order``. Payout creation itself
        happens later, once the order is delivered (see
        PayoutOrchestrator.create_eligible_payouts).

Usage:
    from django.dispatch import receiver
    from payments.signals import order_payment_confirmed

    @receiver(order_payment_confirmed)
    def on_paid(sender, order, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)


order_payment_confirmed = Signal()


@receiver(order_payment_confirmed)
def log_payout_eligibility_start(sender, order, **kwargs):
    """Record that the order's seller amount is now owed pending delivery."""
    logger.info(
        "Order payment confirmed, payout pending delivery",
        extra={"order_id": str(order.pk), "seller_id": str(order.seller_id)},
    )


def register_signals():
    """
    Register all payment signals.

    Called from apps.py when app is ready. Receivers above are connected
    on import.
    """
    logger.debug("Payment signals registered")
