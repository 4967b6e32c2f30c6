"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payout States:
    pending -> processing -> paid
    processing -> pending (transient provider error, retried later)
    processing -> failed (permanent error or attempts exhausted)
    failed -> pending (manual re-trigger)
    pending -> cancelled (a refund consumed the whole amount)

Refund States:
    pending -> processing -> refunded
    processing -> failed
    pending/failed -> void
"""

from django.db import models


class PayoutState(models.TextChoices):
    """
    States for the Payout model lifecycle.

    Terminal states: PAID, CANCELLED. FAILED waits for a manual retry.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class RefundState(models.TextChoices):
    """
    States for the Refund model lifecycle.

    PENDING covers both "waiting for approval" (failure_reason is
    ``approval_required``) and "about to be processed".
    Terminal states: REFUNDED, VOID. FAILED can only be voided.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"
    VOID = "void", "Void"


# Refunds in these states block payouts and further refund requests
ACTIVE_REFUND_STATES = (RefundState.PENDING, RefundState.PROCESSING)

# Refunds in these states still occupy the order's single refund slot
NON_VOID_REFUND_STATES = (
    RefundState.PENDING,
    RefundState.PROCESSING,
    RefundState.REFUNDED,
    RefundState.FAILED,
)


class WebhookSource(models.TextChoices):
    """Wire variant a webhook arrived in."""

    LEGACY = "legacy", "Legacy form callback"
    V2 = "v2", "JSON v2 callback"


class WebhookOutcome(models.TextChoices):
    """What reconciliation did with a first-seen webhook event."""

    PROCESSED = "processed", "Processed"
    REJECTED = "rejected", "Rejected"
