"""
Payout model for tracking money sent to sellers.

A Payout represents the seller's share of one delivered order leaving the
platform to the seller's payout destination. There is at most one payout
per (order, seller).

Usage:
    from payments.models import Payout

    payout.start_processing()  # pending -> processing, attempts + 1
    payout.save()

    payout.complete(provider_ref="tr_123")  # processing -> paid
    payout.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import PayoutState


class Payout(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Money owed to a seller for one order.

    State Flow:
        PENDING -> PROCESSING -> PAID
        PROCESSING -> PENDING (transient error, next_attempt_at set)
        PROCESSING -> FAILED (permanent error or attempts exhausted)
        FAILED -> PENDING (manual retry)
        PENDING|FAILED -> CANCELLED (refund consumed the whole amount)

    Fields:
        seller: Seller receiving the payout
        order: Order the payout settles
        amount_cents: Sum of the order's line item seller dues (less recoveries)
        currency: ISO 4217 currency code
        status: Current FSM state
        provider_ref: Provider transfer id once paid
        failure_reason: Last error, kept for human follow-up
        attempts: Provider calls made so far
        next_attempt_at: Earliest time the next attempt may run
        paid_at / failed_at / cancelled_at: Lifecycle stamps
        version: Optimistic locking version
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    seller = models.ForeignKey(
        "orders.Seller",
        on_delete=models.PROTECT,
        related_name="payouts",
    )

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payouts",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payout amount in minor units",
    )

    currency = models.CharField(
        max_length=3,
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PayoutState.PENDING,
        choices=PayoutState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    provider_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Provider transfer id",
    )

    failure_reason = models.TextField(null=True, blank=True)

    # ==========================================================================
    # Retry Scheduling
    # ==========================================================================

    attempts = models.PositiveSmallIntegerField(default=0)

    next_attempt_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Earliest time the payout may be attempted again",
    )

    processing_started_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["status", "next_attempt_at"], name="payout_status_next_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "seller"],
                name="unique_payout_per_order_seller",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency}"
        return f"Payout({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=PayoutState.PENDING, target=PayoutState.PROCESSING)
    def start_processing(self):
        """
        Claim the payout for a provider call.

        Transition: PENDING -> PROCESSING
        """
        self.attempts += 1
        self.processing_started_at = timezone.now()
        self.next_attempt_at = None

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.PAID)
    def complete(self, provider_ref: str):
        """Transition: PROCESSING -> PAID."""
        self.provider_ref = provider_ref
        self.paid_at = timezone.now()
        self.failure_reason = None

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.PENDING)
    def schedule_retry(self, next_attempt_at, reason: str):
        """
        Return the payout to the queue after a transient error.

        Transition: PROCESSING -> PENDING
        """
        self.next_attempt_at = next_attempt_at
        self.failure_reason = reason

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.FAILED)
    def fail(self, reason: str):
        """
        Mark the payout as failed. Not retried automatically.

        Transition: PROCESSING -> FAILED
        """
        self.failed_at = timezone.now()
        self.failure_reason = reason

    @transition(field=status, source=PayoutState.FAILED, target=PayoutState.PENDING)
    def retry(self):
        """
        Manual re-trigger of a failed payout.

        Transition: FAILED -> PENDING
        """
        self.attempts = 0
        self.failed_at = None
        self.failure_reason = None
        self.next_attempt_at = None

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.PENDING)
    def release(self):
        """
        Return a payout stuck in processing to the queue.

        Transition: PROCESSING -> PENDING
        """
        self.processing_started_at = None

    @transition(
        field=status,
        source=[PayoutState.PENDING, PayoutState.FAILED],
        target=PayoutState.CANCELLED,
    )
    def cancel(self, reason: str | None = None):
        """
        Cancel a payout whose whole amount was recovered by a refund.

        Transition: PENDING|FAILED -> CANCELLED
        """
        self.cancelled_at = timezone.now()
        if reason:
            self.failure_reason = reason

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_paid(self) -> bool:
        return self.status == PayoutState.PAID

    @property
    def is_due(self) -> bool:
        """Pending and past its backoff window."""
        return self.status == PayoutState.PENDING and (
            self.next_attempt_at is None or self.next_attempt_at <= timezone.now()
        )
