"""
Refund model for tracking money returned to buyers.

A Refund represents money going back to the buyer of a paid order. An
order has at most one non-void refund; voiding a pending or failed refund
frees the order for a new request.

Usage:
    from payments.models import Refund
    from payments.state_machines import RefundState

    refund = Refund.objects.create(
        order=order,
        amount_cents=2500,
        currency=order.currency,
        reason="Damaged on arrival",
        requested_by="staff:7",
    )

    refund.start_processing()  # pending -> processing
    refund.save()

    refund.complete(provider_ref="re_123")  # processing -> refunded
    refund.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import RefundState

# failure_reason sentinel for refunds waiting on a second approver
APPROVAL_REQUIRED = "approval_required"


class Refund(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Represents money returned to a buyer.

    State Flow:
        PENDING -> PROCESSING -> REFUNDED
        PENDING -> PROCESSING -> FAILED
        PENDING -> VOID
        FAILED -> VOID

    Fields:
        order: Order being refunded
        amount_cents: Refund amount in smallest currency unit
        currency: ISO 4217 currency code (the order's)
        reason: Staff-facing refund reason
        status: Current FSM state
        failure_reason: Provider error, or ``approval_required`` while
            waiting on a second approver
        provider_ref: Provider refund id (re_xxx)
        requested_by / approved_by: Actor ids
        attempts: Provider calls made
        seller_recovered_cents: Amount taken back from the seller
        refunded_at: When the provider confirmed the refund
        version: Optimistic locking version

    Note:
        The partial unique constraint allows any number of void refunds
        but only one refund in any other state per order.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Order being refunded",
    )

    # ==========================================================================
    # Amount & Reason
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Refund amount in smallest currency unit",
    )

    currency = models.CharField(max_length=3)

    reason = models.TextField(blank=True, default="")

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=RefundState.PENDING,
        choices=RefundState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the refund (managed by FSM)",
    )

    failure_reason = models.TextField(null=True, blank=True)

    provider_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Provider refund id",
    )

    # ==========================================================================
    # Actors & Tracking
    # ==========================================================================

    requested_by = models.CharField(max_length=64)
    approved_by = models.CharField(max_length=64, null=True, blank=True)
    voided_by = models.CharField(max_length=64, null=True, blank=True)

    attempts = models.PositiveSmallIntegerField(default=0)

    seller_recovered_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Part of the refund recovered from the seller's share",
    )

    refunded_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=~models.Q(status=RefundState.VOID),
                name="unique_open_refund_per_order",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="refund_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Refund({self.id}, {self.status}, {self.amount_cents / 100:.2f} {self.currency})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=RefundState.PENDING, target=RefundState.PROCESSING)
    def start_processing(self, approved_by: str | None = None):
        """
        Claim the refund for the provider call.

        Transition: PENDING -> PROCESSING
        """
        if approved_by:
            self.approved_by = approved_by
        self.failure_reason = None

    @transition(field=status, source=RefundState.PROCESSING, target=RefundState.REFUNDED)
    def complete(self, provider_ref: str):
        """Transition: PROCESSING -> REFUNDED."""
        self.provider_ref = provider_ref
        self.refunded_at = timezone.now()

    @transition(field=status, source=RefundState.PROCESSING, target=RefundState.FAILED)
    def fail(self, reason: str):
        """
        Mark the refund as failed. Terminal until voided.

        Transition: PROCESSING -> FAILED
        """
        self.failure_reason = reason
        self.failed_at = timezone.now()

    @transition(
        field=status,
        source=[RefundState.PENDING, RefundState.FAILED],
        target=RefundState.VOID,
    )
    def void(self, actor: str, reason: str = ""):
        """Transition: PENDING|FAILED -> VOID."""
        self.voided_by = actor
        self.voided_at = timezone.now()
        if reason:
            self.metadata = {**self.metadata, "void_reason": reason}

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def awaiting_approval(self) -> bool:
        return self.status == RefundState.PENDING and self.failure_reason == APPROVAL_REQUIRED
