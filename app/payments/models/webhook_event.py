"""
WebhookEvent model for payment provider callbacks.

Every first-seen provider notification leaves one WebhookEvent row. The
unique ``event_id`` is the deduplication key: inserting a second row with
the same key fails with a uniqueness violation, which the idempotency
guard reads as "already claimed". Rows are kept as an audit trail of what
the provider told us and what reconciliation did with it.

Usage:
    from payments.models import WebhookEvent
    from payments.state_machines import WebhookOutcome

    WebhookEvent.objects.filter(order_ref=str(order.id), outcome=WebhookOutcome.REJECTED)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import WebhookOutcome, WebhookSource


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Dedup and audit record for one provider notification.

    Processing Flow:
        1. Verify the signature (nothing is written on failure)
        2. Claim event_id by inserting this row (duplicate -> acknowledge)
        3. Reconcile in the same transaction
        4. Record outcome; a crash rolls back the claim with everything else

    Fields:
        event_id: Derived deterministic key (sha256 hex), unique
        source: legacy or v2 wire variant
        order_ref: Order id as sent by the provider
        status_reported: Normalized status (paid / failed)
        amount_cents / currency: Amount reported by the provider
        provider_ref: Provider transaction id, when sent
        outcome: processed or rejected
        error_code / error_message: Why a rejected event was rejected
        payload: Raw payload with sensitive values redacted
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    event_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Derived event key - unique constraint for idempotency",
    )

    source = models.CharField(
        max_length=10,
        choices=WebhookSource.choices,
        help_text="Wire variant of the callback",
    )

    order_ref = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Order id reported by the provider",
    )

    status_reported = models.CharField(
        max_length=20,
        help_text="Normalized payment status (paid / failed)",
    )

    amount_cents = models.BigIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=3, blank=True, default="")

    provider_ref = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Provider transaction id, when present",
    )

    # ==========================================================================
    # Outcome
    # ==========================================================================

    outcome = models.CharField(
        max_length=20,
        choices=WebhookOutcome.choices,
        default=WebhookOutcome.PROCESSED,
        db_index=True,
    )

    error_code = models.CharField(max_length=64, blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    payload = models.JSONField(
        default=dict,
        help_text="Callback payload with sensitive values redacted",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["outcome", "created_at"], name="webhook_outcome_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.source}, order={self.order_ref}, {self.status_reported})"

    @property
    def is_rejected(self) -> bool:
        return self.outcome == WebhookOutcome.REJECTED

    def mark_rejected(self, error_code: str, error_message: str) -> None:
        """
        Record why reconciliation refused the event.

        Note: Does not save - caller must save after calling.
        """
        self.outcome = WebhookOutcome.REJECTED
        self.error_code = error_code
        self.error_message = error_message
