"""
Payment admin configuration.

This file imports admin configurations from the ledger submodule
and registers payment domain models with the Django admin.

Statuses are FSM-protected and shown read-only; state changes go through
the services (see the admin actions).
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.container import get_container
from payments.ledger.admin import LedgerEntryAdmin
from payments.models import Payout, Refund, WebhookEvent
from payments.state_machines import PayoutState

__all__ = [
    "LedgerEntryAdmin",
    "PayoutAdmin",
    "RefundAdmin",
    "WebhookEventAdmin",
]


def _amount(amount_cents: int, currency: str) -> str:
    return f"{amount_cents / 100:.2f} {currency.upper()}"


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payout.

    Provides visibility into payout status and retry history.
    """

    list_display = [
        "id",
        "order",
        "seller",
        "amount_display",
        "status",
        "attempts",
        "next_attempt_at",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "provider_ref", "order__id", "seller__name"]
    readonly_fields = [
        "id",
        "status",
        "attempts",
        "provider_ref",
        "processing_started_at",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
        "version",
    ]
    raw_id_fields = ["order", "seller"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["retry_failed_payouts"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "order", "seller", "status"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount_cents", "currency"),
            },
        ),
        (
            "Provider",
            {
                "fields": ("provider_ref", "attempts", "next_attempt_at"),
            },
        ),
        (
            "Status Timestamps",
            {
                "fields": ("processing_started_at", "paid_at", "failed_at", "cancelled_at"),
            },
        ),
        (
            "Failure Info",
            {
                "fields": ("failure_reason",),
                "classes": ("collapse",),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payout) -> str:
        return _amount(obj.amount_cents, obj.currency)

    @admin.action(description="Retry selected failed payouts")
    def retry_failed_payouts(self, request, queryset):
        retried = 0
        for payout in queryset.filter(status=PayoutState.FAILED):
            try:
                get_container().payouts.retry_payout(payout.pk)
            except BaseApplicationError as e:
                self.message_user(request, f"{payout.pk}: {e.message}", messages.WARNING)
                continue
            retried += 1
        self.message_user(request, f"{retried} payout(s) re-queued.", messages.SUCCESS)

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payouts (audit trail)."""
        return False


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    """Admin configuration for Refund."""

    list_display = [
        "id",
        "order",
        "amount_display",
        "status",
        "awaiting_approval",
        "requested_by",
        "approved_by",
        "refunded_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "provider_ref", "order__id", "requested_by"]
    readonly_fields = [
        "id",
        "order",
        "amount_cents",
        "currency",
        "status",
        "provider_ref",
        "requested_by",
        "approved_by",
        "voided_by",
        "attempts",
        "seller_recovered_cents",
        "refunded_at",
        "failed_at",
        "voided_at",
        "created_at",
        "updated_at",
        "version",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    @admin.display(description="Amount")
    def amount_display(self, obj: Refund) -> str:
        return _amount(obj.amount_cents, obj.currency)

    @admin.display(boolean=True, description="Awaiting approval")
    def awaiting_approval(self, obj: Refund) -> bool:
        return obj.awaiting_approval

    def has_add_permission(self, request) -> bool:
        """Refunds are created through RefundProcessor only."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Read-only audit of provider callbacks. Payloads are stored redacted.
    """

    list_display = [
        "event_id",
        "source",
        "order_ref",
        "status_reported",
        "outcome",
        "error_code",
        "created_at",
    ]
    list_filter = ["source", "outcome", "status_reported", "created_at"]
    search_fields = ["event_id", "order_ref", "provider_ref"]
    readonly_fields = [
        "id",
        "event_id",
        "source",
        "order_ref",
        "status_reported",
        "amount_cents",
        "currency",
        "provider_ref",
        "outcome",
        "error_code",
        "error_message",
        "payload",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False
