"""
Django admin configuration for the ledger.

Ledger entries are append-only, so the admin is a read-only window onto
the log: no add, change or delete permissions.
"""

from django.contrib import admin

from .models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Corrections are posted as new offsetting groups through LedgerService,
    never edited here.
    """

    list_display = [
        "group_id",
        "line",
        "account",
        "direction",
        "amount_display",
        "reference_type",
        "reference_id",
        "created_at",
    ]
    list_filter = ["direction", "reference_type", "currency", "created_at"]
    search_fields = ["group_id", "account", "reference_id", "description"]
    readonly_fields = [
        "id",
        "created_at",
        "group_id",
        "line",
        "account",
        "direction",
        "amount_cents",
        "currency",
        "reference_type",
        "reference_id",
        "description",
        "metadata",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at", "group_id", "line"]

    fieldsets = (
        (
            "Entry Details",
            {
                "fields": (
                    "id",
                    "group_id",
                    "line",
                    "account",
                    "direction",
                    "amount_cents",
                    "currency",
                    "created_at",
                ),
            },
        ),
        (
            "Reference",
            {
                "fields": ("reference_type", "reference_id"),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("description", "metadata"),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: LedgerEntry) -> str:
        return f"{obj.amount_cents / 100:.2f} {obj.currency}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
