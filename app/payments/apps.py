"""
Payments app configuration.

This app provides the money side of the marketplace:
- Webhook ingestion and payment reconciliation
- Double-entry ledger
- Seller payouts and buyer refunds
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        """Connect signal handlers and build the service container."""
        from payments.container import get_container
        from payments.signals import register_signals

        register_signals()
        get_container()
