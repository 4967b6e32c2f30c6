"""
Orders app configuration.

Owns sellers, orders and their line items together with the order
lifecycle and the commission snapshot taken at order creation.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Configuration for the orders application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
