"""
Order admin configuration.

Status is FSM-protected, so it is shown read-only; line items are shown
inline and cannot be edited after creation.
"""

from django.contrib import admin

from orders.models import Order, OrderLineItem, Seller


@admin.register(Seller)
class SellerAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "payout_destination", "commission_rate", "payouts_enabled"]
    list_filter = ["payouts_enabled"]
    search_fields = ["id", "name", "payout_destination"]
    readonly_fields = ["id", "created_at", "updated_at"]


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    can_delete = False
    readonly_fields = [
        "product_ref",
        "quantity",
        "unit_price_cents",
        "discount_cents",
        "commission_rate",
        "commission_amount_cents",
        "seller_due_cents",
    ]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Provides visibility into order status, totals and payment references.
    """

    list_display = [
        "id",
        "seller",
        "status",
        "total_cents",
        "currency",
        "paid_at",
        "delivered_at",
        "created_at",
    ]
    list_filter = ["status", "currency"]
    search_fields = ["id", "buyer_ref", "payment_ref", "seller__name"]
    readonly_fields = [
        "id",
        "status",
        "subtotal_cents",
        "discount_cents",
        "shipping_fee_cents",
        "total_cents",
        "payment_ref",
        "paid_at",
        "delivered_at",
        "canceled_at",
        "refunded_at",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderLineItemInline]
    ordering = ["-created_at"]
