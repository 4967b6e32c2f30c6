"""
Order status enum.

State Flow:
    PENDING -> PAID -> PACKED -> SHIPPED -> DELIVERED (fulfillment path)
    PENDING -> FAILED -> PAID (payment failed, later succeeded)
    PENDING/PAID/PACKED/SHIPPED -> CANCELED
    DELIVERED -> RETURN_REQUESTED -> RETURN_APPROVED -> RETURNED
    RETURN_REQUESTED -> RETURNED
    PAID/DELIVERED/RETURN_APPROVED -> REFUNDED (full refund completed)
"""

from django.db import models


class OrderStatus(models.TextChoices):
    """
    States for the Order model lifecycle.

    Terminal states: CANCELED, RETURNED, REFUNDED and DELIVERED. DELIVERED
    is terminal for payments and the ledger; only the return flow and a
    full refund leave it.
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Payment Failed"
    PACKED = "packed", "Packed"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELED = "canceled", "Canceled"
    RETURN_REQUESTED = "return_requested", "Return Requested"
    RETURN_APPROVED = "return_approved", "Return Approved"
    RETURNED = "returned", "Returned"
    REFUNDED = "refunded", "Refunded"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELED,
        OrderStatus.RETURNED,
        OrderStatus.REFUNDED,
    }
)

# Orders in these states have been paid for and can be refunded
REFUNDABLE_STATUSES = frozenset(
    {OrderStatus.PAID, OrderStatus.DELIVERED, OrderStatus.RETURN_APPROVED}
)

# Orders in these states have a confirmed payment behind them
PAYMENT_CONFIRMED_STATUSES = frozenset(
    {
        OrderStatus.PAID,
        OrderStatus.PACKED,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.RETURN_REQUESTED,
        OrderStatus.RETURN_APPROVED,
        OrderStatus.RETURNED,
        OrderStatus.REFUNDED,
    }
)
