"""
Order models for the marketplace.

A Seller lists products; a buyer places an Order with one Seller, made of
OrderLineItems. Commission and seller dues are computed once, when the
order is created, and stored on each line item so later changes to the
platform rate never rewrite history.

Usage:
    from orders.models import Order
    from orders.states import OrderStatus

    order.mark_paid(payment_ref="ntp_123")  # pending -> paid
    order.save()

Note:
    ``Order.status`` is a protected FSMField. Use the transition methods
    (or orders.state_machine.OrderStateMachine) instead of assigning it.
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from django_fsm import FSMField, transition

from core.exceptions import ConflictError
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from orders.states import OrderStatus


class Seller(UUIDPrimaryKeyMixin, BaseModel):
    """
    A marketplace seller receiving payouts.

    Fields:
        name: Display name
        payout_destination: Provider account reference (e.g. Stripe acct_xxx)
        commission_rate: Optional per-seller override of the platform rate (percent)
        payouts_enabled: Payouts are skipped while this is False
    """

    name = models.CharField(max_length=255)

    payout_destination = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Provider account that receives payouts for this seller",
    )

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Commission percent override; platform default when empty",
    )

    payouts_enabled = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Seller"
        verbose_name_plural = "Sellers"

    def __str__(self) -> str:
        return self.name


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A buyer's order with a single seller.

    State Flow:
        See orders.states for the full graph.

    Fields:
        seller: Seller fulfilling the order
        buyer_ref: Opaque buyer identifier
        status: Current FSM state
        currency: ISO 4217 code, upper-case
        subtotal_cents: Sum of quantity * unit price over all lines
        discount_cents: Sum of line discounts
        shipping_fee_cents: Shipping charged to the buyer
        total_cents: subtotal + shipping - discount
        payment_ref: Provider transaction reference once paid
        paid_at / delivered_at / canceled_at / refunded_at: Lifecycle stamps
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    seller = models.ForeignKey(
        Seller,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    buyer_ref = models.CharField(
        max_length=255,
        help_text="Identifier of the buyer in the storefront",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=OrderStatus.PENDING,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the order (managed by FSM)",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    currency = models.CharField(max_length=3, help_text="ISO 4217 currency code")
    subtotal_cents = models.PositiveBigIntegerField()
    discount_cents = models.PositiveBigIntegerField(default=0)
    shipping_fee_cents = models.PositiveBigIntegerField(default=0)
    total_cents = models.PositiveBigIntegerField()

    # ==========================================================================
    # Payment & Lifecycle
    # ==========================================================================

    payment_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Payment provider transaction reference",
    )

    paid_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True, db_index=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["seller", "status"], name="orders_orde_seller__idx"),
            models.Index(fields=["status", "delivered_at"], name="orders_orde_status_dlv_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    total_cents=F("subtotal_cents")
                    + F("shipping_fee_cents")
                    - F("discount_cents")
                ),
                name="order_total_matches_components",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.total_cents / 100:.2f} {self.currency}"
        return f"Order({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[OrderStatus.PENDING, OrderStatus.FAILED],
        target=OrderStatus.PAID,
    )
    def mark_paid(self, payment_ref: str | None = None):
        """
        Record a confirmed payment.

        Transition: PENDING/FAILED -> PAID

        ``paid_at`` is written once and never overwritten.
        """
        if self.paid_at is None:
            self.paid_at = timezone.now()
        if payment_ref:
            self.payment_ref = payment_ref

    @transition(field=status, source=OrderStatus.PENDING, target=OrderStatus.FAILED)
    def mark_payment_failed(self):
        """Transition: PENDING -> FAILED."""

    @transition(field=status, source=OrderStatus.PAID, target=OrderStatus.PACKED)
    def pack(self):
        pass

    @transition(field=status, source=OrderStatus.PACKED, target=OrderStatus.SHIPPED)
    def ship(self):
        pass

    @transition(field=status, source=OrderStatus.SHIPPED, target=OrderStatus.DELIVERED)
    def deliver(self):
        """Transition: SHIPPED -> DELIVERED. Starts payout eligibility."""
        self.delivered_at = timezone.now()

    @transition(
        field=status,
        source=[
            OrderStatus.PENDING,
            OrderStatus.PAID,
            OrderStatus.PACKED,
            OrderStatus.SHIPPED,
        ],
        target=OrderStatus.CANCELED,
    )
    def cancel(self):
        self.canceled_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.DELIVERED,
        target=OrderStatus.RETURN_REQUESTED,
    )
    def request_return(self):
        pass

    @transition(
        field=status,
        source=OrderStatus.RETURN_REQUESTED,
        target=OrderStatus.RETURN_APPROVED,
    )
    def approve_return(self):
        pass

    @transition(
        field=status,
        source=[OrderStatus.RETURN_REQUESTED, OrderStatus.RETURN_APPROVED],
        target=OrderStatus.RETURNED,
    )
    def mark_returned(self):
        pass

    @transition(
        field=status,
        source=[
            OrderStatus.PAID,
            OrderStatus.DELIVERED,
            OrderStatus.RETURN_APPROVED,
        ],
        target=OrderStatus.REFUNDED,
    )
    def mark_refunded(self):
        """
        Transition: PAID/DELIVERED/RETURN_APPROVED -> REFUNDED

        Only applied once a refund for the full order total has completed.
        """
        self.refunded_at = timezone.now()

    # ==========================================================================
    # Aggregates
    # ==========================================================================

    def line_totals(self) -> dict[str, int]:
        """
        Sum the commission snapshot over all line items.

        Returns:
            Dict with ``gross``, ``commission`` and ``seller_due`` in cents.
        """
        totals = self.line_items.aggregate(
            gross=Coalesce(
                Sum(F("quantity") * F("unit_price_cents") - F("discount_cents")),
                0,
            ),
            commission=Coalesce(Sum("commission_amount_cents"), 0),
            seller_due=Coalesce(Sum("seller_due_cents"), 0),
        )
        return {key: int(value) for key, value in totals.items()}


class OrderLineItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    One product line of an order with its commission snapshot.

    Immutable once created: saving an existing line item raises.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="line_items",
    )

    product_ref = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price_cents = models.PositiveBigIntegerField()
    discount_cents = models.PositiveBigIntegerField(default=0)

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text="Commission percent applied when the order was created",
    )
    commission_amount_cents = models.PositiveBigIntegerField()
    seller_due_cents = models.PositiveBigIntegerField()

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Line Item"
        verbose_name_plural = "Order Line Items"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_line_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"OrderLineItem({self.product_ref} x{self.quantity})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ConflictError(
                "Order line items are immutable once created",
                error_code="LINE_ITEM_IMMUTABLE",
                details={"line_item_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    @property
    def gross_cents(self) -> int:
        return self.quantity * self.unit_price_cents - self.discount_cents
