"""
Order creation service.

Builds an Order and its line items in one transaction, snapshotting the
commission of every line with the CommissionCalculator.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from orders.commission import CommissionCalculator
from orders.exceptions import CommissionValidationError
from orders.models import Order, OrderLineItem

if TYPE_CHECKING:
    from collections.abc import Sequence

    from orders.models import Seller


@dataclass(frozen=True)
class LineItemInput:
    """One requested line of a new order."""

    product_ref: str
    quantity: int
    unit_price_cents: int
    discount_cents: int = 0
    commission_rate: Decimal | None = None


class OrderService(BaseService):
    """Creates orders with their commission snapshot."""

    def __init__(self, calculator: CommissionCalculator | None = None):
        self.calculator = calculator or CommissionCalculator(
            Decimal(str(settings.PLATFORM_COMMISSION_PERCENT))
        )

    def create_order(
        self,
        seller: Seller,
        buyer_ref: str,
        lines: Sequence[LineItemInput],
        shipping_fee_cents: int = 0,
        currency: str | None = None,
    ) -> Order:
        """
        Create a pending order.

        Raises:
            CommissionValidationError: no lines, negative shipping, or a line
                outside the accepted ranges
        """
        if not lines:
            raise CommissionValidationError("An order needs at least one line item")
        if shipping_fee_cents < 0:
            raise CommissionValidationError(
                "Shipping fee cannot be negative",
                details={"shipping_fee_cents": shipping_fee_cents},
            )

        computed = [
            (
                line,
                self.calculator.calculate(
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    discount_cents=line.discount_cents,
                    seller=seller,
                    commission_rate=line.commission_rate,
                ),
            )
            for line in lines
        ]

        subtotal = sum(line.quantity * line.unit_price_cents for line in lines)
        discount = sum(line.discount_cents for line in lines)

        with self.atomic():
            order = Order.objects.create(
                seller=seller,
                buyer_ref=buyer_ref,
                currency=(currency or settings.DEFAULT_CURRENCY).upper(),
                subtotal_cents=subtotal,
                discount_cents=discount,
                shipping_fee_cents=shipping_fee_cents,
                total_cents=subtotal + shipping_fee_cents - discount,
            )
            OrderLineItem.objects.bulk_create(
                [
                    OrderLineItem(
                        order=order,
                        product_ref=line.product_ref,
                        quantity=line.quantity,
                        unit_price_cents=line.unit_price_cents,
                        discount_cents=line.discount_cents,
                        commission_rate=amounts.commission_rate,
                        commission_amount_cents=amounts.commission_cents,
                        seller_due_cents=amounts.seller_due_cents,
                    )
                    for line, amounts in computed
                ]
            )

        self.get_logger().info(
            "Order created",
            extra={
                "order_id": str(order.pk),
                "seller_id": str(seller.pk),
                "total_cents": order.total_cents,
            },
        )
        return order
