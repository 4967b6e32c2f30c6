"""
Factory Boy factories for order test data.

Usage:
    from orders.tests.factories import OrderFactory, OrderLineItemFactory, SellerFactory

    order = OrderFactory(status=OrderStatus.DELIVERED, delivered_at=timezone.now())
    OrderLineItemFactory(order=order, unit_price_cents=10000)
"""

import uuid
from decimal import Decimal

import factory

from orders.models import Order, OrderLineItem, Seller
from orders.states import OrderStatus


class SellerFactory(factory.django.DjangoModelFactory):
    """Factory for creating Seller instances with payouts enabled."""

    class Meta:
        model = Seller
        skip_postgeneration_save = True

    name = factory.Sequence(lambda n: f"Seller {n}")
    payout_destination = factory.LazyFunction(lambda: f"acct_{uuid.uuid4().hex[:16]}")
    commission_rate = None
    payouts_enabled = True


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Order instances.

    Defaults to a pending 110.00 RON order: 100.00 of goods plus 10.00
    shipping. Line items are not created; use OrderLineItemFactory or
    OrderService.create_order when the commission snapshot matters.
    """

    class Meta:
        model = Order
        skip_postgeneration_save = True

    seller = factory.SubFactory(SellerFactory)
    buyer_ref = factory.Sequence(lambda n: f"buyer-{n}")
    status = OrderStatus.PENDING
    currency = "RON"
    subtotal_cents = 10000
    discount_cents = 0
    shipping_fee_cents = 1000
    total_cents = factory.LazyAttribute(
        lambda o: o.subtotal_cents + o.shipping_fee_cents - o.discount_cents
    )
    metadata = factory.LazyFunction(dict)


class OrderLineItemFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating OrderLineItem instances at a 10% commission.
    """

    class Meta:
        model = OrderLineItem
        skip_postgeneration_save = True

    order = factory.SubFactory(OrderFactory)
    product_ref = factory.Sequence(lambda n: f"sku-{n}")
    quantity = 1
    unit_price_cents = 10000
    discount_cents = 0
    commission_rate = Decimal("10.00")
    commission_amount_cents = factory.LazyAttribute(
        lambda o: (o.quantity * o.unit_price_cents - o.discount_cents) // 10
    )
    seller_due_cents = factory.LazyAttribute(
        lambda o: o.quantity * o.unit_price_cents
        - o.discount_cents
        - o.commission_amount_cents
    )
