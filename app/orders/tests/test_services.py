"""
Tests for OrderService.create_order.
"""

from decimal import Decimal

import pytest

from orders.commission import CommissionCalculator
from orders.exceptions import CommissionValidationError
from orders.services import LineItemInput, OrderService
from orders.states import OrderStatus


@pytest.fixture
def service():
    return OrderService(calculator=CommissionCalculator(Decimal("10")))


class TestCreateOrder:
    """Tests for order creation with commission snapshot."""

    def test_totals_and_snapshot(self, db, service, seller):
        order = service.create_order(
            seller=seller,
            buyer_ref="buyer-1",
            lines=[
                LineItemInput("sku-1", quantity=2, unit_price_cents=3000),
                LineItemInput("sku-2", quantity=1, unit_price_cents=5000, discount_cents=1000),
            ],
            shipping_fee_cents=1500,
            currency="ron",
        )

        assert order.status == OrderStatus.PENDING
        assert order.currency == "RON"
        assert order.subtotal_cents == 11000
        assert order.discount_cents == 1000
        assert order.total_cents == 11500
        assert order.line_totals() == {
            "gross": 10000,
            "commission": 1000,
            "seller_due": 9000,
        }

    def test_line_rate_override(self, db, service, seller):
        order = service.create_order(
            seller=seller,
            buyer_ref="buyer-1",
            lines=[
                LineItemInput(
                    "sku-1",
                    quantity=1,
                    unit_price_cents=10000,
                    commission_rate=Decimal("20"),
                ),
            ],
        )

        line = order.line_items.get()
        assert line.commission_rate == Decimal("20")
        assert line.commission_amount_cents == 2000
        assert line.seller_due_cents == 8000

    def test_uses_default_currency(self, db, service, seller, settings):
        settings.DEFAULT_CURRENCY = "EUR"

        order = service.create_order(
            seller=seller,
            buyer_ref="buyer-1",
            lines=[LineItemInput("sku-1", quantity=1, unit_price_cents=100)],
        )

        assert order.currency == "EUR"

    def test_rejects_empty_order(self, db, service, seller):
        with pytest.raises(CommissionValidationError):
            service.create_order(seller=seller, buyer_ref="buyer-1", lines=[])

    def test_rejects_negative_shipping(self, db, service, seller):
        with pytest.raises(CommissionValidationError):
            service.create_order(
                seller=seller,
                buyer_ref="buyer-1",
                lines=[LineItemInput("sku-1", quantity=1, unit_price_cents=100)],
                shipping_fee_cents=-1,
            )

    def test_invalid_line_creates_nothing(self, db, service, seller):
        with pytest.raises(CommissionValidationError):
            service.create_order(
                seller=seller,
                buyer_ref="buyer-1",
                lines=[
                    LineItemInput("sku-1", quantity=1, unit_price_cents=100),
                    LineItemInput("sku-2", quantity=0, unit_price_cents=100),
                ],
            )

        assert not seller.orders.exists()
