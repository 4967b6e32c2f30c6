"""
Commission calculation for order line items.

Commission is a percentage of the line gross (quantity * unit price minus
the line discount), rounded half-up to the minor unit. Whatever is not
commission is due to the seller, so commission + seller due always equals
the line gross.

Usage:
    from orders.commission import calculate_line

    amounts = calculate_line(quantity=2, unit_price_cents=5000, commission_rate=Decimal("10"))
    amounts.commission_cents  # 1000
    amounts.seller_due_cents  # 9000
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from orders.exceptions import CommissionValidationError

if TYPE_CHECKING:
    from orders.models import Seller

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineAmounts:
    """Commission breakdown of one line item, all in minor units."""

    gross_cents: int
    commission_rate: Decimal
    commission_cents: int
    seller_due_cents: int


def calculate_line(
    quantity: int,
    unit_price_cents: int,
    commission_rate: Decimal,
    discount_cents: int = 0,
) -> LineAmounts:
    """
    Compute gross, commission and seller due for a single line.

    Raises:
        CommissionValidationError: quantity < 1, negative price, discount
            outside [0, quantity * unit price], or rate outside [0, 100]
    """
    if quantity < 1:
        raise CommissionValidationError(
            "Quantity must be at least 1", details={"quantity": quantity}
        )
    if unit_price_cents < 0:
        raise CommissionValidationError(
            "Unit price cannot be negative",
            details={"unit_price_cents": unit_price_cents},
        )

    undiscounted = quantity * unit_price_cents
    if discount_cents < 0 or discount_cents > undiscounted:
        raise CommissionValidationError(
            "Discount must be between 0 and the line amount",
            details={"discount_cents": discount_cents, "line_cents": undiscounted},
        )

    rate = Decimal(commission_rate)
    if rate < 0 or rate > HUNDRED:
        raise CommissionValidationError(
            "Commission rate must be between 0 and 100",
            details={"commission_rate": str(rate)},
        )

    gross = undiscounted - discount_cents
    commission = int(
        (Decimal(gross) * rate / HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    return LineAmounts(
        gross_cents=gross,
        commission_rate=rate,
        commission_cents=commission,
        seller_due_cents=gross - commission,
    )


class CommissionCalculator:
    """
    Resolves the commission rate for a seller and applies it per line.

    The platform default comes from ``PLATFORM_COMMISSION_PERCENT``; a
    seller's own ``commission_rate`` takes precedence when set.
    """

    def __init__(self, default_rate: Decimal):
        self.default_rate = Decimal(default_rate)

    def rate_for(self, seller: Seller | None) -> Decimal:
        if seller is not None and seller.commission_rate is not None:
            return Decimal(seller.commission_rate)
        return self.default_rate

    def calculate(
        self,
        quantity: int,
        unit_price_cents: int,
        discount_cents: int = 0,
        seller: Seller | None = None,
        commission_rate: Decimal | None = None,
    ) -> LineAmounts:
        rate = commission_rate if commission_rate is not None else self.rate_for(seller)
        return calculate_line(
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            commission_rate=rate,
            discount_cents=discount_cents,
        )
