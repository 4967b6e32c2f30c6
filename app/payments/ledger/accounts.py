"""
Ledger account names.

Accounts are plain strings; seller accounts are namespaced by seller id.

    platform_cash            money held by the platform
    commission_revenue       platform commission earned on goods
    shipping_revenue         shipping fees collected
    refund_liability         money owed back to buyers while a refund settles
    seller_payable:{id}      money owed to a seller
    seller_receivable:{id}   money a seller owes back after a post-payout refund
"""

from __future__ import annotations

PLATFORM_CASH = "platform_cash"
COMMISSION_REVENUE = "commission_revenue"
SHIPPING_REVENUE = "shipping_revenue"
REFUND_LIABILITY = "refund_liability"

SELLER_PAYABLE_PREFIX = "seller_payable"
SELLER_RECEIVABLE_PREFIX = "seller_receivable"


def seller_payable(seller_id) -> str:
    return f"{SELLER_PAYABLE_PREFIX}:{seller_id}"


def seller_receivable(seller_id) -> str:
    return f"{SELLER_RECEIVABLE_PREFIX}:{seller_id}"


# Ledger group ids


def order_paid_group(order_id) -> str:
    return f"order:{order_id}:paid"


def order_shipping_group(order_id) -> str:
    return f"order:{order_id}:shipping"


def payout_paid_group(payout_id) -> str:
    return f"payout:{payout_id}:paid"


def refund_group(refund_id) -> str:
    return f"refund:{refund_id}"
