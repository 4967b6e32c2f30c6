"""
Pytest fixtures for ledger tests.
"""

import pytest

from payments.ledger.services import LedgerService
from payments.ledger.types import EntryParams


@pytest.fixture
def ledger():
    return LedgerService()


@pytest.fixture
def paid_group_entries():
    """Order paid: 100.00 goods at 10% commission for seller 42."""
    return [
        EntryParams.debit("platform_cash", 10000, "RON"),
        EntryParams.credit("commission_revenue", 1000, "RON"),
        EntryParams.credit("seller_payable:42", 9000, "RON"),
    ]
