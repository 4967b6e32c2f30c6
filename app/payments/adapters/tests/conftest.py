"""
Pytest fixtures for adapter tests.

Sections:
    - Test Data Fixtures
    - Mock Stripe Response Fixtures
    - Mock Stripe Patches
"""

import uuid
from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest

from payments.adapters import PayoutRequest, RefundRequest, StripeAdapter


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def adapter():
    return StripeAdapter(api_key="sk_test_123", timeout=5, max_retries=0)


@pytest.fixture
def payout_request():
    payout_id = str(uuid.uuid4())
    return PayoutRequest(
        payout_id=payout_id,
        seller_id=str(uuid.uuid4()),
        destination="acct_dest123",
        amount_cents=9000,
        currency="RON",
        idempotency_key=f"payout:{payout_id}:1:abcd1234",
    )


@pytest.fixture
def refund_request():
    refund_id = str(uuid.uuid4())
    return RefundRequest(
        refund_id=refund_id,
        order_id=str(uuid.uuid4()),
        payment_ref="pi_test123456",
        amount_cents=5000,
        currency="RON",
        idempotency_key=f"refund:{refund_id}:1:abcd1234",
    )


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_transfer():
    def _create(id: str = "tr_test123456", amount: int = 9000) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "transfer",
                "amount": amount,
                "currency": "ron",
                "destination": "acct_dest123",
                "metadata": {},
            }
        )

    return _create


@pytest.fixture
def mock_refund():
    def _create(id: str = "re_test123456", status: str = "succeeded") -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "refund",
                "amount": 5000,
                "currency": "ron",
                "status": status,
                "payment_intent": "pi_test123456",
                "metadata": {},
            }
        )

    return _create


# =============================================================================
# Mock Stripe Patches
# =============================================================================


@pytest.fixture
def mock_stripe_transfer():
    with patch("payments.adapters.stripe_adapter.stripe.Transfer") as mock:
        yield mock


@pytest.fixture
def mock_stripe_refund():
    with patch("payments.adapters.stripe_adapter.stripe.Refund") as mock:
        yield mock
