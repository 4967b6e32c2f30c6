"""
Pytest fixtures for webhook tests.

Signed legacy callbacks come from payments/conftest.py (legacy_form);
this module adds v2 JSON bodies for the 110.00 RON order fixture.
"""

import json

import pytest


@pytest.fixture
def v2_body():
    """
    Build a v2 JSON callback body.

    Usage:
        body = v2_body(order, status=3, ntp_id="ntp_123")
    """

    def _make(order, status=3, amount=110, currency="RON", ntp_id="ntp_v2_1", error_code="0"):
        return json.dumps(
            {
                "payment": {
                    "ntpID": ntp_id,
                    "status": status,
                    "amount": amount,
                    "currency": currency,
                    "data": {"card": "4111********1111", "billing": {"email": "b@example.com"}},
                },
                "order": {"orderID": str(order.pk), "amount": amount, "currency": currency},
                "error": {"code": error_code, "message": "Approved"},
            }
        ).encode()

    return _make
