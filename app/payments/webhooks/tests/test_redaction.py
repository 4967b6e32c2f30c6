"""
Tests for payload redaction.
"""

import pytest

from payments.webhooks.redaction import REDACTED, is_sensitive, redact


@pytest.mark.parametrize(
    "key",
    ["signature", "billingAddress", "card_number", "customer-email", "IBAN", "phone"],
)
def test_sensitive_keys(key):
    assert is_sensitive(key)


@pytest.mark.parametrize("key", ["order_id", "amount", "status", "ntpID", "cardinality", 3])
def test_plain_keys(key):
    assert not is_sensitive(key)


def test_redacts_nested_values_and_whole_subtrees():
    payload = {
        "order_id": "o-1",
        "signature": "abc",
        "payment": {
            "amount": 110,
            "data": {"card": "4111********1111", "billing": {"email": "b@example.com"}},
        },
        "items": [{"phone": "0700"}, {"sku": "x"}],
    }

    assert redact(payload) == {
        "order_id": "o-1",
        "signature": REDACTED,
        "payment": {"amount": 110, "data": {"card": REDACTED, "billing": REDACTED}},
        "items": [{"phone": REDACTED}, {"sku": "x"}],
    }


def test_original_is_not_modified():
    payload = {"token": "secret"}

    redact(payload)

    assert payload == {"token": "secret"}
