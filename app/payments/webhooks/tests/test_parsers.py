"""
Tests for callback parsing, normalization and signature checks.
"""

import json
import uuid
from types import SimpleNamespace

import pytest

from payments.exceptions import WebhookPayloadError, WebhookSignatureError
from payments.state_machines import WebhookSource
from payments.webhooks.parsers import (
    FAILED,
    PAID,
    LegacyCallback,
    V2Callback,
    derive_event_id,
    normalize,
    parse_callback,
    parse_legacy,
    parse_v2,
    sign_body,
    to_minor_units,
    verify_signature,
)


@pytest.fixture
def fake_order():
    return SimpleNamespace(pk=uuid.uuid4())


# =============================================================================
# Parsing
# =============================================================================


class TestParseCallback:
    def test_json_content_type_is_v2(self, fake_order, v2_body):
        callback = parse_callback(v2_body(fake_order), "application/json", {})

        assert isinstance(callback, V2Callback)
        assert callback.source == WebhookSource.V2

    def test_json_body_without_content_type_is_v2(self, fake_order, v2_body):
        assert isinstance(parse_callback(v2_body(fake_order), "", {}), V2Callback)

    def test_form_is_legacy(self, fake_order, legacy_form):
        form = legacy_form(fake_order)

        callback = parse_callback(b"", "application/x-www-form-urlencoded", form)

        assert isinstance(callback, LegacyCallback)
        assert callback.order_id == str(fake_order.pk)
        assert "signature" not in callback.fields
        assert callback.payload()["signature"] == form["signature"]


class TestParseLegacy:
    def test_missing_fields(self):
        with pytest.raises(WebhookPayloadError) as exc_info:
            parse_legacy({"status": "success"})

        assert exc_info.value.details["missing"] == ["order_id", "amount"]

    def test_normalizes_status_and_currency(self, fake_order):
        callback = parse_legacy(
            {"order_id": f" {fake_order.pk} ", "status": "SUCCESS", "amount": "110.00"}
        )

        assert callback.status == "success"
        assert callback.currency == "RON"
        assert callback.order_id == str(fake_order.pk)


class TestParseV2:
    @pytest.mark.parametrize("body", [b"", b"not json", b"[1, 2]"])
    def test_not_an_object(self, body):
        with pytest.raises(WebhookPayloadError):
            parse_v2(body)

    def test_missing_order_id(self):
        body = json.dumps({"payment": {"status": 3, "amount": 1}, "order": {}}).encode()

        with pytest.raises(WebhookPayloadError, match="orderID"):
            parse_v2(body)

    def test_missing_amount(self, fake_order):
        body = json.dumps(
            {"payment": {"status": 3}, "order": {"orderID": str(fake_order.pk)}}
        ).encode()

        with pytest.raises(WebhookPayloadError, match="no amount"):
            parse_v2(body)


@pytest.mark.parametrize(
    "amount,expected",
    [("110.00", 11000), (110, 11000), ("0.125", 13), ("49.99", 4999), (" 5 ", 500)],
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize("amount", ["abc", "-1", "NaN", "Infinity", None])
def test_to_minor_units_rejects(amount):
    with pytest.raises(WebhookPayloadError):
        to_minor_units(amount)


# =============================================================================
# Normalization
# =============================================================================


class TestNormalize:
    @pytest.mark.parametrize(
        "status,expected",
        [("success", PAID), ("confirmed", PAID), ("declined", FAILED), ("canceled", FAILED)],
    )
    def test_legacy_statuses(self, fake_order, legacy_form, status, expected):
        event = normalize(parse_legacy(legacy_form(fake_order, status=status)))

        assert event.status == expected
        assert event.amount_cents == 11000
        assert event.source == WebhookSource.LEGACY
        assert event.provider_ref is None

    def test_legacy_unknown_status_ignored(self, fake_order, legacy_form):
        assert normalize(parse_legacy(legacy_form(fake_order, status="pending"))) is None

    @pytest.mark.parametrize("status,expected", [(3, PAID), (5, PAID), (4, FAILED), (12, FAILED)])
    def test_v2_statuses(self, fake_order, v2_body, status, expected):
        event = normalize(parse_v2(v2_body(fake_order, status=status)))

        assert event.status == expected
        assert event.order_id == str(fake_order.pk)
        assert event.provider_ref == "ntp_v2_1"

    def test_v2_unknown_status_ignored(self, fake_order, v2_body):
        assert normalize(parse_v2(v2_body(fake_order, status=1))) is None

    def test_v2_error_code_means_failed(self, fake_order, v2_body):
        event = normalize(parse_v2(v2_body(fake_order, status=3, error_code="19")))

        assert event.status == FAILED

    def test_v2_zero_padded_error_code_is_no_error(self, fake_order, v2_body):
        assert normalize(parse_v2(v2_body(fake_order, error_code="00"))).status == PAID

    def test_v2_amount_falls_back_to_order(self, fake_order):
        body = json.dumps(
            {
                "payment": {"status": 3},
                "order": {"orderID": str(fake_order.pk), "amount": "110.5", "currency": "eur"},
            }
        ).encode()

        event = normalize(parse_v2(body))

        assert event.amount_cents == 11050
        assert event.currency == "EUR"


class TestDeriveEventId:
    def test_same_transaction_in_both_variants_collapses(self, fake_order, legacy_form, v2_body):
        legacy = normalize(parse_legacy(legacy_form(fake_order, transaction_id="ntp_v2_1")))
        v2 = normalize(parse_v2(v2_body(fake_order, ntp_id="ntp_v2_1")))

        assert legacy.event_id == v2.event_id

    def test_without_transaction_amount_matters(self):
        assert derive_event_id("o1", PAID, 11000, None) != derive_event_id("o1", PAID, 10000, None)

    def test_status_matters(self):
        assert derive_event_id("o1", PAID, 1, "t") != derive_event_id("o1", FAILED, 1, "t")

    def test_is_sha256_hex(self):
        assert len(derive_event_id("o1", PAID, 1, None)) == 64


# =============================================================================
# Signatures
# =============================================================================


class TestVerifySignature:
    def test_legacy_valid(self, fake_order, legacy_form, secret):
        verify_signature(parse_legacy(legacy_form(fake_order)), secret)

    def test_legacy_uppercase_hex_accepted(self, fake_order, legacy_form, secret):
        form = legacy_form(fake_order)
        form["signature"] = form["signature"].upper()

        verify_signature(parse_legacy(form), secret)

    def test_legacy_tampered(self, fake_order, legacy_form, secret):
        form = legacy_form(fake_order)
        form["amount"] = "1.00"

        with pytest.raises(WebhookSignatureError):
            verify_signature(parse_legacy(form), secret)

    def test_legacy_missing(self, fake_order, legacy_form, secret):
        with pytest.raises(WebhookSignatureError, match="Missing"):
            verify_signature(parse_legacy(legacy_form(fake_order, sign=False)), secret)

    def test_v2_unverified_by_default(self, fake_order, v2_body, secret):
        verify_signature(parse_v2(v2_body(fake_order)), secret, signature_header=None)

    def test_v2_verified_when_enabled(self, fake_order, v2_body, secret):
        body = v2_body(fake_order)
        callback = parse_v2(body)

        verify_signature(callback, secret, sign_body(body, secret), verify_v2=True)
        with pytest.raises(WebhookSignatureError):
            verify_signature(callback, secret, "0" * 64, verify_v2=True)
        with pytest.raises(WebhookSignatureError):
            verify_signature(callback, secret, None, verify_v2=True)
