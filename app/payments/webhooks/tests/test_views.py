"""
Tests for the provider webhook endpoint.

Tests cover:
- Legacy form callbacks (multipart and urlencoded) and v2 JSON bodies
- Status codes for processed, duplicate, ignored and rejected callbacks
- Signature and payload errors (400)
- Store and unexpected failures (500) rolling back the claim
"""

import json
from unittest.mock import patch
from urllib.parse import urlencode

import pytest
from django.urls import reverse

from orders.models import Order
from orders.states import OrderStatus
from payments.exceptions import IdempotencyStoreError
from payments.ledger import accounts
from payments.models import WebhookEvent
from payments.webhooks.views import provider_webhook


@pytest.fixture
def url():
    return reverse("payments:provider_webhook")


@pytest.fixture
def post_form(rf, url, container):
    def _post(form):
        return provider_webhook(rf.post(url, data=form))

    return _post


def body_of(response):
    return json.loads(response.content)


# =============================================================================
# Success Responses
# =============================================================================


class TestAcknowledged:
    def test_multipart_form_processed(self, post_form, container, order, legacy_form):
        response = post_form(legacy_form(order))

        assert response.status_code == 200
        assert body_of(response) == {"status": "ok", "duplicate": False}
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PAID
        assert len(container.ledger.entries_for_group(accounts.order_paid_group(order.pk))) == 3

    def test_urlencoded_form(self, rf, url, container, order, legacy_form):
        request = rf.post(
            url,
            data=urlencode(legacy_form(order)),
            content_type="application/x-www-form-urlencoded",
        )

        response = provider_webhook(request)

        assert response.status_code == 200
        assert body_of(response) == {"status": "ok", "duplicate": False}
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PAID
        assert WebhookEvent.objects.get().source == "legacy"

    def test_duplicate(self, post_form, order, legacy_form):
        form = legacy_form(order)
        post_form(form)

        response = post_form(form)

        assert response.status_code == 200
        assert body_of(response) == {"status": "ok", "duplicate": True}

    def test_v2_json(self, rf, url, container, order, v2_body):
        request = rf.post(url, data=v2_body(order), content_type="application/json")

        response = provider_webhook(request)

        assert response.status_code == 200
        assert WebhookEvent.objects.get().source == "v2"

    def test_ignored_status(self, post_form, order, legacy_form):
        response = post_form(legacy_form(order, status="pending"))

        assert response.status_code == 200
        assert body_of(response)["status"] == "ignored"

    def test_rejected_is_still_200(self, post_form, order, legacy_form):
        response = post_form(legacy_form(order, amount="1.00"))

        assert response.status_code == 200
        assert body_of(response) == {"status": "rejected", "reason": "AMOUNT_MISMATCH"}


# =============================================================================
# Client Errors
# =============================================================================


class TestClientErrors:
    def test_bad_signature(self, post_form, order, legacy_form):
        response = post_form(legacy_form(order, sign=False))

        assert response.status_code == 400
        assert body_of(response)["error_code"] == "INVALID_SIGNATURE"
        assert not WebhookEvent.objects.exists()

    def test_malformed_json(self, rf, url, container):
        response = provider_webhook(rf.post(url, data=b"{nope", content_type="application/json"))

        assert response.status_code == 400
        assert body_of(response)["error_code"] == "INVALID_PAYLOAD"

    def test_get_not_allowed(self, rf, url):
        assert provider_webhook(rf.get(url)).status_code == 405


# =============================================================================
# Server Errors
# =============================================================================


class TestServerErrors:
    def test_store_failure(self, post_form, container, order, legacy_form):
        with patch.object(
            container.guard, "claim_once", side_effect=IdempotencyStoreError("db down")
        ):
            response = post_form(legacy_form(order))

        assert response.status_code == 500
        assert body_of(response)["error_code"] == "IDEMPOTENCY_STORE_ERROR"

    def test_unexpected_error_rolls_back_claim(self, post_form, container, order, legacy_form):
        with patch.object(container.reconciler, "reconcile", side_effect=RuntimeError("boom")):
            response = post_form(legacy_form(order))

        assert response.status_code == 500
        assert body_of(response)["error_code"] == "INTERNAL_ERROR"
        assert not WebhookEvent.objects.exists()

        # provider redelivery goes through once the fault is gone
        response = post_form(legacy_form(order))
        assert body_of(response) == {"status": "ok", "duplicate": False}
