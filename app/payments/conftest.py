"""
Pytest fixtures shared by all payments tests.

Sections:
    - Fake Providers
    - Container
    - Order Fixtures
    - API Fixtures
    - Webhook Fixtures
"""

from unittest.mock import MagicMock

import pytest
from django.conf import settings
from rest_framework.test import APIClient

from orders.models import Order
from payments.adapters.base import InvoiceResult, PayoutResult, RefundResult
from payments.container import build_container, reset_container, set_container
from payments.state_machines import WebhookSource
from payments.webhooks.parsers import PAID, PaymentEvent, derive_event_id, sign_fields


# =============================================================================
# Fake Providers
# =============================================================================


class FakePayoutProvider:
    """
    Records payout requests.

    Errors queued in ``errors`` are raised one per call before the
    provider starts succeeding.
    """

    def __init__(self):
        self.calls = []
        self.errors = []

    def send_payout(self, request):
        self.calls.append(request)
        if self.errors:
            raise self.errors.pop(0)
        return PayoutResult(provider_ref=f"tr_{len(self.calls)}")


class FakeRefundProvider:
    def __init__(self):
        self.calls = []
        self.errors = []

    def refund(self, request):
        self.calls.append(request)
        if self.errors:
            raise self.errors.pop(0)
        return RefundResult(provider_ref=f"re_{len(self.calls)}")


class FakeInvoiceProvider:
    """Succeeds unless an invoice type is listed in ``failing``."""

    def __init__(self):
        self.calls = []
        self.failing = set()

    def request_invoice(self, order_id, invoice_type):
        self.calls.append((order_id, invoice_type))
        if invoice_type in self.failing:
            return InvoiceResult.failure(invoice_type, "provider down")
        return InvoiceResult.success(invoice_type, f"{invoice_type}-{order_id}")


class FakeNotifier:
    def __init__(self):
        self.payment_confirmed = []
        self.refund_failed = []

    def notify_payment_confirmed(self, order):
        self.payment_confirmed.append(order.pk)

    def notify_refund_failed(self, refund, reason):
        self.refund_failed.append((refund.pk, reason))


@pytest.fixture
def payout_provider():
    return FakePayoutProvider()


@pytest.fixture
def refund_provider():
    return FakeRefundProvider()


@pytest.fixture
def invoice_provider():
    return FakeInvoiceProvider()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def lock_factory():
    """
    Stand-in for DistributedLock.

    Make the batch lock look held with:
        lock_factory.return_value.__enter__.side_effect = LockAcquisitionError("held")
    """
    factory = MagicMock()
    factory.return_value.__exit__.return_value = False
    return factory


# =============================================================================
# Container
# =============================================================================


@pytest.fixture
def container(payout_provider, refund_provider, invoice_provider, notifier, lock_factory):
    """Payments container wired with fakes and installed as the global one."""
    built = build_container(
        payout_provider=payout_provider,
        refund_provider=refund_provider,
        invoice_provider=invoice_provider,
        notifier=notifier,
        payout_options={"lock_factory": lock_factory},
        refund_options={"sleep": lambda seconds: None},
    )
    set_container(built)
    yield built
    reset_container()


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def paid_order(order):
    """The 110.00 RON order, paid (no ledger postings)."""
    order.mark_paid(payment_ref="ntp_paid_1")
    order.save()
    return order


@pytest.fixture
def delivered_order(paid_order):
    paid_order.pack()
    paid_order.ship()
    paid_order.deliver()
    paid_order.save()
    return paid_order


@pytest.fixture
def payment_event():
    """
    Build a normalized PaymentEvent for an order.

    Defaults to a paid event for the order's full total.
    """

    def _make(order, status=PAID, amount_cents=None, currency=None, provider_ref="ntp_paid_1"):
        amount_cents = order.total_cents if amount_cents is None else amount_cents
        return PaymentEvent(
            order_id=str(order.pk),
            status=status,
            amount_cents=amount_cents,
            currency=currency or order.currency,
            provider_ref=provider_ref,
            event_id=derive_event_id(str(order.pk), status, amount_cents, provider_ref),
            source=WebhookSource.LEGACY,
        )

    return _make


@pytest.fixture
def settle(payment_event):
    """
    Reconcile a paid event for an order (ledger postings included) and
    optionally walk it to delivered.
    """

    def _settle(container, order, deliver=False):
        container.reconciler.reconcile(payment_event(order))
        order = Order.objects.get(pk=order.pk)
        if deliver:
            order.pack()
            order.ship()
            order.deliver()
            order.save()
        return order

    return _settle


@pytest.fixture
def settled_order(container, order, settle):
    """110.00 RON order paid through the reconciler: seller_payable +90.00."""
    return settle(container, order)


@pytest.fixture
def settled_delivered_order(container, order, settle):
    return settle(container, order, deliver=True)


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def staff_user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="ops", password="testpass123", is_staff=True
    )


@pytest.fixture
def other_staff_user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="ops-2", password="testpass123", is_staff=True
    )


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def customer_client(db, django_user_model):
    user = django_user_model.objects.create_user(username="buyer", password="testpass123")
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# =============================================================================
# Webhook Fixtures
# =============================================================================


@pytest.fixture
def secret():
    return settings.PAYMENT_WEBHOOK_SECRET


@pytest.fixture
def legacy_form(secret):
    """
    Build a signed legacy callback.

    Usage:
        form = legacy_form(order, status="success", amount="110.00")
    """

    def _make(order, status="success", amount="110.00", currency="RON", sign=True, **extra):
        fields = {
            "order_id": str(order.pk),
            "status": status,
            "amount": amount,
            "currency": currency,
            **extra,
        }
        if sign:
            fields["signature"] = sign_fields(fields, secret)
        return fields

    return _make
