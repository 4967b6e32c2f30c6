"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's conftest.py.
"""

import os
from decimal import Decimal

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")
# The test client speaks plain HTTP; skip the production HTTPS redirect
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # Tests never talk to a real Redis; distributed locks are mocked per test
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }
    settings.SESSION_ENGINE = "django.contrib.sessions.backends.db"


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (webhook to payout/refund journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_commission.py, test_parsers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_ingestion.py",
        "test_idempotency.py",
        "test_reconciler.py",
        "test_payout_service.py",
        "test_refund_service.py",
        "test_state_machine.py",
        "test_container.py",
        "test_effects.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_commission.py",
        "test_parsers.py",
        "test_redaction.py",
        "test_adapters.py",
        "test_stripe_adapter.py",
        "test_locks.py",
        "test_retry.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Order Fixtures (shared by orders and payments tests)
# =============================================================================


@pytest.fixture
def seller(db):
    """Create a seller with payouts enabled."""
    from orders.tests.factories import SellerFactory

    return SellerFactory()


@pytest.fixture
def make_order(db, seller):
    """
    Build a pending order through OrderService at a 10% commission.

    Usage:
        order = make_order(lines=[("sku-1", 2, 2500, 0)], shipping_fee_cents=500)
    """
    from orders.commission import CommissionCalculator
    from orders.services import LineItemInput, OrderService

    service = OrderService(calculator=CommissionCalculator(Decimal("10")))

    def _make(lines=None, shipping_fee_cents=1000, currency="RON", order_seller=None):
        lines = lines or [("sku-1", 1, 10000, 0)]
        return service.create_order(
            seller=order_seller or seller,
            buyer_ref="buyer-1",
            lines=[
                LineItemInput(
                    product_ref=ref,
                    quantity=quantity,
                    unit_price_cents=unit_price,
                    discount_cents=discount,
                )
                for ref, quantity, unit_price, discount in lines
            ],
            shipping_fee_cents=shipping_fee_cents,
            currency=currency,
        )

    return _make


@pytest.fixture
def order(make_order):
    """Pending order: 100.00 goods + 10.00 shipping = 110.00 RON."""
    return make_order()
