"""
Tests for the payments composition root.
"""

import pytest

from payments.adapters.invoice import LoggingInvoiceProvider
from payments.adapters.notifier import EmailNotifier
from payments.adapters.stripe_adapter import StripeAdapter
from payments.container import build_container, get_container, reset_container, set_container


@pytest.fixture(autouse=True)
def clean_container():
    reset_container()
    yield
    reset_container()


class TestBuildContainer:
    def test_defaults_from_settings(self):
        built = build_container()

        assert isinstance(built.payout_provider, StripeAdapter)
        assert isinstance(built.invoice_provider, LoggingInvoiceProvider)
        assert isinstance(built.notifier, EmailNotifier)

    def test_same_path_shares_one_instance(self):
        built = build_container()

        assert built.payout_provider is built.refund_provider

    def test_distinct_paths_get_distinct_instances(self, settings):
        settings.PAYMENTS_REFUND_PROVIDER = "payments.adapters.invoice.LoggingInvoiceProvider"

        built = build_container()

        assert built.refund_provider is built.invoice_provider
        assert built.payout_provider is not built.refund_provider

    def test_services_share_collaborators(self, notifier):
        built = build_container(notifier=notifier)

        assert built.notifier is notifier
        assert built.reconciler.notifier is notifier
        assert built.refunds.notifier is notifier
        assert built.reconciler.ledger is built.payouts.ledger is built.refunds.ledger
        assert built.ingestion.guard is built.guard
        assert built.ingestion.reconciler is built.reconciler

    def test_service_options(self, lock_factory):
        built = build_container(
            payout_options={"lock_factory": lock_factory, "max_attempts": 5},
            refund_options={"large_refund_threshold_cents": 100},
        )

        assert built.payouts.lock_factory is lock_factory
        assert built.payouts.max_attempts == 5
        assert built.refunds.large_refund_threshold_cents == 100

    def test_unknown_override(self):
        with pytest.raises(TypeError, match="ledger"):
            build_container(ledger=object())


class TestGlobalContainer:
    def test_built_lazily_once(self):
        first = get_container()

        assert get_container() is first

    def test_set_and_reset(self, notifier):
        custom = build_container(notifier=notifier)

        set_container(custom)
        assert get_container() is custom

        reset_container()
        assert get_container() is not custom
