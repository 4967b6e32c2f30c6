"""
Tests for payments Celery tasks.

Tasks are called directly (not via .delay) against the test container.
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from payments.exceptions import LockAcquisitionError
from payments.models import Payout, WebhookEvent
from payments.state_machines import PayoutState, WebhookOutcome
from payments.tasks import (
    cleanup_old_webhook_events,
    execute_single_payout,
    release_stuck_payouts,
    run_payout_batch,
)
from payments.tests.factories import PayoutFactory, WebhookEventFactory


pytestmark = pytest.mark.django_db


# =============================================================================
# Payout Tasks
# =============================================================================


class TestRunPayoutBatch:
    def test_runs_batch(self, container, settled_delivered_order, payout_provider):
        result = run_payout_batch(as_of=timezone.localdate().isoformat())

        assert result["status"] == "ok"
        assert result["created"] == 1
        assert result["successful"] == 1
        assert len(payout_provider.calls) == 1

    def test_defaults_to_today(self, container, settled_delivered_order):
        result = run_payout_batch()

        assert result["created"] == 1

    def test_locked(self, container, lock_factory):
        lock_factory.return_value.__enter__.side_effect = LockAcquisitionError("held")

        assert run_payout_batch() == {"status": "locked"}


class TestExecuteSinglePayout:
    def test_pays(self, container, settled_delivered_order):
        payout = PayoutFactory(order=settled_delivered_order)

        result = execute_single_payout(str(payout.pk))

        assert result["status"] == PayoutState.PAID
        assert result["success"] is True
        assert result["provider_ref"] == "tr_1"

    def test_redelivery_does_not_pay_twice(self, container, settled_delivered_order, payout_provider):
        payout = PayoutFactory(order=settled_delivered_order)
        execute_single_payout(str(payout.pk))

        result = execute_single_payout(str(payout.pk))

        assert result["status"] == PayoutState.PAID
        assert len(payout_provider.calls) == 1

    def test_not_found(self, db, container):
        result = execute_single_payout("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"


class TestReleaseStuckPayouts:
    def test_releases_old_processing(self, container):
        with freeze_time(timezone.now() - timedelta(hours=2)):
            stuck = PayoutFactory(status=PayoutState.PROCESSING, processing_started_at=timezone.now())
        recent = PayoutFactory(status=PayoutState.PROCESSING, processing_started_at=timezone.now())

        result = release_stuck_payouts()

        assert result == {"released_count": 1}
        assert Payout.objects.get(pk=stuck.pk).status == PayoutState.PENDING
        assert Payout.objects.get(pk=recent.pk).status == PayoutState.PROCESSING

    def test_custom_window(self, container):
        PayoutFactory(
            status=PayoutState.PROCESSING,
            processing_started_at=timezone.now() - timedelta(minutes=10),
        )

        assert release_stuck_payouts(minutes=5) == {"released_count": 1}


# =============================================================================
# Webhook Audit Cleanup
# =============================================================================


class TestCleanupOldWebhookEvents:
    def test_deletes_old_processed_events_only(self, settings):
        settings.WEBHOOK_EVENT_RETENTION_DAYS = 30
        with freeze_time(timezone.now() - timedelta(days=31)):
            old_processed = WebhookEventFactory()
            old_rejected = WebhookEventFactory(
                outcome=WebhookOutcome.REJECTED, error_code="AMOUNT_MISMATCH"
            )
        recent = WebhookEventFactory()

        result = cleanup_old_webhook_events()

        assert result == {"deleted_count": 1}
        remaining = set(WebhookEvent.objects.values_list("pk", flat=True))
        assert remaining == {old_rejected.pk, recent.pk}
        assert old_processed.pk not in remaining

    def test_custom_retention(self):
        with freeze_time(timezone.now() - timedelta(days=3)):
            WebhookEventFactory()

        assert cleanup_old_webhook_events(days=2) == {"deleted_count": 1}
