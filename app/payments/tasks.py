"""
Celery tasks for payment processing.

This module provides async tasks for:
- Running the daily payout batch
- Executing a single payout
- Releasing payouts stuck in processing
- Cleaning up old webhook audit rows

Usage:
    from payments.tasks import execute_single_payout

    # Queue a payout for execution
    execute_single_payout.delay(str(payout_id))

    # Run the batch (typically via celery-beat)
    from payments.tasks import run_payout_batch
    run_payout_batch.delay()
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from payments.container import get_container
from payments.exceptions import LockAcquisitionError, PayoutNotFoundError
from payments.models import WebhookEvent
from payments.state_machines import WebhookOutcome

logger = logging.getLogger(__name__)


# =============================================================================
# Payout Tasks
# =============================================================================


@shared_task(bind=True)
def run_payout_batch(self, as_of: str | None = None) -> dict:
    """
    Create eligible payouts and run every due pending payout.

    Args:
        as_of: ISO date; defaults to today

    Returns:
        Batch counters, or ``{"status": "locked"}`` when another batch holds
        the lock
    """
    as_of_date = date.fromisoformat(as_of) if as_of else timezone.localdate()

    try:
        result = get_container().payouts.run_batch(as_of=as_of_date)
    except LockAcquisitionError:
        logger.info(
            "Payout batch already running, skipping",
            extra={"task_id": self.request.id, "as_of": as_of_date.isoformat()},
        )
        return {"status": "locked"}

    return {"status": "ok", **result.to_dict()}


@shared_task(bind=True, acks_late=True)
def execute_single_payout(self, payout_id: str) -> dict:
    """
    Run one payout.

    Safe to redeliver: a paid payout returns success without a second
    transfer, a payout already processing is reported and left alone.

    Returns:
        Dict with ``status`` (the payout status or ``not_found``), and
        ``provider_ref`` / ``failure_reason`` when known
    """
    logger.info(
        "Processing payout execution",
        extra={"payout_id": str(payout_id), "celery_retries": self.request.retries},
    )

    try:
        result = get_container().payouts.run_one(payout_id)
    except PayoutNotFoundError:
        logger.warning("Payout not found", extra={"payout_id": str(payout_id)})
        return {"status": "not_found", "payout_id": str(payout_id)}

    run = result.data
    return {
        "status": run.status,
        "payout_id": run.payout_id,
        "success": run.success,
        "provider_ref": run.provider_ref,
        "failure_reason": run.failure_reason,
    }


@shared_task
def release_stuck_payouts(minutes: int | None = None) -> dict:
    """Return payouts stuck in processing for too long to pending."""
    minutes = minutes or settings.PAYOUT_STUCK_AFTER_MINUTES
    released = get_container().payouts.release_stuck_payouts(timedelta(minutes=minutes))
    return {"released_count": released}


# =============================================================================
# Webhook Audit Cleanup
# =============================================================================


@shared_task
def cleanup_old_webhook_events(days: int | None = None) -> dict:
    """
    Delete processed webhook events older than ``days``.

    Rejected events are kept for follow-up. Deleting an event frees its
    event id, so retention must exceed the provider's redelivery window.
    """
    days = days or settings.WEBHOOK_EVENT_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        outcome=WebhookOutcome.PROCESSED,
        created_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff_date": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}
