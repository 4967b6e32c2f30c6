"""
Payout orchestration for seller transfers.

This module provides PayoutOrchestrator, which creates payouts for
delivered orders and sends them through the configured PayoutProvider.

Every payout run uses a two-phase pattern:
1. Phase 1: Claim the payout (pending -> processing) under the order row
   lock, commit
2. Phase 2: Call the provider OUTSIDE any transaction, with an idempotency
   key that is stable for the payout
3. Phase 3: In one transaction, post the ledger group and mark paid, or
   schedule a retry / mark failed

If the process dies between phases the payout stays in processing;
release_stuck_payouts() returns it to pending and the stable idempotency
key prevents a second transfer.

Usage:
    orchestrator = get_container().payouts

    result = orchestrator.run_one(payout_id)
    if not result.success:
        logger.warning(result.data.failure_reason)

    summary = orchestrator.run_batch(as_of=date.today())
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Exists, OuterRef, Q, Sum
from django.utils import timezone

from core.services import BaseService, ServiceResult
from orders.models import Order
from orders.states import OrderStatus
from payments.adapters.base import PayoutRequest
from payments.adapters.stripe_adapter import IdempotencyKeyGenerator, backoff_delay
from payments.exceptions import (
    PayoutNotFoundError,
    PayoutNotRetryableError,
    ProviderError,
)
from payments.ledger import EntryParams, ReferenceType, accounts
from payments.locks import DistributedLock
from payments.models import Payout, Refund
from payments.state_machines import ACTIVE_REFUND_STATES, PayoutState, RefundState

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date
    from typing import Any

    from payments.adapters.base import PayoutProvider, PayoutResult
    from payments.ledger import LedgerService


# =============================================================================
# Constants
# =============================================================================

BATCH_LOCK_KEY = "payouts:batch"

# Failure reasons reported without a provider call
ALREADY_PROCESSING = "already_processing"
NOT_DUE = "not_due"
PAYOUTS_DISABLED = "payouts_disabled"
REFUND_IN_PROGRESS = "refund_in_progress"
MAX_ATTEMPTS_EXCEEDED = "max_attempts_exceeded"


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class PayoutRunResult:
    """Outcome of one payout run."""

    payout_id: str
    success: bool
    status: str
    provider_ref: str | None = None
    failure_reason: str | None = None


@dataclass
class BatchResult:
    processed: int = 0
    successful: int = 0
    failed: int = 0
    created: int = 0
    stopped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _active_refund_exists(order_ref: Any) -> Exists:
    return Exists(Refund.objects.filter(order=order_ref, status__in=ACTIVE_REFUND_STATES))


# =============================================================================
# Payout Orchestrator
# =============================================================================


class PayoutOrchestrator(BaseService):
    """
    Creates and executes seller payouts.

    Error Handling:
        - Transient provider errors: back to pending with backoff, failed
          once attempts reach max_attempts
        - Permanent provider errors: failed, no automatic retry
        - Unexpected errors: propagate; the payout stays processing until
          release_stuck_payouts() picks it up
    """

    def __init__(
        self,
        ledger: LedgerService,
        provider: PayoutProvider,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        lock_factory: Callable[..., Any] = DistributedLock,
    ) -> None:
        self.ledger = ledger
        self.provider = provider
        self.max_attempts = max_attempts or settings.PAYOUT_MAX_ATTEMPTS
        self.base_delay = (
            base_delay if base_delay is not None else settings.PAYOUT_RETRY_BASE_DELAY_SECONDS
        )
        self.max_delay = (
            max_delay if max_delay is not None else settings.PAYOUT_RETRY_MAX_DELAY_SECONDS
        )
        self.lock_factory = lock_factory

    # ==========================================================================
    # Creation
    # ==========================================================================

    def create_eligible_payouts(self, as_of: date) -> list[Payout]:
        """
        Create pending payouts for orders delivered on or before ``as_of``.

        Eligible: status delivered, delivered by the end of the ``as_of``
        day, no payout for the (order, seller) pair yet, no active refund.
        The amount is the sum of the line items' seller dues less anything
        already recovered by completed refunds.
        """
        end_of_day = timezone.make_aware(datetime.combine(as_of, time.max))
        orders = (
            Order.objects.filter(
                status=OrderStatus.DELIVERED,
                delivered_at__lte=end_of_day,
            )
            .exclude(Exists(Payout.objects.filter(order=OuterRef("pk"), seller=OuterRef("seller"))))
            .exclude(_active_refund_exists(OuterRef("pk")))
            .select_related("seller")
            .order_by("delivered_at")
        )

        created_payouts = []
        for order in orders:
            amount = order.line_totals()["seller_due"] - self._recovered_cents(order)
            if amount <= 0:
                self.get_logger().info(
                    "Nothing left to pay out for order",
                    extra={"order_id": str(order.pk)},
                )
                continue

            payout, created = Payout.objects.get_or_create(
                order=order,
                seller=order.seller,
                defaults={"amount_cents": amount, "currency": order.currency},
            )
            if created:
                created_payouts.append(payout)
                self.get_logger().info(
                    "Payout created",
                    extra={
                        "payout_id": str(payout.pk),
                        "order_id": str(order.pk),
                        "seller_id": str(order.seller_id),
                        "amount_cents": amount,
                    },
                )
        return created_payouts

    @staticmethod
    def _recovered_cents(order: Order) -> int:
        return (
            Refund.objects.filter(order=order, status=RefundState.REFUNDED).aggregate(
                total=Sum("seller_recovered_cents")
            )["total"]
            or 0
        )

    # ==========================================================================
    # Execution
    # ==========================================================================

    def run_one(self, payout_id: uuid.UUID | str) -> ServiceResult[PayoutRunResult]:
        """
        Claim, send and finalize one payout.

        Returns:
            ServiceResult whose data is always a PayoutRunResult

        Raises:
            PayoutNotFoundError: no payout with this id
        """
        logger = self.get_logger()
        payout, early = self._claim(payout_id)
        if early is not None:
            return early

        request = PayoutRequest(
            payout_id=str(payout.pk),
            seller_id=str(payout.seller_id),
            destination=payout.seller.payout_destination,
            amount_cents=payout.amount_cents,
            currency=payout.currency,
            idempotency_key=IdempotencyKeyGenerator.generate("payout", payout.pk),
            metadata={"order_id": str(payout.order_id)},
        )

        try:
            provider_result = self.provider.send_payout(request)
        except ProviderError as e:
            if e.is_retryable:
                return self._handle_transient(payout.pk, e)
            logger.error(
                "Payout failed permanently",
                extra={"payout_id": str(payout.pk), "error_code": e.error_code},
            )
            return self._fail(payout.pk, f"{e.error_code}: {e.message}")

        return self._finalize_paid(payout.pk, provider_result)

    def _claim(self, payout_id) -> tuple[Payout | None, ServiceResult[PayoutRunResult] | None]:
        with transaction.atomic():
            try:
                order_id = Payout.objects.values_list("order_id", flat=True).get(pk=payout_id)
            except (Payout.DoesNotExist, ValueError, DjangoValidationError) as e:
                raise PayoutNotFoundError(
                    f"Payout {payout_id} not found",
                    details={"payout_id": str(payout_id)},
                ) from e

            # order row lock serializes payout and refund claims
            Order.objects.select_for_update().get(pk=order_id)
            payout = (
                Payout.objects.select_for_update()
                .select_related("seller")
                .get(pk=payout_id)
            )

            if payout.status == PayoutState.PAID:
                return payout, ServiceResult.success(self._result(payout, success=True))
            if payout.status == PayoutState.PROCESSING:
                return payout, self._skipped(payout, ALREADY_PROCESSING)
            if payout.status != PayoutState.PENDING:
                return payout, self._skipped(payout, f"payout_{payout.status}")
            if not payout.is_due:
                return payout, self._skipped(payout, NOT_DUE)
            if not payout.seller.payouts_enabled:
                return payout, self._skipped(payout, PAYOUTS_DISABLED)
            if Refund.objects.filter(
                order_id=order_id, status__in=ACTIVE_REFUND_STATES
            ).exists():
                return payout, self._skipped(payout, REFUND_IN_PROGRESS)

            payout.start_processing()
            payout.save()

        self.get_logger().info(
            "Payout claimed",
            extra={"payout_id": str(payout.pk), "attempts": payout.attempts},
        )
        return payout, None

    def _finalize_paid(
        self, payout_id, provider_result: PayoutResult
    ) -> ServiceResult[PayoutRunResult]:
        with transaction.atomic():
            payout = Payout.objects.select_for_update().get(pk=payout_id)
            self.ledger.post(
                accounts.payout_paid_group(payout.pk),
                [
                    EntryParams.debit(
                        accounts.seller_payable(payout.seller_id),
                        payout.amount_cents,
                        payout.currency,
                        description="Payout to seller",
                    ),
                    EntryParams.credit(
                        accounts.PLATFORM_CASH,
                        payout.amount_cents,
                        payout.currency,
                        description="Payout to seller",
                    ),
                ],
                reference_type=ReferenceType.PAYOUT,
                reference_id=str(payout.pk),
            )
            payout.complete(provider_ref=provider_result.provider_ref)
            payout.save()

        self.get_logger().info(
            "Payout paid",
            extra={
                "payout_id": str(payout.pk),
                "provider_ref": provider_result.provider_ref,
                "amount_cents": payout.amount_cents,
            },
        )
        return ServiceResult.success(self._result(payout, success=True))

    def _handle_transient(self, payout_id, error: ProviderError) -> ServiceResult[PayoutRunResult]:
        with transaction.atomic():
            payout = Payout.objects.select_for_update().get(pk=payout_id)
            if payout.attempts >= self.max_attempts:
                reason = f"{MAX_ATTEMPTS_EXCEEDED}: {error.message}"
                payout.fail(reason)
                payout.save()
                self.get_logger().error(
                    "Payout failed after max attempts",
                    extra={"payout_id": str(payout.pk), "attempts": payout.attempts},
                )
                return ServiceResult.failure(
                    reason, error_code="PAYOUT_FAILED", data=self._result(payout, success=False)
                )

            delay = backoff_delay(payout.attempts - 1, base=self.base_delay, max_delay=self.max_delay)
            payout.schedule_retry(
                next_attempt_at=timezone.now() + timedelta(seconds=delay),
                reason=f"{error.error_code}: {error.message}",
            )
            payout.save()

        self.get_logger().warning(
            "Transient payout error, retry scheduled",
            extra={
                "payout_id": str(payout.pk),
                "attempts": payout.attempts,
                "next_attempt_at": payout.next_attempt_at.isoformat(),
                "error_code": error.error_code,
            },
        )
        return ServiceResult.failure(
            error.message,
            error_code=error.error_code,
            data=self._result(payout, success=False),
        )

    def _fail(self, payout_id, reason: str) -> ServiceResult[PayoutRunResult]:
        with transaction.atomic():
            payout = Payout.objects.select_for_update().get(pk=payout_id)
            payout.fail(reason)
            payout.save()
        return ServiceResult.failure(
            reason, error_code="PAYOUT_FAILED", data=self._result(payout, success=False)
        )

    @staticmethod
    def _result(payout: Payout, success: bool) -> PayoutRunResult:
        return PayoutRunResult(
            payout_id=str(payout.pk),
            success=success,
            status=payout.status,
            provider_ref=payout.provider_ref,
            failure_reason=None if success else payout.failure_reason,
        )

    @staticmethod
    def _skipped(payout: Payout, reason: str) -> ServiceResult[PayoutRunResult]:
        return ServiceResult.failure(
            reason,
            error_code=reason.upper(),
            data=PayoutRunResult(
                payout_id=str(payout.pk),
                success=False,
                status=payout.status,
                failure_reason=reason,
            ),
        )

    # ==========================================================================
    # Batch
    # ==========================================================================

    def due_payout_ids(self) -> list[uuid.UUID]:
        now = timezone.now()
        return list(
            Payout.objects.filter(status=PayoutState.PENDING, seller__payouts_enabled=True)
            .filter(Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now))
            .exclude(_active_refund_exists(OuterRef("order")))
            .order_by("created_at")
            .values_list("pk", flat=True)
        )

    def run_batch(
        self,
        as_of: date | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> BatchResult:
        """
        Create eligible payouts, then run every due pending payout.

        Serialized across processes by a Redis lock. Each payout is
        isolated: an unexpected error is logged and counted as failed.
        ``should_stop`` is checked between payouts.

        Raises:
            LockAcquisitionError: another batch is running
        """
        logger = self.get_logger()
        as_of = as_of or timezone.localdate()
        result = BatchResult()

        with self.lock_factory(
            BATCH_LOCK_KEY, ttl=settings.PAYOUT_BATCH_LOCK_TTL_SECONDS, blocking=False
        ):
            result.created = len(self.create_eligible_payouts(as_of))

            for payout_id in self.due_payout_ids():
                if should_stop is not None and should_stop():
                    result.stopped = True
                    logger.info("Payout batch stopped", extra={"batch": result.to_dict()})
                    break

                result.processed += 1
                try:
                    outcome = self.run_one(payout_id)
                except Exception:
                    logger.error(
                        "Unexpected error running payout",
                        extra={"payout_id": str(payout_id)},
                        exc_info=True,
                    )
                    result.failed += 1
                    continue

                if outcome.success:
                    result.successful += 1
                else:
                    result.failed += 1

        logger.info(
            "Payout batch finished",
            extra={"as_of": as_of.isoformat(), "batch": result.to_dict()},
        )
        return result

    # ==========================================================================
    # Maintenance
    # ==========================================================================

    def retry_payout(self, payout_id: uuid.UUID | str) -> Payout:
        """
        Manually re-trigger a failed payout (failed -> pending, attempts reset).

        Raises:
            PayoutNotFoundError: no payout with this id
            PayoutNotRetryableError: payout is not failed
        """
        with transaction.atomic():
            try:
                payout = Payout.objects.select_for_update().get(pk=payout_id)
            except (Payout.DoesNotExist, ValueError, DjangoValidationError) as e:
                raise PayoutNotFoundError(
                    f"Payout {payout_id} not found",
                    details={"payout_id": str(payout_id)},
                ) from e

            if payout.status != PayoutState.FAILED:
                raise PayoutNotRetryableError(
                    f"Payout {payout_id} is {payout.status}, only failed payouts can be retried",
                    details={"payout_id": str(payout_id), "status": payout.status},
                )
            payout.retry()
            payout.save()

        self.get_logger().info("Payout re-queued", extra={"payout_id": str(payout.pk)})
        return payout

    def release_stuck_payouts(self, older_than: timedelta) -> int:
        """Return payouts stuck in processing for longer than ``older_than`` to pending."""
        cutoff = timezone.now() - older_than
        stuck_ids = list(
            Payout.objects.filter(
                status=PayoutState.PROCESSING,
                processing_started_at__lt=cutoff,
            ).values_list("pk", flat=True)
        )

        released = 0
        for payout_id in stuck_ids:
            with transaction.atomic():
                payout = Payout.objects.select_for_update().get(pk=payout_id)
                if payout.status != PayoutState.PROCESSING:
                    continue
                payout.release()
                payout.save()
                released += 1
            self.get_logger().warning(
                "Stuck payout released",
                extra={"payout_id": str(payout_id), "attempts": payout.attempts},
            )
        return released
