"""
Refund processing.

RefundProcessor validates refund requests, applies the large-refund
approval gate, sends refunds through the RefundProvider and books them in
the ledger.

Flow:
    request_refund()        -> validate, create pending refund
                               small: claim and process immediately
                               large: wait for a second approver
    approve_and_process()   -> second actor claims and processes
    void_refund()           -> pending/failed refund becomes void

The provider call runs outside any transaction with bounded retries for
transient errors. The refund and payout claims both take the order row
lock, so a refund never races a payout being sent for the same order.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Sum

from core.services import BaseService, ServiceResult
from orders.exceptions import OrderNotFoundError
from orders.models import Order
from orders.states import OrderStatus
from payments.adapters.base import RefundRequest
from payments.adapters.stripe_adapter import IdempotencyKeyGenerator, backoff_delay
from payments.exceptions import (
    ProviderError,
    RefundNotAllowedError,
    RefundNotFoundError,
    RefundValidationError,
)
from payments.ledger import EntryParams, ReferenceType, accounts
from payments.models import APPROVAL_REQUIRED, Payout, Refund
from payments.services.effects import PostCommitEffects
from payments.state_machines import PayoutState, RefundState

if TYPE_CHECKING:
    from collections.abc import Callable

    from orders.state_machine import OrderStateMachine
    from payments.adapters.base import Notifier, RefundProvider, RefundResult
    from payments.ledger import LedgerService


@dataclass(frozen=True)
class RefundRequestResult:
    refund_id: str
    status: str
    approval_required: bool
    provider_ref: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundRunResult:
    refund_id: str
    success: bool
    status: str
    provider_ref: str | None = None
    failure_reason: str | None = None


class RefundProcessor(BaseService):
    """
    Requests, approves, sends and voids refunds.

    Rejections raise domain exceptions (RefundValidationError,
    RefundNotAllowedError); provider outcomes are returned as
    ServiceResult values.
    """

    def __init__(
        self,
        ledger: LedgerService,
        state_machine: OrderStateMachine,
        provider: RefundProvider,
        notifier: Notifier,
        large_refund_threshold_cents: int | None = None,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ledger = ledger
        self.state_machine = state_machine
        self.provider = provider
        self.notifier = notifier
        self.large_refund_threshold_cents = (
            large_refund_threshold_cents
            if large_refund_threshold_cents is not None
            else settings.LARGE_REFUND_THRESHOLD_CENTS
        )
        self.max_attempts = max_attempts or settings.REFUND_MAX_ATTEMPTS
        self.base_delay = (
            base_delay if base_delay is not None else settings.REFUND_RETRY_BASE_DELAY_SECONDS
        )
        self.sleep = sleep

    # ==========================================================================
    # Request
    # ==========================================================================

    def request_refund(
        self,
        order_id: uuid.UUID | str,
        amount_cents: int,
        reason: str,
        actor: str,
    ) -> RefundRequestResult:
        """
        Create a refund for an order.

        Refunds at or above the large-refund threshold wait for approval;
        smaller ones are processed before returning.

        Raises:
            OrderNotFoundError: no such order
            RefundValidationError: amount <= 0 or above the order total
            RefundNotAllowedError: ORDER_NOT_REFUNDABLE,
                REFUND_ALREADY_EXISTS or PAYOUT_IN_PROGRESS
        """
        logger = self.get_logger()

        with transaction.atomic():
            order = self._lock_order(order_id)
            self._validate_request(order, amount_cents)

            try:
                with transaction.atomic():
                    refund = Refund.objects.create(
                        order=order,
                        amount_cents=amount_cents,
                        currency=order.currency,
                        reason=reason,
                        requested_by=str(actor),
                    )
            except IntegrityError as e:
                raise RefundNotAllowedError(
                    "Order already has an open refund",
                    error_code="REFUND_ALREADY_EXISTS",
                    details={"order_id": str(order.pk)},
                ) from e

            approval_required = amount_cents >= self.large_refund_threshold_cents
            if approval_required:
                refund.failure_reason = APPROVAL_REQUIRED
            else:
                refund.start_processing()
            refund.save()

        log_context = {
            "refund_id": str(refund.pk),
            "order_id": str(order.pk),
            "amount_cents": amount_cents,
            "requested_by": str(actor),
        }
        if approval_required:
            logger.info("Large refund awaiting approval", extra=log_context)
            return RefundRequestResult(
                refund_id=str(refund.pk),
                status=refund.status,
                approval_required=True,
            )

        logger.info("Refund requested", extra=log_context)
        run = self._process(refund.pk).data
        return RefundRequestResult(
            refund_id=run.refund_id,
            status=run.status,
            approval_required=False,
            provider_ref=run.provider_ref,
            failure_reason=run.failure_reason,
        )

    def _validate_request(self, order: Order, amount_cents: int) -> None:
        if amount_cents <= 0:
            raise RefundValidationError(
                "Refund amount must be positive",
                details={"amount_cents": amount_cents},
            )
        if amount_cents > order.total_cents:
            raise RefundValidationError(
                "refund exceeds order total",
                details={"amount_cents": amount_cents, "order_total_cents": order.total_cents},
            )
        if not self.state_machine.can_refund(order):
            raise RefundNotAllowedError(
                f"Orders in status '{order.status}' cannot be refunded",
                error_code="ORDER_NOT_REFUNDABLE",
                details={"order_id": str(order.pk), "status": order.status},
            )
        if order.refunds.exclude(status=RefundState.VOID).exists():
            raise RefundNotAllowedError(
                "Order already has an open refund",
                error_code="REFUND_ALREADY_EXISTS",
                details={"order_id": str(order.pk)},
            )
        self._ensure_no_payout_in_progress(order)

    @staticmethod
    def _ensure_no_payout_in_progress(order: Order) -> None:
        if order.payouts.filter(status=PayoutState.PROCESSING).exists():
            raise RefundNotAllowedError(
                "A payout for this order is being sent",
                error_code="PAYOUT_IN_PROGRESS",
                details={"order_id": str(order.pk)},
            )

    # ==========================================================================
    # Approval
    # ==========================================================================

    def approve_and_process(
        self, refund_id: uuid.UUID | str, approver: str
    ) -> ServiceResult[RefundRunResult]:
        """
        Approve a large refund and send it.

        Raises:
            RefundNotFoundError: no such refund
            RefundNotAllowedError: APPROVAL_NOT_PENDING, SAME_ACTOR or
                PAYOUT_IN_PROGRESS
        """
        with transaction.atomic():
            order_id = self._refund_order_id(refund_id)
            order = Order.objects.select_for_update().get(pk=order_id)
            refund = Refund.objects.select_for_update().get(pk=refund_id)

            if not refund.awaiting_approval:
                raise RefundNotAllowedError(
                    "Refund is not waiting for approval",
                    error_code="APPROVAL_NOT_PENDING",
                    details={"refund_id": str(refund.pk), "status": refund.status},
                )
            if str(approver) == refund.requested_by:
                raise RefundNotAllowedError(
                    "A refund cannot be approved by its requester",
                    error_code="SAME_ACTOR",
                    details={"refund_id": str(refund.pk)},
                )
            self._ensure_no_payout_in_progress(order)

            refund.start_processing(approved_by=str(approver))
            refund.save()

        self.get_logger().info(
            "Refund approved",
            extra={"refund_id": str(refund.pk), "approved_by": str(approver)},
        )
        return self._process(refund.pk)

    # ==========================================================================
    # Provider call
    # ==========================================================================

    def _process(self, refund_id) -> ServiceResult[RefundRunResult]:
        """
        Send a claimed (processing) refund and record the outcome.

        Never leaves the refund in processing: unexpected errors from the
        provider or while recording a completed refund mark it failed and
        alert staff. A recording failure keeps the provider reference in
        the failure reason so the money movement can be reconciled.
        """
        logger = self.get_logger()
        refund = Refund.objects.select_related("order").get(pk=refund_id)
        request = RefundRequest(
            refund_id=str(refund.pk),
            order_id=str(refund.order_id),
            payment_ref=refund.order.payment_ref or "",
            amount_cents=refund.amount_cents,
            currency=refund.currency,
            idempotency_key=IdempotencyKeyGenerator.generate("refund", refund.pk),
            reason=refund.reason,
        )

        attempts = 0
        while True:
            attempts += 1
            try:
                provider_result = self.provider.refund(request)
                break
            except ProviderError as e:
                if not e.is_retryable:
                    return self._finalize_failed(refund.pk, f"{e.error_code}: {e.message}", attempts)
                if attempts >= self.max_attempts:
                    return self._finalize_failed(
                        refund.pk,
                        f"max_attempts_exceeded: {e.error_code}: {e.message}",
                        attempts,
                    )
                delay = backoff_delay(attempts - 1, base=self.base_delay)
                logger.warning(
                    "Transient refund error, retrying",
                    extra={
                        "refund_id": str(refund.pk),
                        "attempts": attempts,
                        "delay": delay,
                        "error_code": e.error_code,
                    },
                )
                self.sleep(delay)
            except Exception as e:
                logger.error(
                    "Unexpected error sending refund",
                    extra={"refund_id": str(refund.pk), "attempts": attempts},
                    exc_info=True,
                )
                return self._finalize_failed(
                    refund.pk, f"unexpected_error: {type(e).__name__}: {e}", attempts
                )

        try:
            return self._finalize_refunded(refund.pk, provider_result, attempts)
        except Exception as e:
            logger.error(
                "Could not record completed refund",
                extra={"refund_id": str(refund.pk), "provider_ref": provider_result.provider_ref},
                exc_info=True,
            )
            return self._finalize_failed(
                refund.pk,
                f"recording_failed: provider_ref={provider_result.provider_ref}: "
                f"{type(e).__name__}: {e}",
                attempts,
            )

    def _finalize_refunded(
        self, refund_id, provider_result: RefundResult, attempts: int
    ) -> ServiceResult[RefundRunResult]:
        with transaction.atomic():
            order_id = self._refund_order_id(refund_id)
            order = Order.objects.select_for_update().get(pk=order_id)
            refund = Refund.objects.select_for_update().get(pk=refund_id)

            recovered = self._post_refund(order, refund)

            refund.attempts += attempts
            refund.seller_recovered_cents = recovered
            refund.complete(provider_ref=provider_result.provider_ref)
            refund.save()

            if refund.amount_cents == order.total_cents:
                if self.state_machine.can_refund(order):
                    self.state_machine.transition(order, OrderStatus.REFUNDED)
                else:
                    self.get_logger().warning(
                        "Order left in its status after full refund",
                        extra={"order_id": str(order.pk), "status": order.status},
                    )

        self.get_logger().info(
            "Refund completed",
            extra={
                "refund_id": str(refund.pk),
                "order_id": str(order.pk),
                "provider_ref": provider_result.provider_ref,
                "seller_recovered_cents": recovered,
            },
        )
        return ServiceResult.success(
            RefundRunResult(
                refund_id=str(refund.pk),
                success=True,
                status=refund.status,
                provider_ref=refund.provider_ref,
            )
        )

    def _post_refund(self, order: Order, refund: Refund) -> int:
        """
        Post the refund group and adjust the seller's payout.

        The seller gives back at most what is still owed for the order.
        Before a paid payout the recovery comes out of seller_payable and
        the open payout shrinks (or is cancelled); after it, the seller
        owes the platform through seller_receivable.

        Returns:
            The amount recovered from the seller
        """
        already_recovered = (
            Refund.objects.filter(order=order, status=RefundState.REFUNDED)
            .exclude(pk=refund.pk)
            .aggregate(total=Sum("seller_recovered_cents"))["total"]
            or 0
        )
        seller_due = order.line_totals()["seller_due"] - already_recovered
        recovered = max(0, min(refund.amount_cents, seller_due))

        entries = [
            EntryParams.debit(
                accounts.REFUND_LIABILITY,
                refund.amount_cents,
                refund.currency,
                description="Refund to buyer",
            ),
            EntryParams.credit(
                accounts.PLATFORM_CASH,
                refund.amount_cents,
                refund.currency,
                description="Refund to buyer",
            ),
        ]

        payout = Payout.objects.select_for_update().filter(order=order).first()
        if recovered > 0:
            if payout is not None and payout.status == PayoutState.PAID:
                seller_account = accounts.seller_receivable(order.seller_id)
            else:
                seller_account = accounts.seller_payable(order.seller_id)
            entries += [
                EntryParams.debit(
                    seller_account,
                    recovered,
                    refund.currency,
                    description="Recovered from seller",
                ),
                EntryParams.credit(
                    accounts.REFUND_LIABILITY,
                    recovered,
                    refund.currency,
                    description="Recovered from seller",
                ),
            ]

        self.ledger.post(
            accounts.refund_group(refund.pk),
            entries,
            reference_type=ReferenceType.REFUND,
            reference_id=str(refund.pk),
        )

        if recovered > 0 and payout is not None:
            self._adjust_payout(payout, refund, recovered)
        return recovered

    def _adjust_payout(self, payout: Payout, refund: Refund, recovered: int) -> None:
        if payout.status not in (PayoutState.PENDING, PayoutState.FAILED):
            return

        remaining = payout.amount_cents - recovered
        if remaining <= 0:
            payout.cancel(reason=f"consumed by refund {refund.pk}")
        else:
            payout.amount_cents = remaining
        payout.save()

        self.get_logger().info(
            "Payout adjusted for refund",
            extra={
                "payout_id": str(payout.pk),
                "refund_id": str(refund.pk),
                "amount_cents": payout.amount_cents,
                "status": payout.status,
            },
        )

    def _finalize_failed(
        self, refund_id, reason: str, attempts: int
    ) -> ServiceResult[RefundRunResult]:
        with transaction.atomic():
            refund = Refund.objects.select_for_update().get(pk=refund_id)
            refund.attempts += attempts
            refund.fail(reason)
            refund.save()

            effects = PostCommitEffects({"refund_id": str(refund.pk)})
            effects.add(
                "notify_refund_failed",
                lambda: self.notifier.notify_refund_failed(refund, reason),
            )
            effects.schedule()

        self.get_logger().error(
            "Refund failed",
            extra={"refund_id": str(refund.pk), "attempts": refund.attempts, "reason": reason},
        )
        return ServiceResult.failure(
            reason,
            error_code="REFUND_FAILED",
            data=RefundRunResult(
                refund_id=str(refund.pk),
                success=False,
                status=refund.status,
                failure_reason=reason,
            ),
        )

    # ==========================================================================
    # Void
    # ==========================================================================

    def void_refund(self, refund_id: uuid.UUID | str, actor: str, reason: str = "") -> Refund:
        """
        Void a pending or failed refund, freeing the order for a new request.

        Raises:
            RefundNotFoundError: no such refund
            RefundNotAllowedError: REFUND_NOT_VOIDABLE
        """
        with transaction.atomic():
            order_id = self._refund_order_id(refund_id)
            Order.objects.select_for_update().get(pk=order_id)
            refund = Refund.objects.select_for_update().get(pk=refund_id)

            if refund.status not in (RefundState.PENDING, RefundState.FAILED):
                raise RefundNotAllowedError(
                    f"Refunds in status '{refund.status}' cannot be voided",
                    error_code="REFUND_NOT_VOIDABLE",
                    details={"refund_id": str(refund.pk), "status": refund.status},
                )
            refund.void(actor=str(actor), reason=reason)
            refund.save()

        self.get_logger().info(
            "Refund voided",
            extra={"refund_id": str(refund.pk), "voided_by": str(actor)},
        )
        return refund

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _lock_order(order_id) -> Order:
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, ValueError, DjangoValidationError) as e:
            raise OrderNotFoundError(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            ) from e

    @staticmethod
    def _refund_order_id(refund_id):
        try:
            return Refund.objects.values_list("order_id", flat=True).get(pk=refund_id)
        except (Refund.DoesNotExist, ValueError, DjangoValidationError) as e:
            raise RefundNotFoundError(
                f"Refund {refund_id} not found",
                details={"refund_id": str(refund_id)},
            ) from e
