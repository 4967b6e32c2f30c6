"""
Payment reconciliation.

Applies a normalized PaymentEvent to an order: status change, ledger
postings for the money received, and post-commit effects (invoice,
confirmation email, payout-eligibility signal).

The reconciler is re-entrant: a paid event for an order that is already
paid changes nothing, and a late failure never un-pays an order.

Usage:
    reconciler = PaymentReconciler(ledger, state_machine, invoices, notifier)
    result = reconciler.reconcile(event)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService
from orders.exceptions import OrderNotFoundError
from orders.models import Order
from orders.states import PAYMENT_CONFIRMED_STATUSES, OrderStatus
from payments.adapters.base import InvoiceType
from payments.exceptions import PaymentAmountMismatchError
from payments.ledger import EntryParams, ReferenceType, accounts
from payments.ledger.types import CREDIT, DEBIT
from payments.services.effects import PostCommitEffects
from payments.signals import order_payment_confirmed
from payments.webhooks.parsers import PAID

if TYPE_CHECKING:
    from orders.state_machine import OrderStateMachine
    from payments.adapters.base import InvoiceProvider, InvoiceResult, Notifier
    from payments.ledger import LedgerService
    from payments.webhooks.parsers import PaymentEvent


@dataclass(frozen=True)
class ReconcileResult:
    ok: bool
    current_status: str
    set_paid_at: bool
    applied: bool = False


class PaymentReconciler(BaseService):
    """
    Turns payment events into order and ledger state.

    Collaborators are injected by the composition root.
    """

    def __init__(
        self,
        ledger: LedgerService,
        state_machine: OrderStateMachine,
        invoice_provider: InvoiceProvider,
        notifier: Notifier,
    ) -> None:
        self.ledger = ledger
        self.state_machine = state_machine
        self.invoice_provider = invoice_provider
        self.notifier = notifier

    def reconcile(self, event: PaymentEvent) -> ReconcileResult:
        """
        Apply ``event`` to its order.

        Raises:
            OrderNotFoundError: no order with the event's order id
            PaymentAmountMismatchError: paid amount or currency differs
                from the order
            InvalidTransitionError: order cannot become paid (e.g. canceled)
        """
        with transaction.atomic():
            order = self._lock_order(event.order_id)
            if event.status == PAID:
                return self._apply_paid(order, event)
            return self._apply_failed(order, event)

    # ==========================================================================
    # Paid
    # ==========================================================================

    def _apply_paid(self, order: Order, event: PaymentEvent) -> ReconcileResult:
        logger = self.get_logger()
        self._check_amount(order, event)

        if order.status in PAYMENT_CONFIRMED_STATUSES:
            logger.info(
                "Order already paid, no change",
                extra={"order_id": str(order.pk), "event_id": event.event_id},
            )
            return ReconcileResult(ok=True, current_status=order.status, set_paid_at=False)

        had_paid_at = order.paid_at is not None
        result = self.state_machine.transition(
            order, OrderStatus.PAID, payment_ref=event.provider_ref
        )
        self._post_payment(order)
        self._schedule_effects(order)

        logger.info(
            "Order payment reconciled",
            extra={
                "order_id": str(order.pk),
                "event_id": event.event_id,
                "source": event.source,
                "amount_cents": event.amount_cents,
            },
        )
        return ReconcileResult(
            ok=True,
            current_status=result.current_status,
            set_paid_at=not had_paid_at,
            applied=result.applied,
        )

    @staticmethod
    def _check_amount(order: Order, event: PaymentEvent) -> None:
        if event.amount_cents != order.total_cents or event.currency != order.currency:
            raise PaymentAmountMismatchError(
                f"Payment of {event.amount_cents / 100:.2f} {event.currency} does not match "
                f"order total {order.total_cents / 100:.2f} {order.currency}",
                details={
                    "order_id": str(order.pk),
                    "expected_cents": order.total_cents,
                    "received_cents": event.amount_cents,
                    "expected_currency": order.currency,
                    "received_currency": event.currency,
                },
            )

    def _post_payment(self, order: Order) -> None:
        """Post the goods group and, when charged, the shipping group."""
        totals = order.line_totals()
        currency = order.currency

        goods_lines = [
            (DEBIT, accounts.PLATFORM_CASH, totals["gross"], "Order payment received"),
            (CREDIT, accounts.COMMISSION_REVENUE, totals["commission"], "Platform commission"),
            (
                CREDIT,
                accounts.seller_payable(order.seller_id),
                totals["seller_due"],
                "Amount due to seller",
            ),
        ]
        goods = [
            EntryParams(
                account=account,
                direction=direction,
                amount_cents=amount,
                currency=currency,
                description=description,
            )
            for direction, account, amount, description in goods_lines
            if amount > 0
        ]
        if goods:
            self.ledger.post(
                accounts.order_paid_group(order.pk),
                goods,
                reference_type=ReferenceType.ORDER,
                reference_id=str(order.pk),
            )

        if order.shipping_fee_cents > 0:
            self.ledger.post(
                accounts.order_shipping_group(order.pk),
                [
                    EntryParams.debit(
                        accounts.PLATFORM_CASH,
                        order.shipping_fee_cents,
                        currency,
                        description="Shipping fee received",
                    ),
                    EntryParams.credit(
                        accounts.SHIPPING_REVENUE,
                        order.shipping_fee_cents,
                        currency,
                        description="Shipping revenue",
                    ),
                ],
                reference_type=ReferenceType.ORDER,
                reference_id=str(order.pk),
            )

    # ==========================================================================
    # Failed
    # ==========================================================================

    def _apply_failed(self, order: Order, event: PaymentEvent) -> ReconcileResult:
        if order.status != OrderStatus.PENDING:
            # already failed, paid or beyond: a late failure changes nothing
            self.get_logger().info(
                "Payment failure ignored for order",
                extra={
                    "order_id": str(order.pk),
                    "event_id": event.event_id,
                    "current_status": order.status,
                },
            )
            return ReconcileResult(ok=True, current_status=order.status, set_paid_at=False)

        result = self.state_machine.transition(order, OrderStatus.FAILED)
        self.get_logger().warning(
            "Order payment failed",
            extra={"order_id": str(order.pk), "event_id": event.event_id},
        )
        return ReconcileResult(
            ok=True,
            current_status=result.current_status,
            set_paid_at=False,
            applied=result.applied,
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _lock_order(order_id: str) -> Order:
        try:
            pk = uuid.UUID(str(order_id))
        except ValueError as e:
            raise OrderNotFoundError(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            ) from e
        try:
            return Order.objects.select_for_update().get(pk=pk)
        except Order.DoesNotExist as e:
            raise OrderNotFoundError(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            ) from e

    def _schedule_effects(self, order: Order) -> None:
        effects = PostCommitEffects({"order_id": str(order.pk)})
        effects.add("issue_invoice", lambda: self.issue_invoice(str(order.pk)))
        effects.add(
            "notify_payment_confirmed",
            lambda: self.notifier.notify_payment_confirmed(order),
        )
        effects.add(
            "order_payment_confirmed",
            lambda: order_payment_confirmed.send(sender=type(self), order=order),
        )
        effects.schedule()

    def issue_invoice(self, order_id: str) -> InvoiceResult:
        """Request a receipt, falling back to an invoice when that fails."""
        result = self.invoice_provider.request_invoice(order_id, InvoiceType.RECEIPT)
        if result.ok:
            return result

        self.get_logger().warning(
            "Receipt request failed, requesting invoice",
            extra={"order_id": order_id, "error": result.error},
        )
        result = self.invoice_provider.request_invoice(order_id, InvoiceType.INVOICE)
        if not result.ok:
            self.get_logger().error(
                "Invoice request failed",
                extra={"order_id": order_id, "error": result.error},
            )
        return result
