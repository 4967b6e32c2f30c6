"""
Order state machine service.

Wraps the django-fsm transitions on Order with an idempotent,
target-status oriented API: callers say where the order should end up and
the service picks the transition, treating re-application of the current
status as a no-op.

Usage:
    from orders.state_machine import OrderStateMachine

    result = OrderStateMachine().transition(order, OrderStatus.PAID, payment_ref="ntp_1")
    if not result.applied:
        logger.info("No change: %s", result.reason)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django_fsm import TransitionNotAllowed, can_proceed

from core.services import BaseService
from orders.exceptions import InvalidTransitionError
from orders.states import REFUNDABLE_STATUSES, TERMINAL_STATUSES, OrderStatus

if TYPE_CHECKING:
    from orders.models import Order


# Target status -> Order transition method
TRANSITION_METHODS: dict[str, str] = {
    OrderStatus.PAID: "mark_paid",
    OrderStatus.FAILED: "mark_payment_failed",
    OrderStatus.PACKED: "pack",
    OrderStatus.SHIPPED: "ship",
    OrderStatus.DELIVERED: "deliver",
    OrderStatus.CANCELED: "cancel",
    OrderStatus.RETURN_REQUESTED: "request_return",
    OrderStatus.RETURN_APPROVED: "approve_return",
    OrderStatus.RETURNED: "mark_returned",
    OrderStatus.REFUNDED: "mark_refunded",
}

ALREADY_IN_STATE = "already_in_state"


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition request."""

    applied: bool
    previous_status: str
    current_status: str
    reason: str | None = None


class OrderStateMachine(BaseService):
    """Applies order status changes through the FSM transitions."""

    def transition(
        self,
        order: Order,
        target: str,
        save: bool = True,
        **kwargs: Any,
    ) -> TransitionResult:
        """
        Move ``order`` to ``target``.

        Args:
            order: Order to change (callers lock the row when needed)
            target: Desired OrderStatus value
            save: Persist the order after a successful transition
            **kwargs: Passed to the transition method (e.g. payment_ref)

        Returns:
            TransitionResult with applied=False and reason=already_in_state
            when the order is already in ``target``.

        Raises:
            InvalidTransitionError: target unknown or not reachable
        """
        previous = order.status
        if previous == target:
            return TransitionResult(
                applied=False,
                previous_status=previous,
                current_status=previous,
                reason=ALREADY_IN_STATE,
            )

        method_name = TRANSITION_METHODS.get(target)
        method = getattr(order, method_name) if method_name else None
        if method is None or not can_proceed(method):
            raise InvalidTransitionError(
                f"Cannot move order from '{previous}' to '{target}'",
                details={
                    "order_id": str(order.pk),
                    "current_status": previous,
                    "target_status": target,
                },
            )

        try:
            method(**kwargs)
        except TransitionNotAllowed as e:
            raise InvalidTransitionError(
                str(e),
                details={
                    "order_id": str(order.pk),
                    "current_status": previous,
                    "target_status": target,
                },
            ) from e

        if save:
            order.save()

        self.get_logger().info(
            "Order status changed",
            extra={
                "order_id": str(order.pk),
                "from_status": previous,
                "to_status": order.status,
            },
        )
        return TransitionResult(
            applied=True,
            previous_status=previous,
            current_status=order.status,
        )

    @staticmethod
    def valid_next_statuses(order: Order) -> list[str]:
        """Statuses reachable from the order's current status."""
        return sorted(t.target for t in order.get_available_status_transitions())

    @staticmethod
    def can_refund(order: Order) -> bool:
        return order.status in REFUNDABLE_STATUSES

    @staticmethod
    def is_terminal(order: Order) -> bool:
        return order.status in TERMINAL_STATUSES
