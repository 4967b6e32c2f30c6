"""
State machine enums and helpers for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    ACTIVE_REFUND_STATES,
    NON_VOID_REFUND_STATES,
    PayoutState,
    RefundState,
    WebhookOutcome,
    WebhookSource,
)

__all__ = [
    "ACTIVE_REFUND_STATES",
    "NON_VOID_REFUND_STATES",
    "PayoutState",
    "RefundState",
    "WebhookOutcome",
    "WebhookSource",
]
