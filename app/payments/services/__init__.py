"""
Payment services.

This module provides:
- PaymentReconciler: Applies webhook payment events to orders and the ledger
- PayoutOrchestrator: Creates and sends seller payouts
- RefundProcessor: Requests, approves, sends and voids refunds
- PostCommitEffects: Best-effort side effects run after commit

Services are built once by payments.container; use the container rather
than constructing them directly.

Usage:
    from payments.container import get_container

    result = get_container().payouts.run_one(payout_id)

    outcome = get_container().refunds.request_refund(
        order_id=order.id,
        amount_cents=2500,
        reason="Damaged on arrival",
        actor="user:7",
    )
"""

from payments.services.effects import EffectOutcome, PostCommitEffects
from payments.services.payout_service import (
    BatchResult,
    PayoutOrchestrator,
    PayoutRunResult,
)
from payments.services.reconciler import PaymentReconciler, ReconcileResult
from payments.services.refund_service import (
    RefundProcessor,
    RefundRequestResult,
    RefundRunResult,
)

__all__ = [
    # Reconciliation
    "PaymentReconciler",
    "ReconcileResult",
    # Payouts
    "BatchResult",
    "PayoutOrchestrator",
    "PayoutRunResult",
    # Refunds
    "RefundProcessor",
    "RefundRequestResult",
    "RefundRunResult",
    # Effects
    "EffectOutcome",
    "PostCommitEffects",
]
