"""
Payment domain models.

This module contains all payment-related models:
- Payout: Money transfers to sellers for delivered orders
- Refund: Money returned to buyers
- WebhookEvent: Provider callback dedup and audit record
- LedgerEntry: Immutable double-entry ledger rows (payments.ledger)
"""

from payments.ledger.models import LedgerEntry
from payments.models.payout import Payout
from payments.models.refund import APPROVAL_REQUIRED, Refund
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "APPROVAL_REQUIRED",
    "LedgerEntry",
    "Payout",
    "Refund",
    "WebhookEvent",
]
