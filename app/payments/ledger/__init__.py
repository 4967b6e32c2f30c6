"""
Ledger - Double-entry bookkeeping for marketplace money movements.

Every business event (order paid, payout sent, refund completed) posts one
group of single-sided entries that balances per currency. The log is
append-only; balances are derived from it.

Public API:
    Models:
        LedgerEntry - One side of a movement
        Direction - debit / credit
        ReferenceType - order / payout / refund

    Service:
        LedgerService - post(), balance(), entries_for_group(),
            entries_for_reference(), verify_integrity()

    Types:
        Money - Amount in minor units with currency
        EntryParams - One line of a group to post

    Exceptions:
        LedgerError, LedgerValidationError, UnbalancedLedgerGroupError,
        LedgerGroupConflictError, LedgerImmutableError

Usage:
    from payments.ledger import EntryParams, LedgerService, accounts

    LedgerService().post(
        accounts.payout_paid_group(payout.id),
        [
            EntryParams.debit(accounts.seller_payable(seller.id), 9000, "RON"),
            EntryParams.credit(accounts.PLATFORM_CASH, 9000, "RON"),
        ],
        reference_type="payout",
        reference_id=str(payout.id),
    )
"""

from . import accounts
from .exceptions import (
    LedgerError,
    LedgerGroupConflictError,
    LedgerImmutableError,
    LedgerValidationError,
    UnbalancedLedgerGroupError,
)
from .models import Direction, LedgerEntry, ReferenceType
from .services import LedgerService
from .types import EntryParams, Money, UnbalancedGroup

__all__ = [
    "accounts",
    # Models
    "Direction",
    "LedgerEntry",
    "ReferenceType",
    # Service
    "LedgerService",
    # Types
    "EntryParams",
    "Money",
    "UnbalancedGroup",
    # Exceptions
    "LedgerError",
    "LedgerGroupConflictError",
    "LedgerImmutableError",
    "LedgerValidationError",
    "UnbalancedLedgerGroupError",
]
