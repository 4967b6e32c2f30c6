"""
Ledger-specific exceptions for financial operations.

Exception Hierarchy:
    LedgerError (base)
    ├── LedgerValidationError - Malformed entries (amount, direction, account)
    │   └── UnbalancedLedgerGroupError - Debits != credits for a currency
    ├── LedgerGroupConflictError - Group id re-posted with different content
    └── LedgerImmutableError - Attempt to modify or delete a posted entry

Usage:
    from payments.ledger.exceptions import UnbalancedLedgerGroupError

    try:
        ledger.post(group_id, entries)
    except UnbalancedLedgerGroupError as e:
        logger.error("Refusing unbalanced group", extra=e.details)
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Example:
        try:
            ledger.post(group_id, entries)
        except LedgerError as e:
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "LEDGER_ERROR"


class LedgerValidationError(LedgerError):
    """Raised when an entry has a non-positive amount, bad direction or empty account."""

    default_error_code: str = "LEDGER_VALIDATION_ERROR"


class UnbalancedLedgerGroupError(LedgerValidationError):
    """
    Raised when a group's debits and credits differ for some currency.

    Example:
        raise UnbalancedLedgerGroupError(
            "Group order:1:paid is unbalanced in RON",
            details={"group_id": "order:1:paid", "currency": "RON",
                     "debits": 11000, "credits": 10000},
        )
    """

    default_error_code: str = "UNBALANCED_LEDGER_GROUP"


class LedgerGroupConflictError(LedgerError):
    """Raised when an existing group id is posted again with different entries."""

    default_error_code: str = "LEDGER_GROUP_CONFLICT"


class LedgerImmutableError(LedgerError):
    """Raised when code tries to update or delete a posted ledger entry."""

    default_error_code: str = "LEDGER_IMMUTABLE"
