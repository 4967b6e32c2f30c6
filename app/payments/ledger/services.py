"""
Ledger service layer for financial operations.

All ledger writes go through LedgerService.post(), which validates that a
group balances per currency and writes all of its entries in one
transaction. Posting is idempotent per group id: a re-post with the same
content returns the stored rows, a re-post with different content is
refused.

Usage:
    from payments.ledger.services import LedgerService
    from payments.ledger.types import EntryParams

    ledger = LedgerService()
    ledger.post(
        "order:123:paid",
        [
            EntryParams.debit("platform_cash", 10000, "RON"),
            EntryParams.credit("commission_revenue", 1000, "RON"),
            EntryParams.credit("seller_payable:42", 9000, "RON"),
        ],
        reference_type="order",
        reference_id="123",
    )

    ledger.balance("commission_revenue", "RON")  # Money(cents=1000, currency="RON")
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import F, Q

from core.services import BaseService
from payments.ledger.exceptions import (
    LedgerGroupConflictError,
    LedgerValidationError,
    UnbalancedLedgerGroupError,
)
from payments.ledger.models import Direction, LedgerEntry, signed_sum
from payments.ledger.types import Money, UnbalancedGroup

if TYPE_CHECKING:
    from collections.abc import Sequence

    from payments.ledger.types import EntryParams


class LedgerService(BaseService):
    """
    Service class for ledger operations.

    Key features:
    - Atomic posting of whole groups (never a partial group)
    - Per-currency balance check before anything is written
    - Idempotency by group id, enforced by the (group_id, line) constraint
    - Balances derived from the immutable log
    """

    # ==========================================================================
    # Writes
    # ==========================================================================

    def post(
        self,
        group_id: str,
        entries: Sequence[EntryParams],
        reference_type: str,
        reference_id: str,
    ) -> list[LedgerEntry]:
        """
        Post a balanced group of entries.

        Args:
            group_id: Business-derived group id (see payments.ledger.accounts)
            entries: Lines of the group, in order
            reference_type: order, payout or refund
            reference_id: Id of the referenced entity

        Returns:
            The stored entries of the group, ordered by line

        Raises:
            LedgerValidationError: empty group id or no entries
            UnbalancedLedgerGroupError: debits != credits for a currency
            LedgerGroupConflictError: group exists with different content
        """
        if not group_id:
            raise LedgerValidationError("Ledger group id cannot be empty")
        if not entries:
            raise LedgerValidationError(
                "A ledger group needs at least one entry",
                details={"group_id": group_id},
            )
        self._check_balanced(group_id, entries)

        expected = [entry.signature() for entry in entries]

        with transaction.atomic():
            existing = self.entries_for_group(group_id)
            if existing:
                return self._existing_or_conflict(group_id, existing, expected)

            rows = [
                LedgerEntry(
                    group_id=group_id,
                    line=line,
                    account=entry.account,
                    direction=entry.direction,
                    amount_cents=entry.amount_cents,
                    currency=entry.currency,
                    reference_type=reference_type,
                    reference_id=str(reference_id),
                    description=entry.description,
                    metadata=entry.metadata,
                )
                for line, entry in enumerate(entries, start=1)
            ]
            try:
                with transaction.atomic():
                    LedgerEntry.objects.bulk_create(rows)
            except IntegrityError:
                # Another transaction posted the same group first
                existing = self.entries_for_group(group_id)
                if not existing:
                    raise
                return self._existing_or_conflict(group_id, existing, expected)

        self.get_logger().info(
            "Ledger group posted",
            extra={
                "group_id": group_id,
                "reference_type": reference_type,
                "reference_id": str(reference_id),
                "lines": len(rows),
            },
        )
        return rows

    def _existing_or_conflict(
        self,
        group_id: str,
        existing: list[LedgerEntry],
        expected: list[tuple[str, str, int, str]],
    ) -> list[LedgerEntry]:
        stored = [
            (row.account, row.direction, row.amount_cents, row.currency)
            for row in existing
        ]
        if stored != expected:
            raise LedgerGroupConflictError(
                f"Ledger group {group_id} already exists with different entries",
                details={"group_id": group_id},
            )
        self.get_logger().info(
            "Ledger group already posted",
            extra={"group_id": group_id},
        )
        return existing

    @staticmethod
    def _check_balanced(group_id: str, entries: Sequence[EntryParams]) -> None:
        sums: dict[str, dict[str, int]] = defaultdict(
            lambda: {Direction.DEBIT: 0, Direction.CREDIT: 0}
        )
        for entry in entries:
            sums[entry.currency][entry.direction] += entry.amount_cents

        for currency, totals in sums.items():
            if totals[Direction.DEBIT] != totals[Direction.CREDIT]:
                raise UnbalancedLedgerGroupError(
                    f"Ledger group {group_id} is unbalanced in {currency}",
                    details={
                        "group_id": group_id,
                        "currency": currency,
                        "debits": totals[Direction.DEBIT],
                        "credits": totals[Direction.CREDIT],
                    },
                )

    # ==========================================================================
    # Reads
    # ==========================================================================

    @staticmethod
    def balance(account: str, currency: str) -> Money:
        """Credits minus debits for ``account`` in ``currency``."""
        cents = LedgerEntry.objects.for_account(account, currency).balance_cents()
        return Money(cents=cents, currency=currency.upper())

    @staticmethod
    def entries_for_group(group_id: str) -> list[LedgerEntry]:
        return list(LedgerEntry.objects.filter(group_id=group_id).order_by("line"))

    @staticmethod
    def entries_for_reference(reference_type: str, reference_id) -> list[LedgerEntry]:
        """
        All entries for a business entity, oldest first.

        Useful for auditing every money movement behind one order, payout
        or refund.
        """
        return list(
            LedgerEntry.objects.filter(
                reference_type=reference_type,
                reference_id=str(reference_id),
            ).order_by("created_at", "group_id", "line")
        )

    @staticmethod
    def verify_integrity(currency: str | None = None) -> list[UnbalancedGroup]:
        """
        List groups whose debits and credits differ.

        An empty list means every posted group balances.
        """
        queryset = LedgerEntry.objects.all()
        if currency:
            queryset = queryset.filter(currency=currency.upper())

        rows = (
            queryset.order_by()
            .values("group_id", "currency")
            .annotate(
                debits=signed_sum(Direction.DEBIT),
                credits=signed_sum(Direction.CREDIT),
            )
            .filter(~Q(debits=F("credits")))
        )
        return [
            UnbalancedGroup(
                group_id=row["group_id"],
                currency=row["currency"],
                debits=row["debits"],
                credits=row["credits"],
            )
            for row in rows
        ]
