"""
Ledger models for double-entry bookkeeping.

The ledger is an append-only log of single-sided entries. Entries that
belong to one business event share a ``group_id``; within a group, debits
and credits balance per currency. Balances are never stored: they are
derived from the log on demand.

Usage:
    from payments.ledger.models import LedgerEntry

    LedgerEntry.objects.for_account("platform_cash", "RON").balance_cents()
"""

from __future__ import annotations

from django.db import models
from django.db.models import Case, Q, Sum, Value, When
from django.db.models.functions import Coalesce

from core.model_mixins import UUIDPrimaryKeyMixin
from payments.ledger.exceptions import LedgerImmutableError


class Direction(models.TextChoices):
    """Side of a single ledger entry."""

    DEBIT = "debit", "Debit"
    CREDIT = "credit", "Credit"


class ReferenceType(models.TextChoices):
    """Business entity a ledger group belongs to."""

    ORDER = "order", "Order"
    PAYOUT = "payout", "Payout"
    REFUND = "refund", "Refund"


def signed_sum(direction: str):
    return Coalesce(
        Sum(
            Case(
                When(direction=direction, then="amount_cents"),
                default=Value(0),
                output_field=models.BigIntegerField(),
            )
        ),
        Value(0),
        output_field=models.BigIntegerField(),
    )


class LedgerEntryQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of posted entries."""

    def for_account(self, account: str, currency: str) -> LedgerEntryQuerySet:
        return self.filter(account=account, currency=currency.upper())

    def totals(self) -> dict[str, int]:
        """Sum of debits and credits over the queryset."""
        return self.aggregate(
            debits=signed_sum(Direction.DEBIT),
            credits=signed_sum(Direction.CREDIT),
        )

    def balance_cents(self) -> int:
        """Credits minus debits."""
        totals = self.totals()
        return totals["credits"] - totals["debits"]

    def update(self, **kwargs):
        raise LedgerImmutableError("Ledger entries cannot be updated")

    def delete(self):
        raise LedgerImmutableError("Ledger entries cannot be deleted")


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    One side of a ledger movement.

    Entries are immutable once created: corrections are posted as new,
    offsetting groups.

    Fields:
        group_id: Business-derived id shared by the entries of one event
            (e.g. ``order:{id}:paid``)
        line: Position of the entry within its group
        account: Account name (see payments.ledger.accounts)
        direction: debit or credit
        amount_cents: Amount in minor units (always positive)
        currency: ISO 4217 currency code
        reference_type / reference_id: Business entity behind the group
        description: Human-readable description
        metadata: Arbitrary JSON data

    Constraints:
        - amount_cents must be positive
        - (group_id, line) is unique, which also serializes concurrent
          posts of the same group
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    group_id = models.CharField(
        max_length=128,
        db_index=True,
        help_text="Id shared by all entries of one business event",
    )
    line = models.PositiveSmallIntegerField(
        help_text="Position of this entry within its group",
    )

    account = models.CharField(
        max_length=128,
        db_index=True,
        help_text="Ledger account name",
    )
    direction = models.CharField(
        max_length=6,
        choices=Direction.choices,
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in minor units (always positive)",
    )
    currency = models.CharField(
        max_length=3,
        help_text="ISO 4217 currency code",
    )

    reference_type = models.CharField(
        max_length=20,
        choices=ReferenceType.choices,
        help_text="Type of related entity",
    )
    reference_id = models.CharField(
        max_length=64,
        help_text="Id of related entity (order, payout or refund)",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON data for extensibility",
    )

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "group_id", "line"]
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        indexes = [
            models.Index(fields=["reference_type", "reference_id"], name="ledger_reference_idx"),
            models.Index(fields=["account", "currency"], name="ledger_account_currency_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["group_id", "line"],
                name="unique_ledger_group_line",
            ),
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="ledger_entry_amount_cents_positive",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"{self.group_id}#{self.line} {self.direction} {self.account} "
            f"{self.amount_cents / 100:.2f} {self.currency}"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutableError(
                "Ledger entries cannot be updated",
                details={"entry_id": str(self.pk), "group_id": self.group_id},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError(
            "Ledger entries cannot be deleted",
            details={"entry_id": str(self.pk), "group_id": self.group_id},
        )
