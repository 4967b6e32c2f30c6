"""
Data types for ledger operations.

Types:
    Money: A monetary amount in minor units with currency
    EntryParams: One single-sided line of a ledger group
    UnbalancedGroup: A group found unbalanced by verify_integrity

Usage:
    from payments.ledger.types import EntryParams, Money

    entries = [
        EntryParams(account="platform_cash", direction="debit", amount_cents=10000, currency="RON"),
        EntryParams(account="commission_revenue", direction="credit", amount_cents=1000, currency="RON"),
        EntryParams(account="seller_payable:42", direction="credit", amount_cents=9000, currency="RON"),
    ]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from payments.ledger.exceptions import LedgerValidationError

DEBIT = "debit"
CREDIT = "credit"


@dataclass(frozen=True)
class Money:
    """
    Represents a monetary amount.

    Attributes:
        cents: Amount in the smallest currency unit (may be negative for balances)
        currency: ISO 4217 currency code, upper-case

    Example:
        Money(cents=11000, currency="RON")  # "110.00 RON"
    """

    cents: int
    currency: str

    def __str__(self) -> str:
        return f"{self.cents / 100:.2f} {self.currency}"

    def __add__(self, other: Money) -> Money:
        """Add two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        """Subtract two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot subtract Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents - other.cents, currency=self.currency)

    def to_dict(self) -> dict[str, Any]:
        return {"cents": self.cents, "currency": self.currency}


@dataclass(frozen=True)
class EntryParams:
    """
    Parameters for one line of a ledger group.

    Validated on construction so a malformed line never reaches the
    database.

    Raises:
        LedgerValidationError: empty account, unknown direction,
            non-positive amount or missing currency
    """

    account: str
    direction: str
    amount_cents: int
    currency: str
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.account or not self.account.strip():
            raise LedgerValidationError("Ledger account name cannot be empty")
        if self.direction not in (DEBIT, CREDIT):
            raise LedgerValidationError(
                f"Invalid ledger direction '{self.direction}'",
                details={"direction": self.direction},
            )
        if not isinstance(self.amount_cents, int) or self.amount_cents <= 0:
            raise LedgerValidationError(
                "Ledger amount must be a positive integer",
                details={"account": self.account, "amount_cents": self.amount_cents},
            )
        if not self.currency or len(self.currency) != 3:
            raise LedgerValidationError(
                "Ledger currency must be a 3-letter ISO code",
                details={"currency": self.currency},
            )
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def debit(cls, account: str, amount_cents: int, currency: str, **kwargs: Any) -> EntryParams:
        return cls(account=account, direction=DEBIT, amount_cents=amount_cents, currency=currency, **kwargs)

    @classmethod
    def credit(cls, account: str, amount_cents: int, currency: str, **kwargs: Any) -> EntryParams:
        return cls(account=account, direction=CREDIT, amount_cents=amount_cents, currency=currency, **kwargs)

    def signature(self) -> tuple[str, str, int, str]:
        """Content used to compare a re-posted group with the stored one."""
        return (self.account, self.direction, self.amount_cents, self.currency)


@dataclass(frozen=True)
class UnbalancedGroup:
    """A ledger group whose debits and credits differ in one currency."""

    group_id: str
    currency: str
    debits: int
    credits: int
