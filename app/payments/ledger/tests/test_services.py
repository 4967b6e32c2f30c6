"""
Tests for LedgerService posting, balances and integrity checks.
"""

import pytest

from payments.ledger.exceptions import (
    LedgerGroupConflictError,
    LedgerValidationError,
    UnbalancedLedgerGroupError,
)
from payments.ledger.models import LedgerEntry
from payments.ledger.types import EntryParams, Money


# =============================================================================
# Posting
# =============================================================================


class TestPost:
    """Tests for LedgerService.post()."""

    def test_posts_all_lines_in_order(self, db, ledger, paid_group_entries):
        rows = ledger.post("order:1:paid", paid_group_entries, "order", "1")

        assert [row.line for row in rows] == [1, 2, 3]
        assert LedgerEntry.objects.filter(group_id="order:1:paid").count() == 3
        assert {row.reference_id for row in rows} == {"1"}

    def test_repost_same_content_is_noop(self, db, ledger, paid_group_entries):
        first = ledger.post("order:1:paid", paid_group_entries, "order", "1")
        second = ledger.post("order:1:paid", paid_group_entries, "order", "1")

        assert [row.pk for row in first] == [row.pk for row in second]
        assert LedgerEntry.objects.count() == 3

    def test_repost_different_content_conflicts(self, db, ledger, paid_group_entries):
        ledger.post("order:1:paid", paid_group_entries, "order", "1")

        with pytest.raises(LedgerGroupConflictError):
            ledger.post(
                "order:1:paid",
                [
                    EntryParams.debit("platform_cash", 500, "RON"),
                    EntryParams.credit("commission_revenue", 500, "RON"),
                ],
                "order",
                "1",
            )

    def test_unbalanced_group_writes_nothing(self, db, ledger):
        with pytest.raises(UnbalancedLedgerGroupError) as exc_info:
            ledger.post(
                "order:1:paid",
                [
                    EntryParams.debit("platform_cash", 10000, "RON"),
                    EntryParams.credit("commission_revenue", 999, "RON"),
                ],
                "order",
                "1",
            )

        assert exc_info.value.details["debits"] == 10000
        assert exc_info.value.details["credits"] == 999
        assert not LedgerEntry.objects.exists()

    def test_balanced_per_currency(self, db, ledger):
        with pytest.raises(UnbalancedLedgerGroupError):
            ledger.post(
                "fx:1",
                [
                    EntryParams.debit("platform_cash", 100, "RON"),
                    EntryParams.credit("platform_cash", 100, "EUR"),
                ],
                "order",
                "1",
            )

    def test_empty_group_rejected(self, db, ledger):
        with pytest.raises(LedgerValidationError):
            ledger.post("order:1:paid", [], "order", "1")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"account": "", "direction": "debit", "amount_cents": 1, "currency": "RON"},
            {"account": "cash", "direction": "sideways", "amount_cents": 1, "currency": "RON"},
            {"account": "cash", "direction": "debit", "amount_cents": 0, "currency": "RON"},
            {"account": "cash", "direction": "debit", "amount_cents": -5, "currency": "RON"},
            {"account": "cash", "direction": "debit", "amount_cents": 1, "currency": "LEI!"},
        ],
    )
    def test_invalid_entry_params(self, kwargs):
        with pytest.raises(LedgerValidationError):
            EntryParams(**kwargs)

    def test_currency_is_upper_cased(self):
        entry = EntryParams.debit("platform_cash", 100, "ron")

        assert entry.currency == "RON"


# =============================================================================
# Reads
# =============================================================================


class TestBalance:
    """Tests for balance derivation."""

    def test_credits_minus_debits(self, db, ledger, paid_group_entries):
        ledger.post("order:1:paid", paid_group_entries, "order", "1")
        ledger.post(
            "payout:1:paid",
            [
                EntryParams.debit("seller_payable:42", 9000, "RON"),
                EntryParams.credit("platform_cash", 9000, "RON"),
            ],
            "payout",
            "1",
        )

        assert ledger.balance("platform_cash", "RON") == Money(-1000, "RON")
        assert ledger.balance("commission_revenue", "RON") == Money(1000, "RON")
        assert ledger.balance("seller_payable:42", "RON") == Money(0, "RON")

    def test_unknown_account_is_zero(self, db, ledger):
        assert ledger.balance("nobody", "ron") == Money(0, "RON")

    def test_entries_for_reference(self, db, ledger, paid_group_entries):
        ledger.post("order:1:paid", paid_group_entries, "order", "1")
        ledger.post(
            "order:1:shipping",
            [
                EntryParams.debit("platform_cash", 1000, "RON"),
                EntryParams.credit("shipping_revenue", 1000, "RON"),
            ],
            "order",
            "1",
        )

        entries = ledger.entries_for_reference("order", "1")

        assert len(entries) == 5
        assert {entry.group_id for entry in entries} == {"order:1:paid", "order:1:shipping"}


class TestVerifyIntegrity:
    def test_clean_ledger(self, db, ledger, paid_group_entries):
        ledger.post("order:1:paid", paid_group_entries, "order", "1")

        assert ledger.verify_integrity() == []
        assert ledger.verify_integrity("RON") == []

    def test_reports_unbalanced_group(self, db, ledger):
        # Bypass the service to simulate a corrupted log
        LedgerEntry.objects.create(
            group_id="broken:1",
            line=1,
            account="platform_cash",
            direction="debit",
            amount_cents=100,
            currency="RON",
            reference_type="order",
            reference_id="1",
        )

        [unbalanced] = ledger.verify_integrity()

        assert unbalanced.group_id == "broken:1"
        assert unbalanced.debits == 100
        assert unbalanced.credits == 0
