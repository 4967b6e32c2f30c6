"""
Tests for LedgerEntry immutability and constraints.
"""

import pytest
from django.db import IntegrityError, transaction

from payments.ledger.exceptions import LedgerImmutableError
from payments.ledger.models import LedgerEntry


def make_entry(**overrides):
    fields = {
        "group_id": "order:1:paid",
        "line": 1,
        "account": "platform_cash",
        "direction": "debit",
        "amount_cents": 100,
        "currency": "RON",
        "reference_type": "order",
        "reference_id": "1",
    }
    fields.update(overrides)
    return LedgerEntry.objects.create(**fields)


class TestLedgerEntryImmutability:
    def test_save_existing_raises(self, db):
        entry = make_entry()
        entry.description = "edited"

        with pytest.raises(LedgerImmutableError):
            entry.save()

    def test_delete_raises(self, db):
        entry = make_entry()

        with pytest.raises(LedgerImmutableError):
            entry.delete()

    def test_queryset_update_and_delete_raise(self, db):
        make_entry()

        with pytest.raises(LedgerImmutableError):
            LedgerEntry.objects.all().update(amount_cents=1)
        with pytest.raises(LedgerImmutableError):
            LedgerEntry.objects.all().delete()


class TestLedgerEntryConstraints:
    def test_group_line_unique(self, db):
        make_entry()

        with pytest.raises(IntegrityError), transaction.atomic():
            make_entry(account="commission_revenue", direction="credit")

    def test_str(self, db):
        entry = make_entry()

        assert str(entry) == "order:1:paid#1 debit platform_cash 1.00 RON"
