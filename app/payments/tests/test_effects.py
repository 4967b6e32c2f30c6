"""
Tests for PostCommitEffects.
"""

import pytest
from django.db import transaction

from payments.services.effects import PostCommitEffects


class TestRun:
    def test_runs_in_order_and_returns_outcomes(self):
        calls = []
        effects = PostCommitEffects()
        effects.add("first", lambda: calls.append("first") or 1)
        effects.add("second", lambda: calls.append("second") or 2)

        outcomes = effects.run()

        assert calls == ["first", "second"]
        assert [(o.name, o.ok, o.result) for o in outcomes] == [
            ("first", True, 1),
            ("second", True, 2),
        ]

    def test_failure_is_isolated(self):
        calls = []

        def broken():
            raise ConnectionError("smtp down")

        effects = PostCommitEffects({"order_id": "o-1"})
        effects.add("email", broken).add("invoice", lambda: calls.append("invoice"))

        outcomes = effects.run()

        assert calls == ["invoice"]
        assert outcomes[0].ok is False
        assert outcomes[0].error == "smtp down"
        assert outcomes[1].ok is True

    def test_len(self):
        effects = PostCommitEffects().add("a", lambda: None)

        assert len(effects) == 1


@pytest.mark.django_db
class TestSchedule:
    def test_runs_only_after_commit(self, django_capture_on_commit_callbacks):
        calls = []
        effects = PostCommitEffects().add("a", lambda: calls.append("a"))

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with transaction.atomic():
                effects.schedule()
                assert calls == []

        assert len(callbacks) == 1
        assert calls == ["a"]

    def test_dropped_on_rollback(self, django_capture_on_commit_callbacks):
        calls = []
        effects = PostCommitEffects().add("a", lambda: calls.append("a"))

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError), transaction.atomic():
                effects.schedule()
                raise RuntimeError("rollback")

        assert callbacks == []
        assert calls == []

    def test_empty_list_registers_nothing(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            PostCommitEffects().schedule()

        assert callbacks == []
