"""
Post-commit side effects.

Effects that must only happen once financial state is durable (emails,
invoice requests, signals) are collected in a PostCommitEffects list and
registered with ``transaction.on_commit``. If the transaction rolls back,
nothing runs. Each effect runs in its own error boundary: a failure is
logged and never affects the other effects or the committed state.

Usage:
    effects = PostCommitEffects({"order_id": str(order.id)})
    effects.add("notify_payment_confirmed", lambda: notifier.notify_payment_confirmed(order))
    effects.schedule()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectOutcome:
    name: str
    ok: bool
    result: Any = None
    error: str | None = None


class PostCommitEffects:
    """Ordered list of best-effort callables run after commit."""

    def __init__(self, log_context: dict[str, Any] | None = None) -> None:
        self.log_context = log_context or {}
        self._effects: list[tuple[str, Callable[[], Any]]] = []

    def add(self, name: str, func: Callable[[], Any]) -> PostCommitEffects:
        self._effects.append((name, func))
        return self

    def __len__(self) -> int:
        return len(self._effects)

    def run(self) -> list[EffectOutcome]:
        outcomes = []
        for name, func in self._effects:
            try:
                result = func()
            except Exception as e:
                logger.error(
                    "Post-commit effect failed",
                    extra={**self.log_context, "effect": name},
                    exc_info=True,
                )
                outcomes.append(EffectOutcome(name=name, ok=False, error=str(e)))
                continue
            logger.info(
                "Post-commit effect completed",
                extra={**self.log_context, "effect": name},
            )
            outcomes.append(EffectOutcome(name=name, ok=True, result=result))
        return outcomes

    def schedule(self, using: str | None = None) -> None:
        """Run after the current transaction commits (immediately outside one)."""
        if self._effects:
            transaction.on_commit(self.run, using=using)
