"""
Exactly-once claiming of provider events.

The guard relies on the unique ``WebhookEvent.event_id`` column: claiming is
a single INSERT inside a savepoint, never a read followed by a write. A
uniqueness violation on an existing ``event_id`` row means another delivery
already claimed the key (a concurrent insert blocks until the first
transaction finishes and then fails the same way). Any other database
error, including an integrity error with no such row, is an
infrastructure problem and is raised as IdempotencyStoreError.

Usage:
    guard = IdempotencyGuard()
    with transaction.atomic():
        claim = guard.claim_once(event.event_id, source=event.source, ...)
        if claim.already_claimed:
            return
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction

from payments.exceptions import IdempotencyStoreError
from payments.models import WebhookEvent

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Claim:
    """Outcome of a claim attempt; ``event`` is set only for a fresh claim."""

    already_claimed: bool
    event: WebhookEvent | None = None


class IdempotencyGuard:
    """Claims event keys with a uniqueness-enforcing insert."""

    def claim_once(self, event_id: str, **fields: Any) -> Claim:
        """
        Insert the WebhookEvent row for ``event_id``.

        Must run inside the caller's transaction so that a crash later in
        processing rolls the claim back with everything else.

        Raises:
            IdempotencyStoreError: the insert failed for a reason other
                than a duplicate key
        """
        try:
            with transaction.atomic():
                event = WebhookEvent.objects.create(event_id=event_id, **fields)
        except IntegrityError as e:
            # only a row already holding this event_id counts as a duplicate
            if not self._is_claimed(event_id):
                raise self._store_error(event_id, e) from e
            logger.info("Event already claimed", extra={"event_id": event_id})
            return Claim(already_claimed=True)
        except DatabaseError as e:
            raise self._store_error(event_id, e) from e
        return Claim(already_claimed=False, event=event)

    def _is_claimed(self, event_id: str) -> bool:
        try:
            return WebhookEvent.objects.filter(event_id=event_id).exists()
        except DatabaseError as e:
            raise self._store_error(event_id, e) from e

    @staticmethod
    def _store_error(event_id: str, cause: DatabaseError) -> IdempotencyStoreError:
        logger.error(
            "Idempotency store failure",
            extra={"event_id": event_id},
            exc_info=cause,
        )
        return IdempotencyStoreError(
            "Could not claim event",
            details={"event_id": event_id, "cause": type(cause).__name__},
        )
