"""
Cross-process locking for payment batch work.

Row-level locks (select_for_update on the order row) serialize payout and
refund claims inside the database. Batch jobs that span many rows, such as
the periodic payout run, are serialized across workers with a Redis lock
instead, so two beat ticks never process the same batch concurrently.

Usage:
    from payments.locks import DistributedLock

    with DistributedLock("payouts:batch", ttl=900, blocking=False):
        orchestrator.run_batch(as_of)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Ownership is tracked with a random token so that a process can only
    release or extend a lock it holds. The TTL releases the lock if the
    holder crashes.

    Args:
        key: Lock identifier (stored under "lock:{key}")
        ttl: Seconds before Redis drops the lock on its own
        blocking: Wait for the lock instead of failing immediately
        timeout: Maximum wait in seconds when blocking
    """

    # Delete only if the stored token is ours
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    # Reset the TTL only if the stored token is ours
    EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    POLL_INTERVAL_SECONDS = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: lock held elsewhere (non-blocking) or not
                obtained within ``timeout`` (blocking)
        """
        token = str(uuid.uuid4())
        deadline = time.monotonic() + (self.timeout if self.blocking else 0)

        while True:
            if self.redis.set(self.key, token, nx=True, ex=self.ttl):
                self._token = token
                return True
            if time.monotonic() >= deadline:
                break
            time.sleep(self.POLL_INTERVAL_SECONDS)

        if self.blocking:
            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )
        raise LockAcquisitionError(
            f"Lock '{self.key}' is already held",
            details={"key": self.key},
        )

    def release(self) -> bool:
        """Release the lock if held. Safe to call more than once."""
        if self._token is None:
            return False
        released = self.redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(released)

    def extend(self, ttl: int | None = None) -> bool:
        """Reset the remaining TTL (to ``ttl`` or the original TTL)."""
        if self._token is None:
            return False
        extended = self.redis.eval(
            self.EXTEND_SCRIPT, 1, self.key, self._token, ttl or self.ttl
        )
        return bool(extended)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False
