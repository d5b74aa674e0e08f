"""Per-session lock manager.

In-process lock ensuring a single writer per session key. Each key gets
its own asyncio.Lock, so locks for different keys never block each other
and waiters on the same key are served in arrival order.

A bounded wait protects against a stuck or crashed holder. What happens
when the wait elapses is a policy decision:

- ``proceed``: log a warning and continue without the lock. This keeps the
  conversation live but may apply an update on a stale base.
- ``fail``: raise LockTimeoutError so the second writer never overrides.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from orderflow.errors import LockTimeoutError
from orderflow.observability.logging import get_logger
from orderflow.observability.metrics import SESSION_LOCK_TIMEOUTS, SESSION_LOCK_WAIT

logger = get_logger(__name__)

LOCK_POLICIES = ("proceed", "fail")


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionLockManager:
    """Keyed mutual exclusion for session read-modify-write sequences."""

    def __init__(self, timeout: float = 10.0, policy: str = "proceed") -> None:
        """Initialize the lock manager.

        Args:
            timeout: Maximum seconds to wait for a key (deadlock safety net)
            policy: 'proceed' or 'fail' once the wait elapses
        """
        if policy not in LOCK_POLICIES:
            raise ValueError(f"Unknown lock timeout policy: {policy}")
        self._timeout = timeout
        self._policy = policy
        self._locks: dict[str, _KeyLock] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def policy(self) -> str:
        return self._policy

    @asynccontextmanager
    async def acquire(
        self, key: str, timeout: float | None = None
    ) -> AsyncGenerator[bool, None]:
        """Hold the lock for a session key.

        Yields:
            True if the lock was acquired, False if the wait timed out and
            the policy let the caller proceed anyway.

        Raises:
            LockTimeoutError: The wait timed out under the 'fail' policy.

        Usage:
            async with locks.acquire("111:222") as acquired:
                ...
        """
        wait = self._timeout if timeout is None else timeout
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1

        acquired = False
        started = time.monotonic()
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=wait)
                acquired = True
            except TimeoutError:
                SESSION_LOCK_TIMEOUTS.labels(policy=self._policy).inc()
                logger.warning(
                    "session_lock_timeout",
                    key=key,
                    timeout=wait,
                    policy=self._policy,
                )
                if self._policy == "fail":
                    raise LockTimeoutError(key, wait) from None
            finally:
                SESSION_LOCK_WAIT.observe(time.monotonic() - started)

            yield acquired
        finally:
            if acquired:
                entry.lock.release()
            entry.users -= 1
            if entry.users == 0 and self._locks.get(key) is entry:
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        """Check if a session key is currently held."""
        entry = self._locks.get(key)
        return entry is not None and entry.lock.locked()

    def active_keys(self) -> int:
        """Number of keys with a holder or waiters."""
        return len(self._locks)
