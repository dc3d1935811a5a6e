"""
Short-lived counters keyed by identifier.

Failed admin logins and request rate limits both need "how many times in the
last N seconds". ``CounterStore`` is the storage seam; ``MemoryCounterStore``
serves a single process and a shared cache can implement the same four
methods for multi-instance deployments.
"""

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from errors import TooManyRequestsError
from settings import settings

logger = logging.getLogger(__name__)


class CounterStore:
    def incr(self, key: str, ttl_seconds: int) -> int:
        raise NotImplementedError

    def get(self, key: str) -> int:
        raise NotImplementedError

    def ttl(self, key: str) -> float:
        raise NotImplementedError

    def reset(self, key: str) -> None:
        raise NotImplementedError


class MemoryCounterStore(CounterStore):
    """Counters whose window starts at the first increment and expires ``ttl_seconds`` later.

    Expired entries are dropped when read, and in bulk on ``incr`` at most
    once every ``sweep_seconds``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_seconds: float = 60.0):
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._sweep_seconds = sweep_seconds
        self._next_sweep = clock() + sweep_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def _live(self, key: str) -> Optional[Tuple[int, float]]:
        entry = self._entries.get(key)
        if entry and entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _sweep(self) -> None:
        now = self._clock()
        if now < self._next_sweep:
            return
        expired = [key for key, (_, expires) in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self._sweep_seconds
        if expired:
            logger.debug("Swept %d expired counters", len(expired))

    def incr(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            self._sweep()
            entry = self._live(key)
            if entry is None:
                entry = (0, self._clock() + ttl_seconds)
            count = entry[0] + 1
            self._entries[key] = (count, entry[1])
            return count

    def get(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else 0

    def ttl(self, key: str) -> float:
        with self._lock:
            entry = self._live(key)
            return max(entry[1] - self._clock(), 0.0) if entry else 0.0

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class LoginLockout:
    def __init__(self, store: CounterStore, max_attempts: int, lockout_minutes: int):
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = lockout_minutes * 60

    def _key(self, identifier: str) -> str:
        return f"login-fail:{identifier}"

    def remaining_minutes(self, identifier: str) -> int:
        """Minutes left on an active lockout, 0 when the identifier may try again."""
        key = self._key(identifier)
        if self.store.get(key) < self.max_attempts:
            return 0
        return max(1, math.ceil(self.store.ttl(key) / 60))

    def record_failure(self, identifier: str) -> int:
        count = self.store.incr(self._key(identifier), self.window_seconds)
        if count >= self.max_attempts:
            logger.warning("Account locked after %d failed login attempts", count)
        return count

    def clear(self, identifier: str) -> None:
        self.store.reset(self._key(identifier))


class RateLimiter:
    """FastAPI dependency limiting requests per client address."""

    def __init__(self, store: CounterStore, scope: str, limit: int, window_seconds: int):
        self.store = store
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        count = self.store.incr(f"rate:{self.scope}:{client}", self.window_seconds)
        if count > self.limit:
            logger.warning("Rate limit exceeded for %s on %s", client, self.scope)
            raise TooManyRequestsError("Too many requests. Please try again later.")


counter_store = MemoryCounterStore()

admin_lockout = LoginLockout(counter_store, settings.max_failed_logins, settings.lockout_minutes)

login_rate_limit = RateLimiter(
    counter_store, "login", settings.rate_limit_requests, settings.rate_limit_window_seconds
)
