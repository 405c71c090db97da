"""Per-key minimum-interval rate limiting for async callers."""

import asyncio
import time
from collections.abc import Awaitable, Callable

from ai_nexus.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Enforces a minimum interval between requests sharing a key.

    Each key (a character id, or a fixed key for image plugins) keeps the
    timestamp of its last request. Callers for the same key are serialized
    by a per-key lock so two concurrent requests cannot both observe an
    expired interval. Keys never delay each other.

    Entries are never evicted automatically; the number of keys is bounded by
    the characters and plugins configured in a session. Use ``reset`` to
    clear state.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize rate limiter.

        Args:
            clock: Monotonic time source in seconds
            sleep: Awaitable sleep used for gating (injectable for tests)
        """
        self._clock = clock
        self._sleep = sleep
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def gate(self, key: str, min_interval: float | None) -> float:
        """Wait until ``key`` may issue another request, then record it.

        Args:
            key: Rate limit key
            min_interval: Minimum seconds between requests; None or 0 disables gating

        Returns:
            Seconds spent waiting
        """
        if not min_interval or min_interval <= 0:
            return 0.0

        async with self._lock_for(key):
            delay = 0.0
            last = self._last_request.get(key)
            if last is not None:
                elapsed = self._clock() - last
                if elapsed < min_interval:
                    delay = min_interval - elapsed
                    logger.info(
                        "rate_limit_wait",
                        key=key,
                        delay_seconds=round(delay, 3),
                        min_interval=min_interval,
                    )
                    await self._sleep(delay)
            self._last_request[key] = self._clock()
            return delay

    def last_request_time(self, key: str) -> float | None:
        """Return the recorded timestamp for ``key``, if any."""
        return self._last_request.get(key)

    def reset(self, key: str | None = None) -> None:
        """Forget recorded timestamps for one key or for all keys.

        Per-key locks are kept so a gate already in flight still serializes
        callers that arrive after the reset.
        """
        if key is None:
            self._last_request.clear()
        else:
            self._last_request.pop(key, None)
