"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, including the sweep.
- Windows are anchored at each key's first request, not at wall-clock
  boundaries, so up to 2x the limit can pass across a window seam.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _WindowRecord:
    count: int
    window_end: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Each key gets its own window that starts on its first observed request
    and lasts ``window_seconds``. Once the window has ended the next request
    starts a fresh one with no carry-over.

    Important:
        Records of idle keys stay in memory until :meth:`sweep` runs. The
        application schedules it through ``RateLimitSweeper``.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed requests per window.
            window_seconds: Length of each window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, _WindowRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _build_result(self, *, allowed: bool, now: float, count: int, window_end: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            limit=self._limit,
            remaining=max(0, self._limit - count),
            reset_at=window_end,
            retry_after_seconds=max(0, int(math.ceil(window_end - now))),
        )

    def consume(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Check the current window usage and reserve a slot if allowed.

        A denied request leaves the record untouched.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if now is None:
            now = self._clock()

        with self._lock:
            record = self._records.get(key)
            if record is None or now > record.window_end:
                record = _WindowRecord(count=0, window_end=now + self._window_seconds)
                self._records[key] = record

            allowed = record.count < self._limit
            if allowed:
                record.count += 1

            return self._build_result(
                allowed=allowed, now=now, count=record.count, window_end=record.window_end
            )

    def peek(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Report what ``consume`` would see, without touching state.

        An absent or expired record is reported as a full, not yet started
        window beginning at ``now``.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if now is None:
            now = self._clock()

        with self._lock:
            record = self._records.get(key)
            if record is None or now > record.window_end:
                count, window_end = 0, now + self._window_seconds
            else:
                count, window_end = record.count, record.window_end

        return self._build_result(
            allowed=count < self._limit, now=now, count=count, window_end=window_end
        )

    def sweep(self, *, now: float | None = None) -> int:
        """Remove every record whose window has already ended."""
        if now is None:
            now = self._clock()

        with self._lock:
            expired = [key for key, record in self._records.items() if now > record.window_end]
            for key in expired:
                del self._records[key]

        return len(expired)
