"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so each tier can be backed by a different store without touching routes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window ends.
        retry_after_seconds: Whole seconds until the window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int

    @property
    def reset_epoch_seconds(self) -> int:
        """Window end rounded up to whole epoch seconds (header value)."""
        return int(math.ceil(self.reset_at))


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum number of requests per window."""
        raise NotImplementedError

    @property
    @abstractmethod
    def window_seconds(self) -> float:
        """Length of a window in seconds."""
        raise NotImplementedError

    @abstractmethod
    def consume(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Check the budget for ``key`` and reserve one slot when allowed.

        Args:
            key: Client identity (see ``app.core.rate_limit.get_client_key``).
            now: Current time in epoch seconds; the limiter clock when omitted.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, key: str, *, now: float | None = None) -> RateLimitResult:
        """Report the budget for ``key`` without consuming or creating state."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, *, now: float | None = None) -> int:
        """Drop state for every key whose window has ended.

        Returns:
            Number of records removed.
        """
        raise NotImplementedError
