"""Rate limiting wiring for the HTTP layer.

This module connects the limiter adapters to FastAPI:

- ``get_client_key`` derives the caller identity every tier is keyed by.
- ``build_rate_limit_tiers`` constructs the three independent limiters once
  per application; ``create_app`` stores them on ``app.state``.
- ``general_rate_limit_middleware`` gates every request on the general tier
  before routing.
- ``enforce_save_rate_limit`` / ``enforce_delete_rate_limit`` are route
  dependencies for the stricter tiers.

Known limitation: the client key comes from proxy headers that are not
verified. A client that forges ``X-Forwarded-For`` gets a fresh quota. Only
deploy behind a proxy that overwrites those headers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Mapping

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import RateLimitExceededError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

TIER_GENERAL = "general"
TIER_SAVE = "save"
TIER_DELETE = "delete"


@dataclass(frozen=True)
class RateLimitTiers:
    """The independent limiter instances guarding each class of routes."""

    general: AbstractRateLimiter
    save: AbstractRateLimiter
    delete: AbstractRateLimiter

    def __iter__(self) -> Iterator[tuple[str, AbstractRateLimiter]]:
        yield TIER_GENERAL, self.general
        yield TIER_SAVE, self.save
        yield TIER_DELETE, self.delete

    def get(self, tier: str) -> AbstractRateLimiter:
        for name, limiter in self:
            if name == tier:
                return limiter
        raise KeyError(tier)


def build_rate_limit_tiers(
    cfg: RateLimitSettings,
    clock: Callable[[], float] = time.time,
) -> RateLimitTiers:
    """Create fresh in-memory limiters for every tier.

    Args:
        cfg: Rate limit settings (caps and window lengths per tier).
        clock: Time source shared by all tiers; tests pass a fake one.
    """

    return RateLimitTiers(
        general=InMemoryFixedWindowRateLimiter(
            limit=cfg.general_requests, window_seconds=cfg.general_window_seconds, clock=clock
        ),
        save=InMemoryFixedWindowRateLimiter(
            limit=cfg.save_requests, window_seconds=cfg.save_window_seconds, clock=clock
        ),
        delete=InMemoryFixedWindowRateLimiter(
            limit=cfg.delete_requests, window_seconds=cfg.delete_window_seconds, clock=clock
        ),
    )


def get_client_key(headers: Mapping[str, str]) -> str:
    """Derive the limiter key from proxy headers.

    Order: first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    ``"unknown"`` sentinel. The result is never empty.

    Examples:
        >>> get_client_key({"x-forwarded-for": "1.2.3.4, 10.0.0.1"})
        '1.2.3.4'
        >>> get_client_key({"x-real-ip": "5.6.7.8"})
        '5.6.7.8'
        >>> get_client_key({})
        'unknown'
    """

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT


def get_rate_limit_tiers(request: Request) -> RateLimitTiers:
    """FastAPI dependency returning the limiters owned by the running app."""

    return request.app.state.rate_limit_tiers


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers that let callers self-throttle (post-increment state)."""

    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_epoch_seconds),
    }


def build_rate_limit_response(result: RateLimitResult) -> JSONResponse:
    """Build the 429 response for a denied request.

    Body carries the seconds left in the window; ``X-RateLimit-Reset`` is the
    absolute epoch second the window ends.
    """

    headers = rate_limit_headers(result)
    headers["Retry-After"] = str(result.retry_after_seconds)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Rate limit exceeded",
            "remaining": 0,
            "resetTime": result.retry_after_seconds,
        },
        headers=headers,
    )


def _log_decision(tier: str, key: str, result: RateLimitResult, path: str) -> None:
    fields = {
        "tier": tier,
        "key_hash": hash_identity(key),
        "path": path,
        "limit": result.limit,
        "remaining": result.remaining,
    }
    if result.allowed:
        logger.debug("rate_limit.allowed", extra=fields)
    else:
        logger.warning(
            "rate_limit.exceeded",
            extra={**fields, "retry_after_s": result.retry_after_seconds},
        )


async def general_rate_limit_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Gate every request on the general tier before any route runs.

    A rejected request never reaches routing, so the stricter tiers are not
    consulted (and not consumed) for it.
    """

    cfg: RateLimitSettings = request.app.state.settings.rate_limit
    if not cfg.enabled:
        return await call_next(request)

    key = get_client_key(request.headers)
    result = get_rate_limit_tiers(request).general.consume(key)
    _log_decision(TIER_GENERAL, key, result, request.url.path)

    if not result.allowed:
        return build_rate_limit_response(result)

    return await call_next(request)


def enforce_tier(tier: str) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a route dependency that consumes one slot on ``tier``.

    On success the tier's headers are added to the route's response; on
    denial ``RateLimitExceededError`` is raised and turned into a 429 by the
    exception handlers.
    """

    async def dependency(request: Request, response: Response) -> None:
        cfg: RateLimitSettings = request.app.state.settings.rate_limit
        if not cfg.enabled:
            return

        key = get_client_key(request.headers)
        result = get_rate_limit_tiers(request).get(tier).consume(key)
        _log_decision(tier, key, result, request.url.path)

        if not result.allowed:
            raise RateLimitExceededError(tier, result)

        if cfg.include_headers:
            response.headers.update(rate_limit_headers(result))

    dependency.__name__ = f"enforce_{tier}_rate_limit"
    return dependency


enforce_save_rate_limit = enforce_tier(TIER_SAVE)
enforce_delete_rate_limit = enforce_tier(TIER_DELETE)
