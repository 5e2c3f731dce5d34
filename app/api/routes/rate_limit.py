from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import RateLimitTiers, get_client_key, get_rate_limit_tiers
from app.schemas.tabs import RateLimitStatusResponse, TierStatus

router = APIRouter(tags=["Rate limit"])


@router.get("/rate-limit-status", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    request: Request,
    tiers: Annotated[RateLimitTiers, Depends(get_rate_limit_tiers)],
) -> RateLimitStatusResponse:
    """Remaining capacity and seconds until reset, per tier, for the caller.

    By default the save and delete tiers are only peeked at, so asking for the
    status does not use up quota. With ``RATE_LIMIT_STATUS_CONSUMES_QUOTA``
    every tier is consumed instead, as earlier releases did. The general tier
    has already counted this request in the middleware either way.
    """

    consume = request.app.state.settings.rate_limit.status_consumes_quota
    key = get_client_key(request.headers)

    statuses: dict[str, TierStatus] = {}
    for name, limiter in tiers:
        result = limiter.consume(key) if consume else limiter.peek(key)
        statuses[name] = TierStatus(remaining=result.remaining, resetTime=result.retry_after_seconds)

    return RateLimitStatusResponse(**statuses)
