from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Only the general rate limit tier applies here, so it keeps answering
    while a client is throttled on saves or deletes.

    Returns:
        dict: ``status`` set to "ok" and the server's current UTC timestamp.
    """

    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
