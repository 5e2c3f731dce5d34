"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated apps with their own settings, clock and storage directory.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from app.api.routes import health_router, rate_limit_router, tabs_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limit_tiers, general_rate_limit_middleware
from app.services.rate_limit_sweeper import RateLimitSweeper
from app.services.tab_store import TabStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare storage and run the rate limit sweeper while the app serves."""
    app.state.tab_store.ensure_dir()
    await app.state.sweeper.start()
    logger.info(
        "app.started",
        extra={
            "tabs_dir": str(app.state.tab_store.base_dir),
            "rate_limit_enabled": app.state.settings.rate_limit.enabled,
        },
    )
    try:
        yield
    finally:
        await app.state.sweeper.stop()
        logger.info("app.stopped")


def create_app(
    settings: Settings | None = None,
    *,
    clock: Callable[[], float] = time.time,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; the environment-derived global by default.
        clock: Time source for the rate limiters and tab file names.
        configure_logs: Whether to (re)configure the root logger.

    Returns:
        Configured FastAPI app. Limiters, sweeper and store live on
        ``app.state``.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    app = FastAPI(
        title="Tabs Server",
        description=(
            "Storage API for a guitar/bass tablature editor. Tablatures are "
            "stored as JSON files; every route is rate limited per client, "
            "with stricter limits on saving and deleting."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    tiers = build_rate_limit_tiers(cfg.rate_limit, clock=clock)
    app.state.settings = cfg
    app.state.rate_limit_tiers = tiers
    app.state.sweeper = RateLimitSweeper(tiers, cfg.rate_limit.sweep_interval_seconds)
    app.state.tab_store = TabStore(cfg.app.tabs_dir, clock=clock)

    # Middleware: the last registered runs first, so request ids wrap the gate
    app.middleware("http")(general_rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(tabs_router)
    app.include_router(rate_limit_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
