"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV so no developer .env file leaks into the test run, and
builds isolated apps (own limiters, fake clock, temporary tab directory).
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import AppSettings, LogSettings, RateLimitSettings, Settings


@pytest.fixture
def clock() -> Mock:
    """Fake epoch clock shared by the limiters and the tab store."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def make_settings(tmp_path) -> Callable[..., Settings]:
    """Build settings with a temporary tab directory and rate limit overrides."""

    def _make(**rate_limit_overrides) -> Settings:
        return Settings(
            app=AppSettings(tabs_dir=str(tmp_path / "tablaturas")),
            rate_limit=RateLimitSettings(**rate_limit_overrides),
            log=LogSettings(),
        )

    return _make


@pytest.fixture
def app(make_settings, clock) -> FastAPI:
    return create_app(make_settings(), clock=clock, configure_logs=False)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def sample_tab() -> dict:
    return {
        "name": "Test Tab",
        "stringCount": 4,
        "measures": [[["-"] * 16 for _ in range(4)]],
        "timestamp": "2025-01-09T00:00:00.000Z",
    }
