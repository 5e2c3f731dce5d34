"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from app.core.config import RateLimitSettings, Settings


def test_defaults_match_tier_policy():
    cfg = RateLimitSettings()

    assert (cfg.general_requests, cfg.general_window_seconds) == (100, 900)
    assert (cfg.save_requests, cfg.save_window_seconds) == (10, 60)
    assert (cfg.delete_requests, cfg.delete_window_seconds) == (5, 60)
    assert cfg.sweep_interval_seconds == 300
    assert cfg.status_consumes_quota is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_SAVE_REQUESTS", "3")
    monkeypatch.setenv("RATE_LIMIT_STATUS_CONSUMES_QUOTA", "true")
    monkeypatch.setenv("APP_TABS_DIR", "/tmp/tabs")
    monkeypatch.setenv("LOG_FORMAT", "plain")

    cfg = Settings()

    assert cfg.rate_limit.save_requests == 3
    assert cfg.rate_limit.status_consumes_quota is True
    assert cfg.app.tabs_dir == "/tmp/tabs"
    assert cfg.log.format == "plain"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"general_requests": 0},
        {"save_window_seconds": 0},
        {"sweep_interval_seconds": -1},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        RateLimitSettings(**kwargs)
