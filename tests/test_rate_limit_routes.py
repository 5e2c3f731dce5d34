"""HTTP-level tests for the general/save/delete rate limit tiers.

Every test gets a fresh app (see conftest) so tier state never leaks
between tests; the fake clock starts at epoch second 1000.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app


@pytest.fixture
def ip_headers() -> dict[str, str]:
    return {"X-Forwarded-For": "1.2.3.4"}


class TestSaveTier:
    """POST /save is limited to 10 per minute on top of the general tier."""

    def test_twelve_saves_two_rejected(self, client: TestClient, sample_tab: dict, ip_headers: dict):
        responses = [
            client.post("/save", json={**sample_tab, "name": f"Test Tab {i}"}, headers=ip_headers)
            for i in range(12)
        ]

        statuses = [r.status_code for r in responses]
        assert statuses.count(200) == 10
        assert statuses.count(429) == 2
        assert statuses[-2:] == [429, 429]

    def test_rejection_body_and_headers(self, client: TestClient, sample_tab: dict, ip_headers: dict):
        for _ in range(10):
            client.post("/save", json=sample_tab, headers=ip_headers)

        blocked = client.post("/save", json=sample_tab, headers=ip_headers)

        assert blocked.status_code == 429
        assert blocked.json() == {"error": "Rate limit exceeded", "remaining": 0, "resetTime": 60}
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert blocked.headers["X-RateLimit-Reset"] == "1060"
        assert blocked.headers["Retry-After"] == "60"

    def test_success_carries_post_increment_headers(
        self, client: TestClient, sample_tab: dict, ip_headers: dict
    ):
        first = client.post("/save", json=sample_tab, headers=ip_headers)
        second = client.post("/save", json=sample_tab, headers=ip_headers)

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Remaining"] == "9"
        assert second.headers["X-RateLimit-Remaining"] == "8"
        assert second.headers["X-RateLimit-Reset"] == "1060"
        assert second.headers["X-RateLimit-Limit"] == "10"

    def test_success_headers_can_be_disabled(self, make_settings, clock, sample_tab: dict):
        app = create_app(make_settings(include_headers=False), clock=clock, configure_logs=False)
        response = TestClient(app).post("/save", json=sample_tab)

        assert response.status_code == 200
        assert "X-RateLimit-Remaining" not in response.headers

    def test_exhausted_save_tier_does_not_block_health(
        self, client: TestClient, sample_tab: dict, ip_headers: dict
    ):
        for _ in range(11):
            client.post("/save", json=sample_tab, headers=ip_headers)

        response = client.get("/health", headers=ip_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_save_tier_resets_after_window(
        self, client: TestClient, clock: Mock, sample_tab: dict, ip_headers: dict
    ):
        for _ in range(10):
            client.post("/save", json=sample_tab, headers=ip_headers)
        assert client.post("/save", json=sample_tab, headers=ip_headers).status_code == 429

        clock.return_value = 1061.0
        response = client.post("/save", json=sample_tab, headers=ip_headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "9"
        assert response.headers["X-RateLimit-Reset"] == "1121"


class TestDeleteTier:

    def test_seven_deletes_two_rejected(self, client: TestClient, ip_headers: dict):
        responses = [client.delete(f"/delete/nonexistent{i}", headers=ip_headers) for i in range(7)]

        rate_limited = [r for r in responses if r.status_code == 429]
        assert len(rate_limited) == 2
        assert rate_limited[0].json()["error"] == "Rate limit exceeded"
        # The first five reached the store and found nothing to delete.
        assert [r.status_code for r in responses[:5]] == [404] * 5

    def test_delete_and_save_tiers_are_independent(
        self, client: TestClient, sample_tab: dict, ip_headers: dict
    ):
        for i in range(5):
            client.delete(f"/delete/missing{i}", headers=ip_headers)
        assert client.delete("/delete/missing", headers=ip_headers).status_code == 429

        assert client.post("/save", json=sample_tab, headers=ip_headers).status_code == 200


class TestGeneralTier:

    @pytest.fixture
    def small_client(self, make_settings, clock) -> TestClient:
        cfg = make_settings(general_requests=3)
        return TestClient(create_app(cfg, clock=clock, configure_logs=False))

    def test_every_route_counts_against_general(self, small_client: TestClient):
        assert small_client.get("/health").status_code == 200
        assert small_client.get("/tabs").status_code == 200
        assert small_client.get("/no-such-route").status_code == 404

        blocked = small_client.get("/health")
        assert blocked.status_code == 429
        assert blocked.json()["resetTime"] == 900
        assert blocked.headers["Retry-After"] == "900"

    def test_general_rejection_skips_stricter_tier(self, small_client: TestClient, sample_tab: dict):
        for _ in range(3):
            small_client.get("/health")

        assert small_client.post("/save", json=sample_tab).status_code == 429

        tiers = small_client.app.state.rate_limit_tiers
        assert tiers.save.peek("unknown").remaining == 10

    def test_different_clients_are_isolated(self, small_client: TestClient):
        for _ in range(3):
            small_client.get("/health", headers={"X-Forwarded-For": "192.168.1.1"})

        assert small_client.get("/health", headers={"X-Forwarded-For": "192.168.1.1"}).status_code == 429
        assert small_client.get("/health", headers={"X-Forwarded-For": "192.168.1.2"}).status_code == 200
        assert small_client.get("/health", headers={"X-Real-IP": "192.168.1.3"}).status_code == 200

    def test_rejection_still_has_request_id(self, small_client: TestClient):
        for _ in range(3):
            small_client.get("/health")

        blocked = small_client.get("/health", headers={"X-Request-ID": "req-429"})

        assert blocked.status_code == 429
        assert blocked.headers["X-Request-ID"] == "req-429"

    def test_disabled_rate_limiting_admits_everything(self, make_settings, clock, sample_tab: dict):
        cfg = make_settings(enabled=False, general_requests=1, save_requests=1)
        client = TestClient(create_app(cfg, clock=clock, configure_logs=False))

        for _ in range(5):
            assert client.get("/health").status_code == 200
            assert client.post("/save", json=sample_tab).status_code == 200


class TestRateLimitStatus:

    def test_reports_all_tiers(self, client: TestClient, ip_headers: dict):
        data = client.get("/rate-limit-status", headers=ip_headers).json()

        assert data == {
            "general": {"remaining": 99, "resetTime": 900},
            "save": {"remaining": 10, "resetTime": 60},
            "delete": {"remaining": 5, "resetTime": 60},
        }

    def test_status_does_not_consume_sensitive_tiers(
        self, client: TestClient, sample_tab: dict, ip_headers: dict
    ):
        for _ in range(20):
            client.get("/rate-limit-status", headers=ip_headers)

        response = client.post("/save", json=sample_tab, headers=ip_headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "9"

    def test_status_reflects_usage(self, client: TestClient, clock: Mock, sample_tab: dict, ip_headers: dict):
        client.post("/save", json=sample_tab, headers=ip_headers)
        clock.return_value = 1030.0

        data = client.get("/rate-limit-status", headers=ip_headers).json()

        assert data["save"] == {"remaining": 9, "resetTime": 30}
        assert data["general"]["remaining"] == 98

    def test_legacy_mode_consumes_every_tier(self, make_settings, clock, ip_headers: dict):
        cfg = make_settings(status_consumes_quota=True)
        client = TestClient(create_app(cfg, clock=clock, configure_logs=False))

        first = client.get("/rate-limit-status", headers=ip_headers).json()
        second = client.get("/rate-limit-status", headers=ip_headers).json()

        assert first["save"]["remaining"] == 9
        assert second["save"]["remaining"] == 8
        assert second["delete"]["remaining"] == 3
        # middleware + endpoint each take a general slot
        assert second["general"]["remaining"] == 96
