"""Integration tests for the risk gate HTTP surface."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.db.store import get_redis
from src.domains.risk.blacklist import BlacklistStore
from src.domains.risk.review_queue import ReviewQueue
from src.main import app
from tests.conftest import AFTERNOON_JST, NIGHT_JST

pytestmark = pytest.mark.integration

BASE_URL = "http://test"


def _payload(**overrides):
    payload = {
        "email": "a@x.com",
        "amount": 9000,
        "tour_id": "night-tour",
        "country_code": "jp",
        "ip_address": "198.51.100.7",
        "occurred_at": AFTERNOON_JST.isoformat(),
        "booking_id": "bk-api-1",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client_redis(fake_redis):
    app.dependency_overrides[get_redis] = lambda: fake_redis
    yield fake_redis
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(client_redis):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as c:
        yield c


class TestEvaluateEndpoint:
    @pytest.mark.asyncio
    async def test_low_risk(self, client):
        response = await client.post("/api/v1/risk/evaluate", json=_payload())
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 0
        assert data["level"] == "low"
        assert data["degraded"] is False
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_high_risk_is_queued(self, client, client_redis):
        response = await client.post(
            "/api/v1/risk/evaluate",
            json=_payload(amount=1, country_code="RU", occurred_at=NIGHT_JST.isoformat()),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["level"] == "high"
        assert data["factors"]["unusual_location"] is True

        queue = ReviewQueue(client_redis, BlacklistStore(client_redis))
        assert await queue.count() == 1

    @pytest.mark.asyncio
    async def test_critical_returns_generic_decline(self, client, client_redis):
        await BlacklistStore(client_redis).ban("a@x.com", "chargeback", "ops")
        response = await client.post(
            "/api/v1/risk/evaluate",
            json=_payload(amount=1, country_code="RU", occurred_at=NIGHT_JST.isoformat()),
            headers={"X-Request-ID": "req-123"},
        )
        assert response.status_code == 403
        data = response.json()
        assert data["error"] == "transaction_declined"
        assert data["request_id"] == "req-123"
        assert "score" not in data
        assert "factors" not in data
        assert "known_bad_actor" not in response.text

    @pytest.mark.asyncio
    async def test_missing_fields_are_bad_request(self, client, client_redis):
        response = await client.post("/api/v1/risk/evaluate", json={"tour_id": "night-tour"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "bad_request"
        assert data["missing"] == ["email", "amount"]
        assert client_redis.calls == []

    @pytest.mark.asyncio
    async def test_client_ip_from_forwarded_header(self, client, client_redis):
        await BlacklistStore(client_redis).ban("203.0.113.50", "proxy abuse", "ops")
        response = await client.post(
            "/api/v1/risk/evaluate",
            json=_payload(ip_address=None),
            headers={"X-Forwarded-For": "203.0.113.50, 10.0.0.1"},
        )
        assert response.status_code == 200
        assert response.json()["factors"]["known_bad_actor"] is True

    @pytest.mark.asyncio
    async def test_naive_timestamp_with_expiring_ban(self, client, client_redis):
        await BlacklistStore(client_redis).ban("a@x.com", "chargeback", "ops", expiration_days=1)
        response = await client.post(
            "/api/v1/risk/evaluate", json=_payload(occurred_at="2024-06-03T14:00:00")
        )
        assert response.status_code == 200
        data = response.json()
        assert data["factors"]["known_bad_actor"] is True
        assert data["factors"]["unusual_time"] is False

    @pytest.mark.asyncio
    async def test_store_outage_degrades(self, client, client_redis):
        client_redis.unavailable = {"*"}
        response = await client.post("/api/v1/risk/evaluate", json=_payload())
        assert response.status_code == 200
        data = response.json()
        assert data["degraded"] is True
        assert "known_bad_actor" in data["unavailable_factors"]


class TestPaymentFailureEndpoint:
    @pytest.mark.asyncio
    async def test_failures_feed_next_evaluation(self, client):
        for hours in (1, 2, 3):
            failed_at = (AFTERNOON_JST - timedelta(hours=hours)).isoformat()
            response = await client.post(
                "/api/v1/risk/payment-failures",
                json={"email": "a@x.com", "failed_at": failed_at},
            )
            assert response.status_code == 202
            assert response.json() == {"status": "recorded"}

        response = await client.post("/api/v1/risk/evaluate", json=_payload())
        assert response.json()["factors"]["recent_failures"] is True

    @pytest.mark.asyncio
    async def test_store_outage_is_503(self, client, client_redis):
        client_redis.unavailable = {"*"}
        response = await client.post("/api/v1/risk/payment-failures", json={"email": "a@x.com"})
        assert response.status_code == 503
        assert response.json()["error"] == "service_unavailable"


class TestReferenceEndpoints:
    @pytest.mark.asyncio
    async def test_reference_summary(self, client):
        response = await client.get("/api/v1/risk/reference")
        assert response.status_code == 200
        data = response.json()
        assert "JP" in data["allowed_countries"]
        assert "night-tour" in data["tours"]

    @pytest.mark.asyncio
    async def test_refresh(self, client):
        response = await client.post("/api/v1/risk/reference/refresh")
        assert response.status_code == 200
        assert response.json()["version"] == response.json()["previous_version"]

    @pytest.mark.asyncio
    async def test_factor_weights(self, client):
        response = await client.get("/api/v1/risk/factors")
        data = response.json()
        weights = {f["factor"]: f["weight"] for f in data["factors"]}
        assert weights["known_bad_actor"] == 50
        store_backed = {f["factor"] for f in data["factors"] if f["store_backed"]}
        assert store_backed == {"multiple_bookings", "recent_failures", "known_bad_actor"}
        assert data["levels"]["critical"] == 90


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "uptime_seconds" in data

    @pytest.mark.asyncio
    async def test_ready_when_store_up(self, client):
        with patch("src.api.routes.health.check_store", AsyncMock(return_value=True)):
            response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_not_ready_when_store_down(self, client):
        with patch("src.api.routes.health.check_store", AsyncMock(return_value=False)):
            response = await client.get("/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
