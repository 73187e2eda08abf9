"""Request ids, rate limiting, CORS and error bodies."""

from __future__ import annotations

import pytest

from simplysecure.middleware import rate_limit


class FakePipeline:
    def __init__(self, counts: list[int]) -> None:
        self.counts = counts

    def incr(self, key: str) -> None:
        self.counts[0] += 1

    def expire(self, key: str, seconds: int) -> None:
        pass

    async def execute(self) -> list[int]:
        return [self.counts[0], True]


class FakeRedis:
    def __init__(self, start: int = 0) -> None:
        self.counts = [start]

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self.counts)


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated(self, client):
        response = await client.get("/health")
        assert response.headers["X-Request-Id"]

    @pytest.mark.asyncio
    async def test_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "req-123"})
        assert response.headers["X-Request-Id"] == "req-123"


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_headers_when_under_limit(self, client, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis())
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    @pytest.mark.asyncio
    async def test_blocks_over_limit(self, client, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis(start=100))
        response = await client.get("/api/v1/levels")
        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert response.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_health_exempt(self, client, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis(start=1000))
        response = await client.get("/health")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_no_redis_allows(self, client):
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


class TestCors:
    @pytest.mark.asyncio
    async def test_preflight(self, client):
        response = await client.options(
            "/api/v1/levels",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestErrorBodies:
    @pytest.mark.asyncio
    async def test_route_not_found(self, client):
        response = await client.get("/api/v1/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found", "error": "http_error"}

    @pytest.mark.asyncio
    async def test_validation(self, client):
        response = await client.get("/api/v1/users/not-a-number")
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
