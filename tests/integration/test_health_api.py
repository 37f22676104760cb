"""Health endpoint tests."""

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_readiness(make_app, session_factory, fake_redis) -> None:
    """GET /ready checks the database and Redis and reports the catalog."""
    app = make_app(redis=fake_redis, session_factory=session_factory)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "ok"}
    assert data["catalog"] == {"version": "2025.1", "badges": 9}


@pytest.mark.asyncio
async def test_readiness_degraded(make_app, fake_redis) -> None:
    """Redis failing its ping marks the service degraded."""
    fake_redis.ping.side_effect = ConnectionError("refused")
    app = make_app(redis=fake_redis)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "not configured"
    assert data["checks"]["redis"].startswith("error:")


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    """GET /version returns version and environment."""
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["version"] == "0.1.0"
    assert "environment" in data
    assert data["catalog_version"] == "2025.1"
