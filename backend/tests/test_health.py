"""Health check and general endpoint tests."""

from contextlib import asynccontextmanager

import pytest
from httpx import AsyncClient

import app.main as main_module


class _Connection:
    async def execute(self, statement):
        return None


class _Engine:
    def __init__(self, fail: bool = False):
        self.fail = fail

    @asynccontextmanager
    async def connect(self):
        if self.fail:
            raise ConnectionError("database unavailable")
        yield _Connection()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient, monkeypatch, fake_redis):
    """Test health check endpoint."""

    async def fake_get_redis():
        return fake_redis

    monkeypatch.setattr(main_module, "engine", _Engine())
    monkeypatch.setattr(main_module, "get_redis", fake_get_redis)

    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data == {"app": "PortGuard", "status": "healthy", "database": "ok", "redis": "ok"}


@pytest.mark.asyncio
async def test_health_check_degraded(client: AsyncClient, monkeypatch, redis_factory):
    """Dependencies failing degrade the status instead of erroring."""

    async def fake_get_redis():
        return redis_factory(fail=True)

    monkeypatch.setattr(main_module, "engine", _Engine(fail=True))
    monkeypatch.setattr(main_module, "get_redis", fake_get_redis)

    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "error"
    assert data["redis"] == "error"


@pytest.mark.asyncio
async def test_nonexistent_endpoint(client: AsyncClient):
    """Test 404 for nonexistent endpoint."""
    response = await client.get("/api/v1/nonexistent")
    assert response.status_code == 404
