"""Integration tests for health check endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_check(client: AsyncClient):
    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["database"] == "connected"


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client: AsyncClient):
    response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "trace-0001-abc"})

    assert response.headers["X-Correlation-ID"] == "trace-0001-abc"


@pytest.mark.asyncio
async def test_malformed_correlation_id_is_replaced(client: AsyncClient):
    response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "bad id!"})

    assert response.headers["X-Correlation-ID"] != "bad id!"
    assert len(response.headers["X-Correlation-ID"]) == 36
