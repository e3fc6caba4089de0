"""Tests for health check endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    """Test basic health check."""
    response = await client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_readiness_check(client):
    """Both in-memory backends report healthy."""
    response = await client.get("/health/ready")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"storage": True, "document_store": True}


@pytest.mark.asyncio
async def test_readiness_degraded(client, document_store):
    async def unhealthy() -> bool:
        raise RuntimeError("qdrant unreachable")

    document_store.health_check = unhealthy

    response = await client.get("/health/ready")
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["document_store"] is False


@pytest.mark.asyncio
async def test_liveness_check(client):
    """Test liveness probe."""
    response = await client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "NeoWhat API"
    assert data["status"] == "running"
