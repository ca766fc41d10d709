"""Tests for health endpoints."""

from unittest.mock import AsyncMock, patch

import pytest


@pytest.mark.asyncio
async def test_health_endpoint(client):
    """Test liveness probe returns ok status."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_health_ready_endpoint(client):
    """Test readiness probe reports a healthy database."""
    with patch(
        "app.health.check_postgresql",
        AsyncMock(return_value={"status": "healthy", "version": "PostgreSQL 16..."}),
    ):
        response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["services"]["postgresql"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_ready_database_down(client):
    """Test readiness probe returns 503 when the database is unreachable."""
    with patch(
        "app.health.check_postgresql",
        AsyncMock(return_value={"status": "unhealthy", "error": "connection refused"}),
    ):
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_check_postgresql_unreachable():
    """Test connection failures are reported, not raised."""
    from app.health import check_postgresql

    with patch("app.health.asyncpg.connect", AsyncMock(side_effect=OSError("refused"))):
        result = await check_postgresql()

    assert result == {"status": "unhealthy", "error": "refused"}
