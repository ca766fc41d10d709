"""Health check endpoints."""

import asyncio
from typing import Any

import asyncpg

from .config import settings


async def check_postgresql() -> dict[str, Any]:
    """Check PostgreSQL connectivity."""
    try:
        conn = await asyncio.wait_for(
            asyncpg.connect(
                host=settings.postgres_host,
                port=settings.postgres_port,
                user=settings.postgres_user,
                password=settings.postgres_password,
                database=settings.postgres_db,
            ),
            timeout=5.0,
        )
        try:
            version = await conn.fetchval("SELECT version()")
        finally:
            await conn.close()
        return {"status": "healthy", "version": version[:50] + "..."}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


async def get_health_status() -> dict[str, Any]:
    """Get overall health status."""
    postgres = await check_postgresql()

    return {
        "status": "healthy" if postgres.get("status") == "healthy" else "degraded",
        "services": {
            "postgresql": postgres,
        },
    }
