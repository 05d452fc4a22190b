"""Liveness and readiness endpoints.

``/health`` only proves the process answers. ``/ready`` checks the database
(always required) and Redis (only when the audit stream is configured) and
answers 503 while any configured dependency is down.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import redis
import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger(__name__)

RedisTarget = Union[redis.Redis, aioredis.Redis, str]

REDIS_PING_TIMEOUT = 1.0


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def check_database_health(engine: Optional[Engine]) -> bool:
    """``SELECT 1`` through ``engine``; ``False`` when missing or unreachable."""
    if engine is None:
        return False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    except SQLAlchemyError as exc:
        logger.warning("readiness_database_down", error=str(exc))
        return False
    return True


async def _ping(target: RedisTarget) -> None:
    if isinstance(target, str):
        client = aioredis.from_url(target)
        try:
            await asyncio.wait_for(client.ping(), timeout=REDIS_PING_TIMEOUT)
        finally:
            await client.aclose()
    elif isinstance(target, redis.Redis):
        target.ping()
    else:
        await asyncio.wait_for(target.ping(), timeout=REDIS_PING_TIMEOUT)


async def check_redis_health(redis_client: Optional[RedisTarget] = None) -> Optional[bool]:
    """Ping Redis.

    Returns ``None`` when Redis is not configured (no client, or an empty
    URL), otherwise whether the ping succeeded.
    """
    if redis_client is None or (isinstance(redis_client, str) and not redis_client.strip()):
        return None
    try:
        await _ping(redis_client)
    except (redis.RedisError, OSError, asyncio.TimeoutError) as exc:
        logger.warning("readiness_redis_down", error=repr(exc))
        return False
    return True


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def create_health_router(
    service_name: str,
    database_engine: Optional[Engine] = None,
    redis_client: Optional[RedisTarget] = None,
) -> APIRouter:
    router = APIRouter(tags=["Health"])

    @router.get("/health", status_code=status.HTTP_200_OK)
    def health() -> Dict[str, Any]:
        return {"status": "ok", "service": service_name, "timestamp": _utc_timestamp()}

    @router.get("/ready")
    async def ready() -> JSONResponse:
        latency: Dict[str, float] = {}

        started = time.perf_counter()
        database_ok = await asyncio.to_thread(check_database_health, database_engine)
        latency["database"] = _elapsed_ms(started)

        started = time.perf_counter()
        redis_ok = await check_redis_health(redis_client)
        if redis_ok is not None:
            latency["redis"] = _elapsed_ms(started)

        # redis None = não configurado, não bloqueia
        healthy = database_ok and redis_ok is not False
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if healthy else "not_ready",
                "service": service_name,
                "timestamp": _utc_timestamp(),
                "checks": {"database": database_ok, "redis": redis_ok},
                "latency_ms": latency,
            },
        )

    return router
