"""Startup helpers shared by the FastAPI lifespan."""

from __future__ import annotations

import asyncio

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.schema import MetaData

logger = structlog.get_logger(__name__)


async def init_database(
    *,
    service_name: str,
    metadata: MetaData,
    engine: Engine,
    retries: int = 10,
    wait_seconds: float = 2.0,
) -> None:
    """Create missing tables, waiting for the database to come up.

    Raises the last ``OperationalError`` once ``retries`` attempts failed.
    """
    for attempt in range(1, retries + 1):
        try:
            await asyncio.to_thread(metadata.create_all, bind=engine)
            return
        except OperationalError as exc:
            if attempt == retries:
                logger.error("database_unavailable", service=service_name, attempts=retries)
                raise
            logger.warning(
                "database_unavailable_retrying",
                service=service_name,
                attempt=attempt,
                wait_seconds=wait_seconds,
                error=str(exc),
            )
            await asyncio.sleep(wait_seconds)
