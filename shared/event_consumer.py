"""Redis Streams consumer-group reader."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Coroutine, Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)


EventHandler = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class EventConsumer:
    """
    Consume events from a Redis Stream using a consumer group.

    Example:
        consumer = EventConsumer(
            redis_url="redis://localhost:6379",
            stream_name="audit-events",
            group_name="taskboard-audit",
            consumer_name="audit-worker-1",
        )
        consumer.register_handler("audit.recorded", handle_audit_recorded)
        await consumer.start()

    An entry is acknowledged only after its handler returns. A failing handler
    leaves it pending for this consumer and it is replayed on the next start.
    """

    def __init__(
        self,
        redis_url: str,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        *,
        block_ms: int = 5000,
        count: int = 10,
    ) -> None:
        self._redis_url = redis_url
        self._stream_name = stream_name
        self._group_name = group_name
        self._consumer_name = consumer_name
        self._block_ms = block_ms
        self._count = count
        self._handlers: dict[str, EventHandler] = {}
        self._client: Optional[aioredis.Redis] = None
        self._running = False
        self._log = logger.bind(stream=stream_name, group=group_name, consumer=consumer_name)

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type] = handler
        self._log.info("event_handler_registered", event_type=event_type)

    async def _ensure_consumer_group(self) -> None:
        try:
            await self._client.xgroup_create(
                name=self._stream_name,
                groupname=self._group_name,
                id="0",
                mkstream=True,
            )
            self._log.info("consumer_group_created")
        except aioredis.ResponseError as exc:
            # BUSYGROUP: grupo já existe
            if "BUSYGROUP" not in str(exc):
                raise

    async def _process_message(self, message_id: bytes, data: dict[bytes, bytes]) -> None:
        """Dispatch one stream entry to its handler and acknowledge it."""
        event_type = data.get(b"event_type", b"").decode("utf-8")
        try:
            payload = json.loads(data.get(b"payload", b"{}").decode("utf-8"))

            handler = self._handlers.get(event_type)
            if handler is None:
                self._log.debug("event_without_handler", event_type=event_type)
            else:
                await handler(event_type, payload)

            await self._client.xack(self._stream_name, self._group_name, message_id)
        except Exception:
            # sem ack: a entrada continua pendente
            self._log.exception("event_processing_failed", event_type=event_type, message_id=message_id)

    async def _read_pending_messages(self) -> None:
        """Replay entries delivered to this consumer but never acknowledged."""
        pending = await self._client.xpending_range(
            name=self._stream_name,
            groupname=self._group_name,
            min="-",
            max="+",
            count=self._count,
            consumername=self._consumer_name,
        )
        if pending:
            self._log.info("pending_events_found", count=len(pending))

        for entry in pending:
            message_id = entry["message_id"]
            messages = await self._client.xrange(self._stream_name, min=message_id, max=message_id)
            if messages:
                _, data = messages[0]
                await self._process_message(message_id, data)

    async def _read_batch(self) -> None:
        batches = await self._client.xreadgroup(
            groupname=self._group_name,
            consumername=self._consumer_name,
            streams={self._stream_name: ">"},
            count=self._count,
            block=self._block_ms,
        )
        for _, entries in batches or []:
            for message_id, data in entries:
                await self._process_message(message_id, data)

    async def start(self) -> None:
        """Consume until :meth:`stop` is called or the task is cancelled."""
        if self._running:
            self._log.warning("consumer_already_running")
            return

        self._running = True
        self._client = aioredis.Redis.from_url(self._redis_url)

        try:
            await self._ensure_consumer_group()
            self._log.info("consumer_started")
            await self._read_pending_messages()

            while self._running:
                try:
                    await self._read_batch()
                except asyncio.CancelledError:
                    self._log.info("consumer_cancelled")
                    break
                except aioredis.RedisError:
                    self._log.exception("consumer_read_failed")
                    await asyncio.sleep(1)
        finally:
            self._running = False
            if self._client:
                await self._client.aclose()
            self._log.info("consumer_stopped")

    async def stop(self) -> None:
        """Ask the loop to finish after the current read."""
        self._running = False


async def cleanup_consumer(
    consumer: Optional[EventConsumer],
    task: Optional[asyncio.Task],
    log: Any = logger,
) -> None:
    """Stop ``consumer`` and wait for its task, cancelling it if it lingers."""
    if consumer is None or task is None:
        return

    await consumer.stop()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    log.info("event_consumer_stopped")
