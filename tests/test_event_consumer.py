"""Tests for the EventConsumer class and related utilities."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as aioredis

from shared.event_consumer import EventConsumer, cleanup_consumer


@pytest.fixture
def consumer():
    return EventConsumer(
        redis_url="redis://localhost:6379",
        stream_name="audit-events",
        group_name="taskboard-audit",
        consumer_name="audit-worker-1",
    )


@pytest.fixture
def consumer_with_mock_redis(consumer):
    consumer._client = AsyncMock()
    return consumer


class TestEventConsumer:
    def test_initial_state(self, consumer):
        assert consumer._running is False
        assert consumer._client is None
        assert consumer._handlers == {}

    def test_register_handler(self, consumer):
        async def handler(event_type: str, payload: dict[str, Any]) -> None:
            pass

        consumer.register_handler("audit.recorded", handler)

        assert consumer._handlers == {"audit.recorded": handler}

    @pytest.mark.asyncio
    async def test_stop_sets_running_to_false(self, consumer):
        consumer._running = True

        await consumer.stop()

        assert consumer._running is False

    @pytest.mark.asyncio
    async def test_start_returns_early_if_already_running(self, consumer):
        consumer._running = True

        await consumer.start()

        assert consumer._client is None


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_dispatches_and_acknowledges(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis
        calls = []

        async def handler(event_type: str, payload: dict[str, Any]) -> None:
            calls.append((event_type, payload))

        consumer.register_handler("audit.recorded", handler)

        await consumer._process_message(
            b"1-0",
            {b"event_type": b"audit.recorded", b"payload": b'{"action": "LOGIN"}'},
        )

        assert calls == [("audit.recorded", {"action": "LOGIN"})]
        consumer._client.xack.assert_awaited_once_with("audit-events", "taskboard-audit", b"1-0")

    @pytest.mark.asyncio
    async def test_unknown_event_is_acknowledged(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis

        await consumer._process_message(b"2-0", {b"event_type": b"other.event", b"payload": b"{}"})

        consumer._client.xack.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_handler_leaves_message_pending(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis

        async def handler(event_type: str, payload: dict[str, Any]) -> None:
            raise RuntimeError("database down")

        consumer.register_handler("audit.recorded", handler)

        await consumer._process_message(b"3-0", {b"event_type": b"audit.recorded", b"payload": b"{}"})

        consumer._client.xack.assert_not_awaited()


class TestConsumerGroup:
    @pytest.mark.asyncio
    async def test_existing_group_is_ignored(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis
        consumer._client.xgroup_create.side_effect = aioredis.ResponseError(
            "BUSYGROUP Consumer Group name already exists"
        )

        await consumer._ensure_consumer_group()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis
        consumer._client.xgroup_create.side_effect = aioredis.ResponseError("WRONGTYPE")

        with pytest.raises(aioredis.ResponseError):
            await consumer._ensure_consumer_group()

    @pytest.mark.asyncio
    async def test_pending_messages_are_reprocessed(self, consumer_with_mock_redis):
        consumer = consumer_with_mock_redis
        consumer._client.xpending_range.return_value = [{"message_id": b"4-0"}]
        consumer._client.xrange.return_value = [
            (b"4-0", {b"event_type": b"audit.recorded", b"payload": b'{"action": "LOGOUT"}'})
        ]
        calls = []

        async def handler(event_type: str, payload: dict[str, Any]) -> None:
            calls.append(payload["action"])

        consumer.register_handler("audit.recorded", handler)

        await consumer._read_pending_messages()

        assert calls == ["LOGOUT"]
        consumer._client.xack.assert_awaited_once_with("audit-events", "taskboard-audit", b"4-0")


class TestCleanupConsumer:
    @pytest.mark.asyncio
    async def test_noop_without_consumer(self):
        await cleanup_consumer(None, None)

    @pytest.mark.asyncio
    async def test_stops_and_cancels_task(self, consumer):
        consumer._running = True
        task = asyncio.create_task(asyncio.sleep(60))

        await cleanup_consumer(consumer, task)

        assert consumer._running is False
        assert task.cancelled()
