"""Event publisher backed by Redis Streams."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import redis
import structlog

logger = structlog.get_logger(__name__)


class EventPublisher:
    """Publish domain events to a Redis Stream.

    Publishing never raises: a failed ``XADD`` is logged and dropped, so
    callers can use it for best-effort side channels such as the audit trail.
    """

    def __init__(self, redis_url: str, stream_name: str, *, maxlen: Optional[int] = 10000) -> None:
        self._stream_name = stream_name
        self._maxlen = maxlen
        self._client = redis.Redis.from_url(redis_url)

    @property
    def stream_name(self) -> str:
        return self._stream_name

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Send an event to the configured stream.

        Parameters
        ----------
        event_type:
            Canonical name, e.g. ``audit.recorded``.
        payload:
            Serialisable body (will be JSON dumped).
        metadata:
            Optional envelope metadata (request id, etc.).

        Returns ``True`` when the entry was appended.
        """

        event = {
            "event_type": event_type,
            "payload": json.dumps(payload, default=str),
        }
        if metadata:
            event["metadata"] = json.dumps(metadata, default=str)

        try:
            self._client.xadd(
                self._stream_name,
                event,
                maxlen=self._maxlen,
                approximate=bool(self._maxlen),
            )
        except redis.RedisError:
            logger.exception("event_publish_failed", event_type=event_type, stream=self._stream_name)
            return False
        return True

    def close(self) -> None:
        self._client.close()


def create_event_publisher(redis_url: Optional[str], stream_name: str) -> Optional[EventPublisher]:
    """Return a publisher, or ``None`` when Redis is not configured."""
    if not isinstance(redis_url, str) or not redis_url.strip():
        return None
    return EventPublisher(redis_url, stream_name)
