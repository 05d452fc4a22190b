"""Best-effort audit trail.

Entries are handed off after the request's transaction has committed. When a
Redis stream is configured they are published as ``audit.recorded`` events and
written by the stream consumer; otherwise the recorder writes them itself
through a dedicated session. Nothing here ever raises into request handling.
"""

from __future__ import annotations

import asyncio

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

import structlog
from fastapi import BackgroundTasks, Request
from sqlalchemy.orm import Session

from shared import EventPublisher, client_ip
from taskboard.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)

AUDIT_EVENT_TYPE = "audit.recorded"


@dataclass(frozen=True)
class AuditEntry:
    action: str
    entity_type: str
    entity_id: Optional[str]
    tenant_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    ip_address: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["tenant_id"] = str(self.tenant_id) if self.tenant_id else None
        payload["user_id"] = str(self.user_id) if self.user_id else None
        payload["created_at"] = self.created_at.isoformat()
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuditEntry":
        created_at = payload.get("created_at")
        return cls(
            action=payload["action"],
            entity_type=payload["entity_type"],
            entity_id=payload.get("entity_id"),
            tenant_id=UUID(payload["tenant_id"]) if payload.get("tenant_id") else None,
            user_id=UUID(payload["user_id"]) if payload.get("user_id") else None,
            ip_address=payload.get("ip_address"),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(timezone.utc),
        )


class AuditRecorder:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        publisher: Optional[EventPublisher] = None,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher

    def record(self, entry: AuditEntry) -> None:
        """Hand the entry off; failures are logged and dropped."""
        try:
            if self._publisher is not None and self._publisher.publish(AUDIT_EVENT_TYPE, entry.to_payload()):
                return
            self.persist(entry)
        except Exception:
            logger.exception(
                "audit_write_failed",
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
            )

    def persist(self, entry: AuditEntry) -> None:
        db = self._session_factory()
        try:
            db.add(
                AuditLog(
                    tenant_id=entry.tenant_id,
                    user_id=entry.user_id,
                    action=entry.action,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    ip_address=entry.ip_address,
                    created_at=entry.created_at,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def build_audit_handler(recorder: AuditRecorder):
    """Stream consumer handler that writes ``audit.recorded`` events."""

    async def handle_audit_recorded(event_type: str, payload: Dict[str, Any]) -> None:
        entry = AuditEntry.from_payload(payload)
        await asyncio.to_thread(recorder.persist, entry)
        logger.debug("audit_persisted", action=entry.action, entity_id=entry.entity_id)

    return handle_audit_recorded


class RequestAudit:
    """Per-request audit handle; entries run as background tasks after the response."""

    def __init__(self, request: Request, background_tasks: BackgroundTasks) -> None:
        self._recorder: Optional[AuditRecorder] = getattr(request.app.state, "audit_recorder", None)
        self._background_tasks = background_tasks
        self._ip_address = client_ip(request)

    def log(
        self,
        action: str,
        entity_type: str,
        entity_id: Any,
        *,
        tenant_id: Optional[UUID],
        user_id: Optional[UUID],
    ) -> None:
        if self._recorder is None:
            logger.warning("audit_recorder_missing", action=action)
            return
        entry = AuditEntry(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            tenant_id=tenant_id,
            user_id=user_id,
            ip_address=self._ip_address,
        )
        self._background_tasks.add_task(self._recorder.record, entry)
