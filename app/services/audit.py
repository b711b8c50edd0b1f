"""Audit Sink — best-effort, append-only record of what happened.

``record`` never raises: a failed write is logged and dropped. Route
handlers hand entries to ``schedule`` which defers the write until after
the response has been sent, so auditing adds no latency and cannot make
a successful operation look failed.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import sessionmaker

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    tenant_id: uuid.UUID
    user_id: uuid.UUID | None
    action: str
    entity: str
    entity_id: uuid.UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def change_snapshot(before: dict[str, Any], after: dict[str, Any], **extra: Any) -> dict[str, Any]:
    """Metadata for override-style actions."""
    return {"before": before, "after": after, **extra}


class AuditSink:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def record(self, entry: AuditEntry) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    AuditLog(
                        tenant_id=entry.tenant_id,
                        user_id=entry.user_id,
                        action=entry.action,
                        entity=entry.entity,
                        entity_id=entry.entity_id,
                        details=jsonable_encoder(entry.metadata),
                    )
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Audit write failed for tenant %s action %s", entry.tenant_id, entry.action
            )

    def schedule(self, background: BackgroundTasks, entry: AuditEntry) -> None:
        """Record *entry* once the response has gone out."""
        background.add_task(self.record, entry)
