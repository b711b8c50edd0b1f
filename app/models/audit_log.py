"""AuditLog model — append-only trail of security-relevant actions."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.models.base import new_uuid, utcnow


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: uuid.UUID | None = Field(default=None, index=True)  # actor
    action: str = Field(max_length=100, nullable=False, index=True)
    entity: str = Field(max_length=100, nullable=False)
    entity_id: uuid.UUID | None = Field(default=None, index=True)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    # Free-form context; overrides carry "before" / "after" snapshots
    details: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))


# ── Pydantic schemas ─────────────────────────────────────────

class AuditLogRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID | None
    action: str
    entity: str
    entity_id: uuid.UUID | None
    timestamp: datetime
    details: dict[str, Any]
