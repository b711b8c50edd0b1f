"""Shared base fields for all models."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class TimestampMixin(SQLModel):
    """Created / updated timestamps injected into every table."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class SoftDeleteMixin(SQLModel):
    """Logical tombstone: rows are retired by timestamp, never removed.

    Nothing filters tombstoned rows implicitly. Queries opt in through
    ``live_filter(Model, include_deleted)``.
    """

    deleted_at: datetime | None = Field(default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None


def live_filter(model: type[SoftDeleteMixin], include_deleted: bool) -> list[Any]:
    """WHERE clauses hiding tombstoned rows unless *include_deleted*."""
    if include_deleted:
        return []
    return [model.deleted_at.is_(None)]  # type: ignore[union-attr]
