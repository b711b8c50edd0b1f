"""Enrollment model — the only grant of access to a class."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import SoftDeleteMixin, TimestampMixin, new_uuid, utcnow


class RoleInClass(StrEnum):
    STUDENT = "student"
    TEACHER = "teacher"


class EnrollmentStatus(StrEnum):
    ACTIVE = "active"
    DROPPED = "dropped"
    COMPLETED = "completed"


class Enrollment(TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "enrollments"
    # One row per user/class ever, whatever its status or tombstone.
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "user_id", "class_id", name="uq_enrollments_tenant_user_class"
        ),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    class_id: uuid.UUID = Field(foreign_key="classes.id", nullable=False, index=True)
    role_in_class: RoleInClass = Field(nullable=False)
    status: EnrollmentStatus = Field(default=EnrollmentStatus.ACTIVE)
    joined_at: datetime = Field(default_factory=utcnow, nullable=False)

    # Last user to change this row
    updated_by: uuid.UUID | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class EnrollmentCreate(SQLModel):
    user_id: uuid.UUID
    class_id: uuid.UUID
    role_in_class: RoleInClass = RoleInClass.STUDENT


class EnrollmentUpdate(SQLModel):
    role_in_class: RoleInClass | None = None
    status: EnrollmentStatus | None = None


class EnrollmentRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    class_id: uuid.UUID
    role_in_class: RoleInClass
    status: EnrollmentStatus
    joined_at: datetime
    deleted_at: datetime | None
