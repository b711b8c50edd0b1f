"""Coursework: assignments set in a class and the students' submissions."""

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import field_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import SoftDeleteMixin, TimestampMixin, new_uuid, utcnow


class Assignment(TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "assignments"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    class_id: uuid.UUID = Field(foreign_key="classes.id", nullable=False, index=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    title: str = Field(max_length=255, nullable=False)
    description: str = Field(default="")
    due_at: datetime = Field(nullable=False)
    max_marks: float = Field(default=100)


class SubmissionStatus(StrEnum):
    SUBMITTED = "submitted"
    LATE = "late"
    GRADED = "graded"


class Submission(TimestampMixin, SQLModel, table=True):
    """At most one per student per assignment; resubmitting replaces it."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "assignment_id", "student_id",
            name="uq_submissions_tenant_assignment_student",
        ),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    assignment_id: uuid.UUID = Field(foreign_key="assignments.id", nullable=False, index=True)
    student_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    content: str = Field(default="")
    file_url: str | None = Field(default=None, max_length=2048)
    submitted_at: datetime = Field(default_factory=utcnow, nullable=False)
    status: SubmissionStatus = Field(default=SubmissionStatus.SUBMITTED)
    marks: float | None = Field(default=None)
    feedback: str | None = Field(default=None)
    graded_by: uuid.UUID | None = Field(default=None)
    graded_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class AssignmentCreate(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    due_at: datetime
    max_marks: float = Field(default=100, gt=0)

    @field_validator("due_at")
    @classmethod
    def _naive_utc(cls, v: datetime) -> datetime:
        # Columns hold naive UTC, like every other timestamp.
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class AssignmentRead(SQLModel):
    id: uuid.UUID
    class_id: uuid.UUID
    created_by: uuid.UUID
    title: str
    description: str
    due_at: datetime
    max_marks: float


class SubmissionCreate(SQLModel):
    content: str = ""
    file_url: str | None = Field(default=None, max_length=2048)


class SubmissionGrade(SQLModel):
    marks: float = Field(ge=0)
    feedback: str | None = None


class SubmissionRead(SQLModel):
    id: uuid.UUID
    assignment_id: uuid.UUID
    student_id: uuid.UUID
    content: str
    file_url: str | None
    submitted_at: datetime
    status: SubmissionStatus
    marks: float | None
    feedback: str | None
