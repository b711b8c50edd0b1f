"""Class-scoped academic records: attendance sheets, grades, fees."""

import datetime as dt
import uuid
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import SoftDeleteMixin, TimestampMixin, new_uuid

# ── Attendance ───────────────────────────────────────────────


class AttendanceStatus(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class Attendance(TimestampMixin, SQLModel, table=True):
    """One sheet per class per day; ``records`` holds one row per student."""

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("tenant_id", "class_id", "date", name="uq_attendance_tenant_class_date"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    class_id: uuid.UUID = Field(foreign_key="classes.id", nullable=False, index=True)
    date: dt.date = Field(nullable=False)
    # [{"student_id": "<uuid>", "status": "present"}, ...]
    records: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    marked_by: uuid.UUID | None = Field(default=None)


class AttendanceEntry(SQLModel):
    student_id: uuid.UUID
    status: AttendanceStatus


class AttendanceMark(SQLModel):
    date: dt.date
    records: list[AttendanceEntry]


class AttendanceOverride(SQLModel):
    student_id: uuid.UUID
    status: AttendanceStatus
    reason: str | None = Field(default=None, max_length=500)


class AttendanceRead(SQLModel):
    id: uuid.UUID
    class_id: uuid.UUID
    date: dt.date
    records: list[AttendanceEntry]


# ── Grades ───────────────────────────────────────────────────


class Grade(TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "class_id", "student_id", "component",
            name="uq_grades_tenant_class_student_component",
        ),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    class_id: uuid.UUID = Field(foreign_key="classes.id", nullable=False, index=True)
    student_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    component: str = Field(default="final", max_length=100)
    value: float = Field(nullable=False)
    max_value: float = Field(default=100)
    graded_by: uuid.UUID | None = Field(default=None)


class GradeEntry(SQLModel):
    student_id: uuid.UUID
    component: str = Field(default="final", max_length=100)
    value: float = Field(ge=0)
    max_value: float = Field(default=100, gt=0)


class GradeOverride(SQLModel):
    value: float = Field(ge=0)
    reason: str | None = Field(default=None, max_length=500)


class GradeRead(SQLModel):
    id: uuid.UUID
    class_id: uuid.UUID
    student_id: uuid.UUID
    component: str
    value: float
    max_value: float


# ── Fees ─────────────────────────────────────────────────────


class FeeStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    WAIVED = "waived"


class Fee(TimestampMixin, SQLModel, table=True):
    __tablename__ = "fees"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    class_id: uuid.UUID = Field(foreign_key="classes.id", nullable=False, index=True)
    student_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    description: str = Field(default="", max_length=255)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    status: FeeStatus = Field(default=FeeStatus.PENDING)


class FeeCreate(SQLModel):
    student_id: uuid.UUID
    description: str = Field(default="", max_length=255)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class FeeWaive(SQLModel):
    reason: str | None = Field(default=None, max_length=500)


class FeeRead(SQLModel):
    id: uuid.UUID
    class_id: uuid.UUID
    student_id: uuid.UUID
    description: str
    amount: Decimal
    status: FeeStatus
