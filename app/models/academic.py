"""Academic structure: programs, their cycles, and the classes that run in them."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import SoftDeleteMixin, TimestampMixin, new_uuid


class Program(TimestampMixin, SQLModel, table=True):
    __tablename__ = "programs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    name: str = Field(max_length=255, nullable=False)


class AcademicCycle(TimestampMixin, SQLModel, table=True):
    """A semester / term inside one program."""

    __tablename__ = "academic_cycles"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    program_id: uuid.UUID = Field(foreign_key="programs.id", nullable=False, index=True)
    name: str = Field(max_length=255, nullable=False)
    sequence_number: int = Field(default=1)


class ClassStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class Class(TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    """The unit every grade, attendance sheet and fee is scoped to."""

    __tablename__ = "classes"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    program_id: uuid.UUID = Field(foreign_key="programs.id", nullable=False, index=True)
    academic_cycle_id: uuid.UUID = Field(
        foreign_key="academic_cycles.id", nullable=False, index=True
    )
    name: str = Field(max_length=255, nullable=False)
    session: str = Field(default="", max_length=50)
    capacity: int = Field(default=30)
    status: ClassStatus = Field(default=ClassStatus.ACTIVE)


# ── Pydantic schemas ─────────────────────────────────────────

class AcademicCycleCreate(SQLModel):
    program_id: uuid.UUID
    name: str = Field(min_length=1, max_length=255)
    sequence_number: int = Field(default=1, ge=1)


class AcademicCycleUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sequence_number: int | None = Field(default=None, ge=1)


class AcademicCycleRead(SQLModel):
    id: uuid.UUID
    program_id: uuid.UUID
    name: str
    sequence_number: int


class ClassCreate(SQLModel):
    program_id: uuid.UUID
    academic_cycle_id: uuid.UUID
    name: str = Field(max_length=255)
    session: str = Field(default="", max_length=50)
    capacity: int = Field(default=30, ge=1)


class ClassRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    program_id: uuid.UUID
    academic_cycle_id: uuid.UUID
    name: str
    session: str
    capacity: int
    status: ClassStatus
