"""Tenant model — one university, the root isolation boundary."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class TenantStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class GradingSystem(StrEnum):
    PERCENTAGE = "percentage"
    GPA = "gpa"
    LETTER = "letter"


class CycleNaming(StrEnum):
    SEMESTER = "semester"
    TRIMESTER = "trimester"
    TERM = "term"
    QUARTER = "quarter"


def normalize_tenant_code(code: str) -> str:
    return code.strip().upper()


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    # Stored upper-cased; see normalize_tenant_code
    code: str = Field(max_length=50, unique=True, nullable=False, index=True)
    status: TenantStatus = Field(default=TenantStatus.ACTIVE, index=True)

    # Settings
    grading_system: GradingSystem = Field(default=GradingSystem.PERCENTAGE)
    cycle_naming: CycleNaming = Field(default=CycleNaming.SEMESTER)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE


# ── Pydantic schemas (read) ──────────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    code: str
    status: TenantStatus
    grading_system: GradingSystem
    cycle_naming: CycleNaming
