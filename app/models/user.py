"""User model — belongs to exactly one tenant."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class UserRole(StrEnum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    BLOCKED = "blocked"


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    # Lower-cased; unique only within the owning tenant
    email: str = Field(max_length=320, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    role: UserRole = Field(nullable=False)
    status: UserStatus = Field(default=UserStatus.PENDING)

    full_name: str = Field(default="", max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    last_login_at: datetime | None = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


# ── Pydantic schemas ─────────────────────────────────────────

class UserCreate(SQLModel):
    email: str = Field(max_length=320)
    password: str = Field(min_length=8, max_length=128)
    full_name: str = Field(max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    role: UserRole = UserRole.STUDENT


class UserStatusUpdate(SQLModel):
    status: UserStatus


class UserRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    full_name: str
    phone: str | None
    role: UserRole
    status: UserStatus
    last_login_at: datetime | None
