"""RefreshToken model — server-side record of every issued refresh token.

Tokens issued from one login share a ``family_id``. Presenting a token
that was already used or revoked revokes the whole family.
"""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class RefreshToken(TimestampMixin, SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    jti: str = Field(max_length=64, unique=True, nullable=False, index=True)
    family_id: uuid.UUID = Field(nullable=False, index=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    expires_at: datetime = Field(nullable=False)
    used_at: datetime | None = Field(default=None)
    revoked_at: datetime | None = Field(default=None)
