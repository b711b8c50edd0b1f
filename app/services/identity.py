"""Turns verified token claims into a trusted, request-scoped identity.

This is the only place that decides which tenant a request belongs to.
Everything downstream scopes its queries by ``ResolvedIdentity.tenant_id``,
which always comes from the verified token, never from a body or URL.
"""

import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    TenantMismatch,
    TenantNotFound,
    TenantSuspended,
    UserInactive,
    UserNotFound,
)
from app.models.tenant import Tenant
from app.models.user import User, UserRole


class IdentityClaims(Protocol):
    @property
    def user_id(self) -> uuid.UUID: ...

    @property
    def tenant_id(self) -> uuid.UUID: ...


@dataclass(frozen=True)
class ResolvedIdentity:
    user: User
    tenant: Tenant

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def tenant_id(self) -> uuid.UUID:
        return self.tenant.id

    @property
    def role(self) -> UserRole:
        return self.user.role


async def resolve_identity(session: AsyncSession, claims: IdentityClaims) -> ResolvedIdentity:
    """Load and cross-check the user and tenant named by *claims*.

    Runs on every authenticated request; nothing is cached so a status
    flip on either record takes effect immediately.
    """
    user = await session.get(User, claims.user_id)
    if user is None:
        raise UserNotFound()
    if not user.is_active:
        raise UserInactive(status=str(user.status))

    tenant = await session.get(Tenant, claims.tenant_id)
    if tenant is None:
        raise TenantNotFound()
    if not tenant.is_active:
        raise TenantSuspended(status=str(tenant.status))

    if user.tenant_id != claims.tenant_id:
        raise TenantMismatch()

    return ResolvedIdentity(user=user, tenant=tenant)
