"""Tests for identity resolution — token claims to a trusted user + tenant."""

import uuid
from datetime import datetime, timezone

import pytest

from app.core.errors import (
    TenantMismatch,
    TenantNotFound,
    TenantSuspended,
    UserInactive,
    UserNotFound,
)
from app.core.security import AccessClaims
from app.models import TenantStatus, UserStatus
from app.services.identity import resolve_identity


def _claims(user_id: uuid.UUID, tenant_id: uuid.UUID, role) -> AccessClaims:
    return AccessClaims(
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        expires_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
async def test_resolves_active_user_in_active_tenant(session, campus):
    teacher = campus.teacher
    identity = await resolve_identity(session, _claims(teacher.id, teacher.tenant_id, teacher.role))

    assert identity.user_id == teacher.id
    assert identity.tenant_id == campus.tenant.id
    assert identity.role == teacher.role


@pytest.mark.asyncio
async def test_unknown_user(session, campus):
    with pytest.raises(UserNotFound):
        await resolve_identity(session, _claims(uuid.uuid4(), campus.tenant.id, "student"))


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [UserStatus.PENDING, UserStatus.BLOCKED])
async def test_inactive_user(session, campus, status):
    student = campus.student
    student.status = status
    session.add(student)
    await session.commit()

    with pytest.raises(UserInactive) as exc_info:
        await resolve_identity(session, _claims(student.id, student.tenant_id, student.role))
    assert exc_info.value.metadata["status"] == str(status)


@pytest.mark.asyncio
async def test_unknown_tenant(session, campus):
    student = campus.student
    with pytest.raises(TenantNotFound):
        await resolve_identity(session, _claims(student.id, uuid.uuid4(), student.role))


@pytest.mark.asyncio
async def test_suspended_tenant(session, campus):
    campus.tenant.status = TenantStatus.SUSPENDED
    session.add(campus.tenant)
    await session.commit()

    admin = campus.admin
    with pytest.raises(TenantSuspended):
        await resolve_identity(session, _claims(admin.id, admin.tenant_id, admin.role))


@pytest.mark.asyncio
async def test_token_tenant_must_own_user(session, campus):
    """A user of tenant A presenting tenant B's id gets nothing from B."""
    admin = campus.admin
    with pytest.raises(TenantMismatch):
        await resolve_identity(session, _claims(admin.id, campus.foreign_tenant.id, admin.role))


@pytest.mark.asyncio
async def test_role_comes_from_user_record(session, campus):
    """A stale role in the token never outranks the stored one."""
    student = campus.student
    identity = await resolve_identity(session, _claims(student.id, student.tenant_id, "admin"))
    assert identity.role == "student"
