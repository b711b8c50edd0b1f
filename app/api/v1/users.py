"""User management — tenant-scoped, admin only."""

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, status
from sqlmodel import select

from app.api.deps import AdminContext, Audit, Session
from app.core.errors import Conflict, NotFound
from app.core.security import hash_password
from app.models.base import utcnow
from app.models.user import User, UserCreate, UserRead, UserRole, UserStatus, UserStatusUpdate
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> UserRead:
    """Provision a user directly in ``active`` state."""
    email = body.email.strip().lower()
    stmt = select(User).where(User.tenant_id == ctx.tenant_id, User.email == email)
    result = await session.execute(stmt)
    if result.scalar_one_or_none():
        raise Conflict("A user with this email already exists in this tenant", field="email")

    user = User(
        tenant_id=ctx.tenant_id,
        email=email,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        phone=body.phone,
        role=body.role,
        status=UserStatus.ACTIVE,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="user_created", entity="User", entity_id=user.id,
        metadata={"role": str(user.role)},
    ))
    return UserRead.model_validate(user)


@router.get("", response_model=list[UserRead])
async def list_users(
    ctx: AdminContext,
    session: Session,
    role: UserRole | None = None,
    user_status: Annotated[UserStatus | None, Query(alias="status")] = None,
) -> list[UserRead]:
    stmt = select(User).where(User.tenant_id == ctx.tenant_id)
    if role:
        stmt = stmt.where(User.role == role)
    if user_status:
        stmt = stmt.where(User.status == user_status)
    stmt = stmt.order_by(User.email.asc())  # type: ignore[union-attr]
    result = await session.execute(stmt)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: uuid.UUID, ctx: AdminContext, session: Session) -> UserRead:
    return UserRead.model_validate(await _get_or_404(user_id, ctx.tenant_id, session))


@router.patch("/{user_id}/status", response_model=UserRead)
async def set_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> UserRead:
    """Activate or block an account. Takes effect on the user's next request."""
    user = await _get_or_404(user_id, ctx.tenant_id, session)
    previous = user.status
    user.status = body.status
    user.updated_at = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="user_status_changed", entity="User", entity_id=user.id,
        metadata=change_snapshot({"status": previous}, {"status": user.status}),
    ))
    return UserRead.model_validate(user)


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(user_id: uuid.UUID, tenant_id: uuid.UUID, session) -> User:
    stmt = select(User).where(
        User.id == user_id,
        User.tenant_id == tenant_id,
    )
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user
