"""Audit log browsing — admins only, always scoped to the caller's tenant."""

import uuid
from datetime import date, datetime, time, timedelta
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select

from app.api.deps import AdminContext, Session
from app.core.errors import NotFound
from app.models.audit_log import AuditLog, AuditLogRead

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


class AuditLogPage(BaseModel):
    items: list[AuditLogRead]
    total: int
    page: int
    limit: int


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    ctx: AdminContext,
    session: Session,
    user_id: Annotated[uuid.UUID | None, Query(alias="userId")] = None,
    action: str | None = None,
    entity: str | None = None,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> AuditLogPage:
    """Newest first. ``action`` matches as a substring, ``endDate`` is inclusive."""
    filters = [AuditLog.tenant_id == ctx.tenant_id]
    if user_id:
        filters.append(AuditLog.user_id == user_id)
    if action:
        filters.append(AuditLog.action.contains(action))  # type: ignore[attr-defined]
    if entity:
        filters.append(AuditLog.entity == entity)
    if start_date:
        filters.append(AuditLog.timestamp >= datetime.combine(start_date, time.min))
    if end_date:
        filters.append(AuditLog.timestamp < datetime.combine(end_date + timedelta(days=1), time.min))

    total = (
        await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    ).scalar_one()
    stmt = (
        select(AuditLog)
        .where(*filters)
        .order_by(AuditLog.timestamp.desc())  # type: ignore[attr-defined]
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return AuditLogPage(
        items=[AuditLogRead.model_validate(a) for a in result.scalars().all()],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{log_id}", response_model=AuditLogRead)
async def get_audit_log(log_id: uuid.UUID, ctx: AdminContext, session: Session) -> AuditLogRead:
    result = await session.execute(
        select(AuditLog).where(AuditLog.id == log_id, AuditLog.tenant_id == ctx.tenant_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise NotFound("Audit log not found")
    return AuditLogRead.model_validate(entry)
