"""Academic cycles — the semesters / terms of a program, managed by admins."""

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, status
from sqlmodel import select

from app.api.deps import AdminContext, Audit, Session
from app.core.errors import NotFound
from app.models.academic import (
    AcademicCycle,
    AcademicCycleCreate,
    AcademicCycleRead,
    AcademicCycleUpdate,
    Program,
)
from app.models.base import utcnow
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(prefix="/academic-cycles", tags=["academic-cycles"])


@router.post("", response_model=AcademicCycleRead, status_code=status.HTTP_201_CREATED)
async def create_cycle(
    body: AcademicCycleCreate,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> AcademicCycleRead:
    program = await session.get(Program, body.program_id)
    if program is None or program.tenant_id != ctx.tenant_id:
        raise NotFound("Program not found")

    cycle = AcademicCycle(tenant_id=ctx.tenant_id, **body.model_dump())
    session.add(cycle)
    await session.commit()
    await session.refresh(cycle)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="academic_cycle_created", entity="AcademicCycle", entity_id=cycle.id,
        metadata={"programId": cycle.program_id},
    ))
    return AcademicCycleRead.model_validate(cycle)


@router.get("", response_model=list[AcademicCycleRead])
async def list_cycles(
    ctx: AdminContext,
    session: Session,
    program_id: Annotated[uuid.UUID | None, Query(alias="programId")] = None,
) -> list[AcademicCycleRead]:
    stmt = select(AcademicCycle).where(AcademicCycle.tenant_id == ctx.tenant_id)
    if program_id:
        stmt = stmt.where(AcademicCycle.program_id == program_id)
    stmt = stmt.order_by(AcademicCycle.sequence_number, AcademicCycle.name)
    result = await session.execute(stmt)
    return [AcademicCycleRead.model_validate(c) for c in result.scalars().all()]


@router.get("/{cycle_id}", response_model=AcademicCycleRead)
async def get_cycle(cycle_id: uuid.UUID, ctx: AdminContext, session: Session) -> AcademicCycleRead:
    return AcademicCycleRead.model_validate(await _get_or_404(cycle_id, ctx.tenant_id, session))


@router.patch("/{cycle_id}", response_model=AcademicCycleRead)
async def update_cycle(
    cycle_id: uuid.UUID,
    body: AcademicCycleUpdate,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> AcademicCycleRead:
    """Rename or reorder a cycle. The owning program never changes."""
    cycle = await _get_or_404(cycle_id, ctx.tenant_id, session)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    before = {field: getattr(cycle, field) for field in changes}
    for field, value in changes.items():
        setattr(cycle, field, value)
    cycle.updated_at = utcnow()
    session.add(cycle)
    await session.commit()
    await session.refresh(cycle)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="academic_cycle_updated", entity="AcademicCycle", entity_id=cycle.id,
        metadata=change_snapshot(before, changes),
    ))
    return AcademicCycleRead.model_validate(cycle)


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(cycle_id: uuid.UUID, tenant_id: uuid.UUID, session) -> AcademicCycle:
    stmt = select(AcademicCycle).where(
        AcademicCycle.id == cycle_id,
        AcademicCycle.tenant_id == tenant_id,
    )
    result = await session.execute(stmt)
    cycle = result.scalar_one_or_none()
    if cycle is None:
        raise NotFound("Academic cycle not found")
    return cycle
