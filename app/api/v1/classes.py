"""Classes — created by admins, read through enrollment."""

import uuid

from fastapi import APIRouter, BackgroundTasks, status
from sqlmodel import select

from app.api.deps import AdminContext, Audit, ClassMember, Context, Session, Store, load_class
from app.core.errors import NotFound
from app.models.academic import AcademicCycle, Class, ClassCreate, ClassRead, Program
from app.models.base import live_filter
from app.models.user import UserRole
from app.services.audit import AuditEntry

router = APIRouter(prefix="/classes", tags=["classes"])


@router.post("", response_model=ClassRead, status_code=status.HTTP_201_CREATED)
async def create_class(
    body: ClassCreate,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> ClassRead:
    """Create a class under a program and one of that program's cycles."""
    program = await session.get(Program, body.program_id)
    if program is None or program.tenant_id != ctx.tenant_id:
        raise NotFound("Program not found")

    cycle = await session.get(AcademicCycle, body.academic_cycle_id)
    if cycle is None or cycle.tenant_id != ctx.tenant_id or cycle.program_id != program.id:
        raise NotFound("Academic cycle not found or does not belong to this program")

    klass = Class(tenant_id=ctx.tenant_id, **body.model_dump())
    session.add(klass)
    await session.commit()
    await session.refresh(klass)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="class_created", entity="Class", entity_id=klass.id,
    ))
    return ClassRead.model_validate(klass)


@router.get("", response_model=list[ClassRead])
async def list_classes(ctx: Context, session: Session, store: Store) -> list[ClassRead]:
    """Admins see every live class in the tenant; everyone else their own."""
    stmt = select(Class).where(Class.tenant_id == ctx.tenant_id, *live_filter(Class, False))
    if ctx.role != UserRole.ADMIN:
        class_ids = await store.list_class_ids_for_user(ctx.tenant_id, ctx.user_id)
        if not class_ids:
            return []
        stmt = stmt.where(Class.id.in_(class_ids))  # type: ignore[union-attr]
    stmt = stmt.order_by(Class.created_at.desc())  # type: ignore[union-attr]
    result = await session.execute(stmt)
    return [ClassRead.model_validate(c) for c in result.scalars().all()]


@router.get("/{class_id}", response_model=ClassRead)
async def get_class(scope: ClassMember) -> ClassRead:
    return ClassRead.model_validate(scope.klass)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: uuid.UUID,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> None:
    """Soft delete: the row stays for history but no longer resolves."""
    klass = await load_class(session, ctx.tenant_id, class_id)
    if klass is None:
        raise NotFound("Class not found")
    klass.soft_delete()
    session.add(klass)
    await session.commit()

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="class_deleted", entity="Class", entity_id=klass.id,
    ))
