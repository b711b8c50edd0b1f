"""Fees — admins bill enrolled students per class and may waive a fee."""

import uuid

from fastapi import APIRouter, BackgroundTasks, status
from sqlmodel import select

from app.api.deps import AdminContext, Audit, ClassMember, Session, Store, load_class
from app.core.errors import NotFound, ValidationError
from app.models.base import utcnow
from app.models.records import Fee, FeeCreate, FeeRead, FeeStatus, FeeWaive
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(tags=["fees"])


@router.post(
    "/classes/{class_id}/fees",
    response_model=FeeRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee(
    class_id: uuid.UUID,
    body: FeeCreate,
    ctx: AdminContext,
    store: Store,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> FeeRead:
    klass = await load_class(session, ctx.tenant_id, class_id)
    if klass is None:
        raise NotFound("Class not found")
    await store.require_enrolled_students(ctx.tenant_id, klass.id, [body.student_id])

    fee = Fee(
        tenant_id=ctx.tenant_id,
        class_id=klass.id,
        student_id=body.student_id,
        description=body.description,
        amount=body.amount,
    )
    session.add(fee)
    await session.commit()
    await session.refresh(fee)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="fee_created", entity="Fee", entity_id=fee.id,
        metadata={"classId": klass.id, "studentId": body.student_id, "amount": body.amount},
    ))
    return FeeRead.model_validate(fee)


@router.get("/classes/{class_id}/fees", response_model=list[FeeRead])
async def list_fees(
    scope: ClassMember,
    session: Session,
    fee_status: FeeStatus | None = None,
) -> list[FeeRead]:
    """Fees billed in a class. Students only see their own."""
    stmt = select(Fee).where(
        Fee.tenant_id == scope.ctx.tenant_id,
        Fee.class_id == scope.klass.id,
    )
    if scope.sees_only_own_records:
        stmt = stmt.where(Fee.student_id == scope.ctx.user_id)
    if fee_status:
        stmt = stmt.where(Fee.status == fee_status)
    stmt = stmt.order_by(Fee.created_at)
    result = await session.execute(stmt)
    return [FeeRead.model_validate(f) for f in result.scalars().all()]


@router.post("/fees/{fee_id}/waive", response_model=FeeRead)
async def waive_fee(
    fee_id: uuid.UUID,
    body: FeeWaive,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> FeeRead:
    result = await session.execute(
        select(Fee).where(Fee.id == fee_id, Fee.tenant_id == ctx.tenant_id)
    )
    fee = result.scalar_one_or_none()
    if fee is None:
        raise NotFound("Fee not found")
    if fee.status != FeeStatus.PENDING:
        raise ValidationError(f"Fee is already {fee.status}", status=str(fee.status))

    previous = fee.status
    fee.status = FeeStatus.WAIVED
    fee.updated_at = utcnow()
    session.add(fee)
    await session.commit()
    await session.refresh(fee)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="fee_waived", entity="Fee", entity_id=fee.id,
        metadata=change_snapshot(
            {"status": previous}, {"status": fee.status}, reason=body.reason
        ),
    ))
    return FeeRead.model_validate(fee)
