"""Grades — one value per student per component, overridable by admins."""

import uuid

from fastapi import APIRouter, BackgroundTasks, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import AdminContext, Audit, ClassMember, ClassTeacher, Session, Store
from app.core.errors import NotFound
from app.models.base import live_filter, utcnow
from app.models.records import Grade, GradeEntry, GradeOverride, GradeRead
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(tags=["grades"])


@router.post("/classes/{class_id}/grades", response_model=GradeRead)
async def record_grade(
    body: GradeEntry,
    scope: ClassTeacher,
    store: Store,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> GradeRead:
    """Set a student's grade for a component, replacing any earlier value."""
    # Plain ids: a rollback below expires every ORM object in the session.
    tenant_id, class_id, user_id = scope.ctx.tenant_id, scope.klass.id, scope.ctx.user_id
    await store.require_enrolled_students(tenant_id, class_id, [body.student_id])

    grade = await _find_grade(session, tenant_id, class_id, body.student_id, body.component)
    action = "grade_updated"
    if grade is None:
        grade = Grade(
            tenant_id=tenant_id,
            class_id=class_id,
            student_id=body.student_id,
            component=body.component,
            value=body.value,
            max_value=body.max_value,
            graded_by=user_id,
        )
        session.add(grade)
        action = "grade_recorded"
        try:
            await session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert for the same component.
            await session.rollback()
            grade = await _find_grade(
                session, tenant_id, class_id, body.student_id, body.component
            )
            action = "grade_updated"

    if action == "grade_updated":
        grade.value = body.value
        grade.max_value = body.max_value
        grade.graded_by = user_id
        grade.updated_at = utcnow()
        grade.restore()
        session.add(grade)
        await session.commit()
    await session.refresh(grade)

    audit.schedule(background, AuditEntry(
        tenant_id=tenant_id, user_id=user_id,
        action=action, entity="Grade", entity_id=grade.id,
        metadata={
            "classId": class_id,
            "studentId": body.student_id,
            "component": body.component,
            "value": body.value,
        },
    ))
    return GradeRead.model_validate(grade)


@router.get("/classes/{class_id}/grades", response_model=list[GradeRead])
async def list_grades(
    scope: ClassMember,
    session: Session,
    student_id: uuid.UUID | None = None,
) -> list[GradeRead]:
    """Grades for a class. Students only see their own."""
    if scope.sees_only_own_records:
        student_id = scope.ctx.user_id

    stmt = select(Grade).where(
        Grade.tenant_id == scope.ctx.tenant_id,
        Grade.class_id == scope.klass.id,
        *live_filter(Grade, include_deleted=False),
    )
    if student_id:
        stmt = stmt.where(Grade.student_id == student_id)
    stmt = stmt.order_by(Grade.student_id, Grade.component)
    result = await session.execute(stmt)
    return [GradeRead.model_validate(g) for g in result.scalars().all()]


@router.patch("/grades/{grade_id}/override", response_model=GradeRead)
async def override_grade(
    grade_id: uuid.UUID,
    body: GradeOverride,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> GradeRead:
    grade = await _load_grade(session, ctx.tenant_id, grade_id)
    previous = grade.value
    grade.value = body.value
    grade.graded_by = ctx.user_id
    grade.updated_at = utcnow()
    session.add(grade)
    await session.commit()
    await session.refresh(grade)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="grade_override", entity="Grade", entity_id=grade.id,
        metadata=change_snapshot(
            {"value": previous}, {"value": grade.value}, reason=body.reason
        ),
    ))
    return GradeRead.model_validate(grade)


@router.delete("/grades/{grade_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grade(
    grade_id: uuid.UUID,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> None:
    """Tombstone a grade. Recording the same component again revives it."""
    grade = await _load_grade(session, ctx.tenant_id, grade_id)
    grade.soft_delete()
    session.add(grade)
    await session.commit()

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="grade_deleted", entity="Grade", entity_id=grade.id,
        metadata={"classId": grade.class_id, "studentId": grade.student_id, "value": grade.value},
    ))


async def _load_grade(session, tenant_id: uuid.UUID, grade_id: uuid.UUID) -> Grade:
    stmt = select(Grade).where(
        Grade.id == grade_id,
        Grade.tenant_id == tenant_id,
        *live_filter(Grade, include_deleted=False),
    )
    result = await session.execute(stmt)
    grade = result.scalar_one_or_none()
    if grade is None:
        raise NotFound("Grade not found")
    return grade


async def _find_grade(
    session,
    tenant_id: uuid.UUID,
    class_id: uuid.UUID,
    student_id: uuid.UUID,
    component: str,
) -> Grade | None:
    # Tombstoned rows still hold the unique key, so they are revived in place.
    stmt = select(Grade).where(
        Grade.tenant_id == tenant_id,
        Grade.class_id == class_id,
        Grade.student_id == student_id,
        Grade.component == component,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
