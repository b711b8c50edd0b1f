"""Enrollments — the only way a user gains access to a class."""

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, status

from app.api.deps import (
    AdminContext,
    Audit,
    ClassMember,
    Context,
    Engine,
    RequestContext,
    Session,
    Store,
    load_class,
)
from app.core.errors import InsufficientPermissions, NotFound
from app.models.enrollment import (
    Enrollment,
    EnrollmentCreate,
    EnrollmentRead,
    EnrollmentUpdate,
    RoleInClass,
)
from app.models.user import User, UserRole
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(tags=["enrollments"])


async def _authorize_roster_change(
    ctx: RequestContext,
    engine: Engine,
    class_id: uuid.UUID,
    touches_teacher: bool,
) -> None:
    """Admins manage any roster; class teachers manage their students only."""
    await engine.check(
        ctx.identity,
        class_id=class_id,
        required_role_in_class=RoleInClass.TEACHER,
    )
    if touches_teacher and ctx.role != UserRole.ADMIN:
        raise InsufficientPermissions(
            "Only admins can manage teacher enrollments",
            requiredRole=str(UserRole.ADMIN),
            actualRole=str(ctx.role),
        )


@router.post(
    "/enrollments",
    response_model=EnrollmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_enrollment(
    body: EnrollmentCreate,
    ctx: Context,
    engine: Engine,
    store: Store,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> EnrollmentRead:
    await _authorize_roster_change(
        ctx, engine, body.class_id, body.role_in_class == RoleInClass.TEACHER
    )

    if await load_class(session, ctx.tenant_id, body.class_id) is None:
        raise NotFound("Class not found")
    user = await session.get(User, body.user_id)
    if user is None or user.tenant_id != ctx.tenant_id:
        raise NotFound("User not found")

    enrollment = await store.create(
        ctx.tenant_id,
        body.user_id,
        body.class_id,
        body.role_in_class,
        acting_user_id=ctx.user_id,
    )

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="enrollment_created", entity="Enrollment", entity_id=enrollment.id,
        metadata={
            "enrolledUserId": body.user_id,
            "classId": body.class_id,
            "roleInClass": body.role_in_class,
        },
    ))
    return EnrollmentRead.model_validate(enrollment)


@router.get("/classes/{class_id}/enrollments", response_model=list[EnrollmentRead])
async def list_class_enrollments(
    scope: ClassMember,
    store: Store,
    role_in_class: Annotated[RoleInClass | None, Query(alias="roleInClass")] = None,
    include_inactive: bool = False,
) -> list[EnrollmentRead]:
    """Roster of a class. Only teachers and admins may see inactive rows."""
    active_only = not include_inactive or scope.sees_only_own_records
    rows = await store.list_by_class(
        scope.ctx.tenant_id,
        scope.klass.id,
        role_in_class,
        active_only=active_only,
    )
    return [EnrollmentRead.model_validate(e) for e in rows]


@router.patch("/enrollments/{enrollment_id}", response_model=EnrollmentRead)
async def update_enrollment(
    enrollment_id: uuid.UUID,
    body: EnrollmentUpdate,
    ctx: Context,
    engine: Engine,
    store: Store,
    audit: Audit,
    background: BackgroundTasks,
) -> EnrollmentRead:
    """Change role-in-class and/or status in place; never creates a second row."""
    enrollment = await store.get(ctx.tenant_id, enrollment_id)
    touches_teacher = (
        enrollment.role_in_class == RoleInClass.TEACHER
        or body.role_in_class == RoleInClass.TEACHER
    )
    await _authorize_roster_change(ctx, engine, enrollment.class_id, touches_teacher)

    before = _snapshot(enrollment)
    if body.role_in_class is not None and body.role_in_class != enrollment.role_in_class:
        enrollment = await store.update_role(
            enrollment, body.role_in_class, acting_user_id=ctx.user_id
        )
    if body.status is not None and body.status != enrollment.status:
        enrollment = await store.set_status(
            enrollment, body.status, acting_user_id=ctx.user_id
        )

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="enrollment_updated", entity="Enrollment", entity_id=enrollment.id,
        metadata=change_snapshot(before, _snapshot(enrollment)),
    ))
    return EnrollmentRead.model_validate(enrollment)


@router.delete("/enrollments/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    enrollment_id: uuid.UUID,
    ctx: Context,
    engine: Engine,
    store: Store,
    audit: Audit,
    background: BackgroundTasks,
) -> None:
    """Soft delete: the row is tombstoned and stops granting access."""
    enrollment = await store.get(ctx.tenant_id, enrollment_id)
    await _authorize_roster_change(
        ctx, engine, enrollment.class_id, enrollment.role_in_class == RoleInClass.TEACHER
    )
    await store.soft_delete(enrollment, acting_user_id=ctx.user_id)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="enrollment_deleted", entity="Enrollment", entity_id=enrollment.id,
    ))


@router.post("/enrollments/{enrollment_id}/restore", response_model=EnrollmentRead)
async def restore_enrollment(
    enrollment_id: uuid.UUID,
    ctx: AdminContext,
    store: Store,
    audit: Audit,
    background: BackgroundTasks,
) -> EnrollmentRead:
    enrollment = await store.get(ctx.tenant_id, enrollment_id, include_deleted=True)
    if not enrollment.is_deleted:
        return EnrollmentRead.model_validate(enrollment)
    enrollment = await store.restore(enrollment, acting_user_id=ctx.user_id)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="enrollment_restored", entity="Enrollment", entity_id=enrollment.id,
    ))
    return EnrollmentRead.model_validate(enrollment)


def _snapshot(enrollment: Enrollment) -> dict:
    return {"roleInClass": enrollment.role_in_class, "status": enrollment.status}
