"""Assignments — set by class teachers, submitted by enrolled students."""

import uuid

from fastapi import APIRouter, BackgroundTasks, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import Audit, ClassMember, ClassStudent, ClassTeacher, Session
from app.core.errors import InsufficientPermissions, NotFound, ValidationError
from app.models.base import live_filter, utcnow
from app.models.coursework import (
    Assignment,
    AssignmentCreate,
    AssignmentRead,
    Submission,
    SubmissionCreate,
    SubmissionGrade,
    SubmissionRead,
    SubmissionStatus,
)
from app.models.enrollment import RoleInClass
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(tags=["assignments"])


@router.post(
    "/classes/{class_id}/assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    body: AssignmentCreate,
    scope: ClassTeacher,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> AssignmentRead:
    assignment = Assignment(
        tenant_id=scope.ctx.tenant_id,
        class_id=scope.klass.id,
        created_by=scope.ctx.user_id,
        **body.model_dump(),
    )
    session.add(assignment)
    await session.commit()
    await session.refresh(assignment)

    audit.schedule(background, AuditEntry(
        tenant_id=assignment.tenant_id, user_id=assignment.created_by,
        action="assignment_created", entity="Assignment", entity_id=assignment.id,
        metadata={"classId": assignment.class_id, "dueAt": assignment.due_at},
    ))
    return AssignmentRead.model_validate(assignment)


@router.get("/classes/{class_id}/assignments", response_model=list[AssignmentRead])
async def list_assignments(scope: ClassMember, session: Session) -> list[AssignmentRead]:
    stmt = (
        select(Assignment)
        .where(
            Assignment.tenant_id == scope.ctx.tenant_id,
            Assignment.class_id == scope.klass.id,
            *live_filter(Assignment, include_deleted=False),
        )
        .order_by(Assignment.due_at)
    )
    result = await session.execute(stmt)
    return [AssignmentRead.model_validate(a) for a in result.scalars().all()]


@router.delete(
    "/classes/{class_id}/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_assignment(
    assignment_id: uuid.UUID,
    scope: ClassTeacher,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> None:
    """Soft delete. Existing submissions are kept."""
    assignment = await _load_assignment(session, scope.ctx.tenant_id, scope.klass.id, assignment_id)
    assignment.soft_delete()
    session.add(assignment)
    await session.commit()

    audit.schedule(background, AuditEntry(
        tenant_id=scope.ctx.tenant_id, user_id=scope.ctx.user_id,
        action="assignment_deleted", entity="Assignment", entity_id=assignment.id,
    ))


@router.post(
    "/classes/{class_id}/assignments/{assignment_id}/submissions",
    response_model=SubmissionRead,
)
async def submit_assignment(
    assignment_id: uuid.UUID,
    body: SubmissionCreate,
    scope: ClassStudent,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> SubmissionRead:
    """Hand in work. Handing in again replaces the earlier attempt until it is graded.

    Work handed in after the due date is marked ``late``.
    """
    if scope.enrollment is None:
        # Admins clear every class gate but have nothing to hand in.
        raise InsufficientPermissions(
            "Only students enrolled in the class can submit",
            requiredRole=str(RoleInClass.STUDENT),
            actualRole=str(scope.ctx.role),
        )
    # Plain ids: a rollback below expires every ORM object in the session.
    tenant_id, class_id, student_id = scope.ctx.tenant_id, scope.klass.id, scope.ctx.user_id
    assignment = await _load_assignment(session, tenant_id, class_id, assignment_id)
    now = utcnow()
    new_status = SubmissionStatus.LATE if now > assignment.due_at else SubmissionStatus.SUBMITTED

    submission = await _find_submission(session, tenant_id, assignment_id, student_id)
    action = "submission_updated"
    if submission is None:
        submission = Submission(
            tenant_id=tenant_id,
            assignment_id=assignment_id,
            student_id=student_id,
            content=body.content,
            file_url=body.file_url,
            submitted_at=now,
            status=new_status,
        )
        session.add(submission)
        action = "submission_created"
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent attempt from the same student got in first.
            await session.rollback()
            submission = await _find_submission(session, tenant_id, assignment_id, student_id)
            action = "submission_updated"

    if action == "submission_updated":
        if submission.status == SubmissionStatus.GRADED:
            raise ValidationError("Submission has already been graded")
        submission.content = body.content
        submission.file_url = body.file_url
        submission.submitted_at = now
        submission.status = new_status
        submission.updated_at = now
        session.add(submission)
        await session.commit()
    await session.refresh(submission)

    audit.schedule(background, AuditEntry(
        tenant_id=tenant_id, user_id=student_id,
        action=action, entity="Submission", entity_id=submission.id,
        metadata={"assignmentId": assignment_id, "status": submission.status},
    ))
    return SubmissionRead.model_validate(submission)


@router.get(
    "/classes/{class_id}/assignments/{assignment_id}/submissions",
    response_model=list[SubmissionRead],
)
async def list_submissions(
    assignment_id: uuid.UUID,
    scope: ClassMember,
    session: Session,
) -> list[SubmissionRead]:
    """Submissions for an assignment. Students only see their own."""
    await _load_assignment(session, scope.ctx.tenant_id, scope.klass.id, assignment_id)
    stmt = select(Submission).where(
        Submission.tenant_id == scope.ctx.tenant_id,
        Submission.assignment_id == assignment_id,
    )
    if scope.sees_only_own_records:
        stmt = stmt.where(Submission.student_id == scope.ctx.user_id)
    stmt = stmt.order_by(Submission.submitted_at.desc())  # type: ignore[attr-defined]
    result = await session.execute(stmt)
    return [SubmissionRead.model_validate(s) for s in result.scalars().all()]


@router.patch(
    "/classes/{class_id}/submissions/{submission_id}/grade",
    response_model=SubmissionRead,
)
async def grade_submission(
    submission_id: uuid.UUID,
    body: SubmissionGrade,
    scope: ClassTeacher,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> SubmissionRead:
    stmt = (
        select(Submission, Assignment)
        .join(Assignment, Assignment.id == Submission.assignment_id)
        .where(
            Submission.id == submission_id,
            Submission.tenant_id == scope.ctx.tenant_id,
            Assignment.class_id == scope.klass.id,
            *live_filter(Assignment, include_deleted=False),
        )
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        raise NotFound("Submission not found")
    submission, assignment = row
    if body.marks > assignment.max_marks:
        raise ValidationError(
            "Marks exceed the assignment maximum", field="marks", maxMarks=assignment.max_marks
        )

    previous = {"marks": submission.marks, "status": submission.status}
    now = utcnow()
    submission.marks = body.marks
    submission.feedback = body.feedback
    submission.status = SubmissionStatus.GRADED
    submission.graded_by = scope.ctx.user_id
    submission.graded_at = now
    submission.updated_at = now
    session.add(submission)
    await session.commit()
    await session.refresh(submission)

    audit.schedule(background, AuditEntry(
        tenant_id=scope.ctx.tenant_id, user_id=scope.ctx.user_id,
        action="submission_graded", entity="Submission", entity_id=submission.id,
        metadata=change_snapshot(previous, {"marks": submission.marks, "status": submission.status}),
    ))
    return SubmissionRead.model_validate(submission)


# ── Internal helpers ──────────────────────────────────────────

async def _load_assignment(
    session,
    tenant_id: uuid.UUID,
    class_id: uuid.UUID,
    assignment_id: uuid.UUID,
) -> Assignment:
    stmt = select(Assignment).where(
        Assignment.id == assignment_id,
        Assignment.tenant_id == tenant_id,
        Assignment.class_id == class_id,
        *live_filter(Assignment, include_deleted=False),
    )
    result = await session.execute(stmt)
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotFound("Assignment not found")
    return assignment


async def _find_submission(
    session,
    tenant_id: uuid.UUID,
    assignment_id: uuid.UUID,
    student_id: uuid.UUID,
) -> Submission | None:
    stmt = select(Submission).where(
        Submission.tenant_id == tenant_id,
        Submission.assignment_id == assignment_id,
        Submission.student_id == student_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
