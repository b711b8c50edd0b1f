"""Attendance — class teachers mark sheets, admins override single entries."""

import datetime as dt
import uuid

from fastapi import APIRouter, BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import AdminContext, Audit, ClassMember, ClassTeacher, Session, Store
from app.core.errors import NotFound, ValidationError
from app.models.base import utcnow
from app.models.records import (
    Attendance,
    AttendanceEntry,
    AttendanceMark,
    AttendanceOverride,
    AttendanceRead,
)
from app.services.audit import AuditEntry, change_snapshot

router = APIRouter(tags=["attendance"])


@router.post("/classes/{class_id}/attendance", response_model=AttendanceRead)
async def mark_attendance(
    body: AttendanceMark,
    scope: ClassTeacher,
    store: Store,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> AttendanceRead:
    """Record the sheet for one day.

    Every student on the sheet must be actively enrolled as a student.
    Submitting again for the same day replaces that day's records.
    """
    # Plain ids: a rollback below expires every ORM object in the session.
    tenant_id, class_id, user_id = scope.ctx.tenant_id, scope.klass.id, scope.ctx.user_id
    student_ids = [r.student_id for r in body.records]
    duplicates = sorted({str(s) for s in student_ids if student_ids.count(s) > 1})
    if duplicates:
        raise ValidationError("Duplicate students on attendance sheet", duplicateStudents=duplicates)
    await store.require_enrolled_students(tenant_id, class_id, student_ids)

    records = [r.model_dump(mode="json") for r in body.records]
    sheet = Attendance(
        tenant_id=tenant_id,
        class_id=class_id,
        date=body.date,
        records=records,
        marked_by=user_id,
    )
    session.add(sheet)
    action = "attendance_marked"
    try:
        await session.commit()
    except IntegrityError:
        # The (tenant, class, date) constraint fired: replace that sheet.
        await session.rollback()
        sheet = await _sheet_for_day(session, tenant_id, class_id, body.date)
        sheet.records = records
        sheet.marked_by = user_id
        sheet.updated_at = utcnow()
        session.add(sheet)
        await session.commit()
        action = "attendance_updated"
    await session.refresh(sheet)

    audit.schedule(background, AuditEntry(
        tenant_id=tenant_id, user_id=user_id,
        action=action, entity="Attendance", entity_id=sheet.id,
        metadata={"classId": class_id, "date": body.date, "count": len(records)},
    ))
    return AttendanceRead.model_validate(sheet)


@router.get("/classes/{class_id}/attendance", response_model=list[AttendanceRead])
async def list_attendance(
    scope: ClassMember,
    session: Session,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
) -> list[AttendanceRead]:
    """Sheets for a class, newest first. Students only see their own entry."""
    stmt = select(Attendance).where(
        Attendance.tenant_id == scope.ctx.tenant_id,
        Attendance.class_id == scope.klass.id,
    )
    if start_date:
        stmt = stmt.where(Attendance.date >= start_date)
    if end_date:
        stmt = stmt.where(Attendance.date <= end_date)
    stmt = stmt.order_by(Attendance.date.desc())  # type: ignore[attr-defined]
    result = await session.execute(stmt)
    sheets = result.scalars().all()

    if not scope.sees_only_own_records:
        return [AttendanceRead.model_validate(s) for s in sheets]

    own_id = str(scope.ctx.user_id)
    return [
        AttendanceRead(
            id=s.id,
            class_id=s.class_id,
            date=s.date,
            records=[AttendanceEntry.model_validate(r) for r in s.records if r["student_id"] == own_id],
        )
        for s in sheets
    ]


@router.patch("/attendance/{attendance_id}/override", response_model=AttendanceRead)
async def override_attendance(
    attendance_id: uuid.UUID,
    body: AttendanceOverride,
    ctx: AdminContext,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
) -> AttendanceRead:
    stmt = select(Attendance).where(
        Attendance.id == attendance_id,
        Attendance.tenant_id == ctx.tenant_id,
    )
    result = await session.execute(stmt)
    sheet = result.scalar_one_or_none()
    if sheet is None:
        raise NotFound("Attendance record not found")

    student_id = str(body.student_id)
    records = [dict(r) for r in sheet.records]
    entry = next((r for r in records if r["student_id"] == student_id), None)
    if entry is None:
        raise NotFound("Student record not found in this attendance")

    previous = entry["status"]
    entry["status"] = str(body.status)
    sheet.records = records
    sheet.updated_at = utcnow()
    session.add(sheet)
    await session.commit()
    await session.refresh(sheet)

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="attendance_override", entity="Attendance", entity_id=sheet.id,
        metadata=change_snapshot(
            {"studentId": student_id, "status": previous},
            {"studentId": student_id, "status": entry["status"]},
            reason=body.reason,
        ),
    ))
    return AttendanceRead.model_validate(sheet)


async def _sheet_for_day(
    session, tenant_id: uuid.UUID, class_id: uuid.UUID, day: dt.date
) -> Attendance:
    stmt = select(Attendance).where(
        Attendance.tenant_id == tenant_id,
        Attendance.class_id == class_id,
        Attendance.date == day,
    )
    result = await session.execute(stmt)
    return result.scalar_one()
