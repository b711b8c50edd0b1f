"""Tests for the best-effort audit sink."""

import logging
import uuid

import pytest
from fastapi import BackgroundTasks
from sqlmodel import select

from app.models import AuditLog
from app.services.audit import AuditEntry, AuditSink, change_snapshot


@pytest.mark.asyncio
async def test_record_persists_entry(test_session_factory, session, campus):
    sink = AuditSink(test_session_factory)
    target = uuid.uuid4()
    await sink.record(AuditEntry(
        tenant_id=campus.tenant.id,
        user_id=campus.admin.id,
        action="grade_override",
        entity="Grade",
        entity_id=target,
        metadata=change_snapshot({"value": 40}, {"value": 55}, reason="remark", studentId=target),
    ))

    result = await session.execute(select(AuditLog))
    row = result.scalar_one()
    assert row.tenant_id == campus.tenant.id
    assert row.user_id == campus.admin.id
    assert row.action == "grade_override"
    assert row.entity_id == target
    assert row.details == {
        "before": {"value": 40},
        "after": {"value": 55},
        "reason": "remark",
        "studentId": str(target),
    }


@pytest.mark.asyncio
async def test_record_swallows_failures(caplog):
    def broken_factory():
        raise RuntimeError("database unreachable")

    sink = AuditSink(broken_factory)
    with caplog.at_level(logging.ERROR, logger="app.services.audit"):
        await sink.record(AuditEntry(
            tenant_id=uuid.uuid4(), user_id=None, action="user_logged_in", entity="User",
        ))

    assert any("Audit write failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_schedule_defers_write(test_session_factory, session, campus):
    sink = AuditSink(test_session_factory)
    background = BackgroundTasks()
    sink.schedule(background, AuditEntry(
        tenant_id=campus.tenant.id, user_id=None, action="class_created", entity="Class",
    ))

    result = await session.execute(select(AuditLog))
    assert result.scalars().all() == []

    await background()

    result = await session.execute(select(AuditLog))
    assert [a.action for a in result.scalars().all()] == ["class_created"]
