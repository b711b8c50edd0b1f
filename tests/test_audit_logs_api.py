"""Tests for /v1/audit-logs — admin-only, tenant-scoped browsing."""

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.models import AuditLog
from app.models.base import utcnow


@pytest.fixture
async def trail(session, campus):
    now = utcnow()
    rows = [
        AuditLog(tenant_id=campus.tenant.id, user_id=campus.admin.id, action="user_created",
                 entity="User", timestamp=now - timedelta(days=3)),
        AuditLog(tenant_id=campus.tenant.id, user_id=campus.teacher.id, action="grade_recorded",
                 entity="Grade", timestamp=now - timedelta(days=1)),
        AuditLog(tenant_id=campus.tenant.id, user_id=campus.admin.id, action="grade_override",
                 entity="Grade", timestamp=now, details={"reason": "appeal"}),
        AuditLog(tenant_id=campus.foreign_tenant.id, user_id=campus.foreign_admin.id,
                 action="grade_override", entity="Grade", timestamp=now),
    ]
    session.add_all(rows)
    await session.commit()
    return rows


@pytest.mark.asyncio
async def test_list_is_tenant_scoped_and_newest_first(client: AsyncClient, campus, auth_headers, trail):
    resp = await client.get("/v1/audit-logs", headers=auth_headers(campus.admin))
    assert resp.status_code == 200
    page = resp.json()
    assert page["total"] == 3
    assert [a["action"] for a in page["items"]] == [
        "grade_override",
        "grade_recorded",
        "user_created",
    ]


@pytest.mark.asyncio
async def test_filters(client: AsyncClient, campus, auth_headers, trail):
    headers = auth_headers(campus.admin)

    resp = await client.get("/v1/audit-logs", params={"action": "grade"}, headers=headers)
    assert resp.json()["total"] == 2

    resp = await client.get(
        "/v1/audit-logs", params={"userId": str(campus.admin.id)}, headers=headers
    )
    assert {a["action"] for a in resp.json()["items"]} == {"user_created", "grade_override"}

    resp = await client.get("/v1/audit-logs", params={"entity": "User"}, headers=headers)
    assert [a["action"] for a in resp.json()["items"]] == ["user_created"]

    since = (utcnow() - timedelta(days=2)).date().isoformat()
    resp = await client.get("/v1/audit-logs", params={"startDate": since}, headers=headers)
    assert resp.json()["total"] == 2


@pytest.mark.asyncio
async def test_pagination(client: AsyncClient, campus, auth_headers, trail):
    resp = await client.get(
        "/v1/audit-logs", params={"page": 2, "limit": 2}, headers=auth_headers(campus.admin)
    )
    page = resp.json()
    assert page["total"] == 3
    assert page["page"] == 2
    assert [a["action"] for a in page["items"]] == ["user_created"]


@pytest.mark.asyncio
@pytest.mark.parametrize("who", ["teacher", "student"])
async def test_non_admins_rejected(client: AsyncClient, campus, auth_headers, who):
    resp = await client.get("/v1/audit-logs", headers=auth_headers(getattr(campus, who)))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_get_single_entry(client: AsyncClient, campus, auth_headers, trail):
    override = trail[2]
    resp = await client.get(f"/v1/audit-logs/{override.id}", headers=auth_headers(campus.admin))
    assert resp.status_code == 200
    assert resp.json()["details"] == {"reason": "appeal"}

    foreign = trail[3]
    resp = await client.get(f"/v1/audit-logs/{foreign.id}", headers=auth_headers(campus.admin))
    assert resp.status_code == 404

    resp = await client.get(f"/v1/audit-logs/{uuid.uuid4()}", headers=auth_headers(campus.admin))
    assert resp.status_code == 404
