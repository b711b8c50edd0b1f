"""Tests for /v1/tenants/me."""

import pytest
from httpx import AsyncClient

from app.models import TenantStatus


@pytest.mark.asyncio
async def test_current_tenant(client: AsyncClient, campus, auth_headers):
    resp = await client.get("/v1/tenants/me", headers=auth_headers(campus.student))
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == str(campus.tenant.id)
    assert data["code"] == "UNI-A"
    assert data["grading_system"] == "percentage"
    assert data["cycle_naming"] == "semester"


@pytest.mark.asyncio
async def test_suspended_tenant_locks_everyone_out(client: AsyncClient, campus, auth_headers, session):
    tenant = campus.tenant
    tenant.status = TenantStatus.SUSPENDED
    session.add(tenant)
    await session.commit()

    resp = await client.get("/v1/tenants/me", headers=auth_headers(campus.admin))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "TENANT_SUSPENDED"
