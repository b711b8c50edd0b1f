"""Tests for /v1/auth — login, registration, refresh rotation, logout."""

import asyncio

import pytest
from httpx import AsyncClient
from sqlmodel import select

from app.models import AuditLog, User, UserStatus


@pytest.mark.asyncio
async def test_login_returns_token_pair(client: AsyncClient, campus, login):
    """Tenant code and email are matched case-insensitively."""
    resp = await login("Teacher@UNI-A.edu", tenant_code="uni-a")
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]
    assert data["user"]["email"] == "teacher@uni-a.edu"
    assert data["user"]["last_login_at"] is not None

    resp = await client.get(
        "/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert resp.status_code == 200
    me = resp.json()
    assert me["user"]["id"] == str(campus.teacher.id)
    assert me["tenant"]["code"] == "UNI-A"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, campus, login):
    resp = await login("teacher@uni-a.edu", password="wrong-password")
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_unknown_tenant_looks_like_bad_credentials(client: AsyncClient, campus, login):
    resp = await login("teacher@uni-a.edu", tenant_code="NOPE")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_user_of_other_tenant(client: AsyncClient, campus, login):
    resp = await login("admin@uni-b.edu", tenant_code="UNI-A")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_suspended_tenant(client: AsyncClient, suspended_tenant, login):
    resp = await login("anyone@closed.edu", tenant_code="closed")
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "TENANT_SUSPENDED"


@pytest.mark.asyncio
async def test_login_rate_limited(client: AsyncClient, campus, login):
    for _ in range(5):
        resp = await login("teacher@uni-a.edu", password="wrong-password")
        assert resp.status_code == 401

    resp = await login("teacher@uni-a.edu")
    assert resp.status_code == 429
    error = resp.json()["error"]
    assert error["code"] == "RATE_LIMIT_EXCEEDED"
    assert error["metadata"]["retryAfter"] > 0


@pytest.mark.asyncio
async def test_register_creates_pending_user(client: AsyncClient, campus, login):
    resp = await client.post("/v1/auth/register", json={
        "tenant_code": "uni-a",
        "email": "Newbie@UNI-A.edu",
        "password": "a-long-password",
        "full_name": "New Student",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["email"] == "newbie@uni-a.edu"
    assert data["status"] == "pending"
    assert data["role"] == "student"
    assert data["tenant_id"] == str(campus.tenant.id)

    resp = await login("newbie@uni-a.edu", password="a-long-password")
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["code"] == "USER_INACTIVE"
    assert error["metadata"]["status"] == "pending"


@pytest.mark.asyncio
async def test_register_admin_rejected(client: AsyncClient, campus):
    resp = await client.post("/v1/auth/register", json={
        "tenant_code": "UNI-A",
        "email": "boss@uni-a.edu",
        "password": "a-long-password",
        "full_name": "Would-be Admin",
        "role": "admin",
    })
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, campus):
    resp = await client.post("/v1/auth/register", json={
        "tenant_code": "UNI-A",
        "email": "student@uni-a.edu",
        "password": "a-long-password",
        "full_name": "Copycat",
    })
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DUPLICATE_ENTRY"


@pytest.mark.asyncio
async def test_same_email_allowed_in_other_tenant(client: AsyncClient, campus):
    resp = await client.post("/v1/auth/register", json={
        "tenant_code": "UNI-B",
        "email": "student@uni-a.edu",
        "password": "a-long-password",
        "full_name": "Transfer Student",
    })
    assert resp.status_code == 201
    assert resp.json()["tenant_id"] == str(campus.foreign_tenant.id)


@pytest.mark.asyncio
async def test_register_suspended_tenant(client: AsyncClient, suspended_tenant):
    resp = await client.post("/v1/auth/register", json={
        "tenant_code": "CLOSED",
        "email": "late@closed.edu",
        "password": "a-long-password",
        "full_name": "Late Applicant",
    })
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "TENANT_SUSPENDED"


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client: AsyncClient, campus, login):
    tokens = (await login("student@uni-a.edu")).json()

    resp = await client.post("/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    rotated = resp.json()
    assert rotated["refresh_token"] != tokens["refresh_token"]

    resp = await client.get(
        "/v1/auth/me", headers={"Authorization": f"Bearer {rotated['access_token']}"}
    )
    assert resp.status_code == 200

    resp = await client.post("/v1/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_refresh_reuse_revokes_family(
    client: AsyncClient, campus, login, session
):
    tokens = (await login("student@uni-a.edu")).json()
    first = tokens["refresh_token"]

    resp = await client.post("/v1/auth/refresh", json={"refresh_token": first})
    second = resp.json()["refresh_token"]

    # Replaying the spent token kills the whole family...
    resp = await client.post("/v1/auth/refresh", json={"refresh_token": first})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"

    # ...including the token the legitimate holder was about to use.
    resp = await client.post("/v1/auth/refresh", json={"refresh_token": second})
    assert resp.status_code == 401

    result = await session.execute(select(AuditLog).where(AuditLog.action == "refresh_token_reuse"))
    assert len(result.scalars().all()) >= 1


@pytest.mark.asyncio
async def test_concurrent_refresh_with_same_token(
    client: AsyncClient, campus, login, session
):
    tokens = (await login("student@uni-a.edu")).json()
    body = {"refresh_token": tokens["refresh_token"]}

    responses = await asyncio.gather(
        client.post("/v1/auth/refresh", json=body),
        client.post("/v1/auth/refresh", json=body),
    )
    codes = sorted(resp.status_code for resp in responses)
    assert codes == [200, 401]

    winner = next(resp for resp in responses if resp.status_code == 200)
    loser = next(resp for resp in responses if resp.status_code == 401)
    assert loser.json()["error"]["code"] == "INVALID_TOKEN"

    # The family is gone, so the token the winner received is dead too.
    resp = await client.post(
        "/v1/auth/refresh", json={"refresh_token": winner.json()["refresh_token"]}
    )
    assert resp.status_code == 401

    result = await session.execute(select(AuditLog).where(AuditLog.action == "refresh_token_reuse"))
    assert len(result.scalars().all()) >= 1


@pytest.mark.asyncio
async def test_refresh_for_blocked_user_fails(client: AsyncClient, campus, login, session):
    """A user blocked after login cannot mint new access tokens."""
    tokens = (await login("student@uni-a.edu")).json()

    user = await session.get(User, campus.student.id)
    user.status = UserStatus.BLOCKED
    session.add(user)
    await session.commit()

    resp = await client.post("/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["code"] == "USER_INACTIVE"
    assert "access_token" not in body


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, campus, login):
    tokens = (await login("student@uni-a.edu")).json()
    resp = await client.post("/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_refresh_token_not_issued_by_us(client: AsyncClient, campus, codec):
    """Validly signed but never recorded: rejected."""
    issued = codec.issue_refresh_token(campus.student.id, campus.tenant.id)
    resp = await client.post("/v1/auth/refresh", json={"refresh_token": issued.token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_refresh_family(client: AsyncClient, campus, login):
    tokens = (await login("teacher@uni-a.edu")).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = await client.post(
        "/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=headers
    )
    assert resp.status_code == 204

    resp = await client.post("/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_and_logout_are_audited(client: AsyncClient, campus, login, session):
    tokens = (await login("teacher@uni-a.edu")).json()
    await client.post(
        "/v1/auth/logout",
        json={},
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )

    result = await session.execute(
        select(AuditLog).where(AuditLog.user_id == campus.teacher.id)
    )
    actions = {a.action for a in result.scalars().all()}
    assert {"user_logged_in", "user_logged_out"} <= actions
