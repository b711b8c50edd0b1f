"""Shared test fixtures — per-test SQLite file DB, token codec, seeded campus."""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.api.deps import get_auth_limiter, get_request_limiter, get_token_codec
from app.core.database import get_session, get_session_factory
from app.core.security import TokenCodec, TokenSettings, hash_password
from app.main import app
from app.models import (
    AcademicCycle,
    Class,
    Enrollment,
    Program,
    RoleInClass,
    Tenant,
    TenantStatus,
    User,
    UserRole,
    UserStatus,
)

PASSWORD = "correct-horse-42"


class FrozenClock:
    """Stand-in for the codec clock; moves only when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
async def engine(tmp_path):
    # A file, not :memory:, so separate sessions really are separate connections.
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'campus.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
    )


@pytest.fixture
def codec(token_settings, clock) -> TokenCodec:
    return TokenCodec(token_settings, clock=clock)


@pytest.fixture
async def client(test_session_factory, codec) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client; every request gets its own test DB session."""

    async def _override_session():
        async with test_session_factory() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory
    app.dependency_overrides[get_token_codec] = lambda: codec
    get_request_limiter().clear()
    get_auth_limiter().clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    get_request_limiter().clear()
    get_auth_limiter().clear()


# ── Seed data ────────────────────────────────────────────────

@dataclass
class Campus:
    tenant: Tenant
    admin: User
    teacher: User
    student: User
    outsider: User  # student role, enrolled nowhere
    program: Program
    cycle: AcademicCycle
    klass: Class
    other_class: Class  # same tenant, nobody enrolled
    foreign_tenant: Tenant
    foreign_admin: User
    foreign_class: Class


def make_user(tenant: Tenant, email: str, role: UserRole, **overrides) -> User:
    fields = {
        "tenant_id": tenant.id,
        "email": email,
        "password_hash": _password_hash(),
        "role": role,
        "status": UserStatus.ACTIVE,
        "full_name": email.split("@")[0].title(),
    }
    fields.update(overrides)
    return User(**fields)


_hash_cache: dict[str, str] = {}


def _password_hash() -> str:
    # Argon2 is slow on purpose; hash the shared password once per run.
    if PASSWORD not in _hash_cache:
        _hash_cache[PASSWORD] = hash_password(PASSWORD)
    return _hash_cache[PASSWORD]


def _academic_tree(tenant: Tenant, class_names: list[str]):
    program = Program(tenant_id=tenant.id, name="Computer Science")
    cycle = AcademicCycle(
        tenant_id=tenant.id, program_id=program.id, name="Semester 1", sequence_number=1
    )
    classes = [
        Class(
            tenant_id=tenant.id,
            program_id=program.id,
            academic_cycle_id=cycle.id,
            name=name,
            session="2026-A",
        )
        for name in class_names
    ]
    return program, cycle, classes


@pytest.fixture
async def campus(test_session_factory) -> Campus:
    """Two tenants. In the first, ``teacher`` teaches and ``student`` attends ``klass``.

    Seeded through its own session, so tests get detached rows that stay
    readable whatever the test session does afterwards.
    """
    tenant = Tenant(name="First University", code="UNI-A")
    foreign_tenant = Tenant(name="Second University", code="UNI-B")

    admin = make_user(tenant, "admin@uni-a.edu", UserRole.ADMIN)
    teacher = make_user(tenant, "teacher@uni-a.edu", UserRole.TEACHER)
    student = make_user(tenant, "student@uni-a.edu", UserRole.STUDENT)
    outsider = make_user(tenant, "outsider@uni-a.edu", UserRole.STUDENT)
    foreign_admin = make_user(foreign_tenant, "admin@uni-b.edu", UserRole.ADMIN)

    program, cycle, (klass, other_class) = _academic_tree(tenant, ["Algorithms", "Databases"])
    f_program, f_cycle, (foreign_class,) = _academic_tree(foreign_tenant, ["Compilers"])

    seed = [
        tenant, foreign_tenant,
        admin, teacher, student, outsider, foreign_admin,
        program, cycle, klass, other_class,
        f_program, f_cycle, foreign_class,
        Enrollment(
            tenant_id=tenant.id, user_id=teacher.id, class_id=klass.id,
            role_in_class=RoleInClass.TEACHER,
        ),
        Enrollment(
            tenant_id=tenant.id, user_id=student.id, class_id=klass.id,
            role_in_class=RoleInClass.STUDENT,
        ),
    ]
    async with test_session_factory() as session:
        session.add_all(seed)
        await session.commit()

    return Campus(
        tenant=tenant,
        admin=admin,
        teacher=teacher,
        student=student,
        outsider=outsider,
        program=program,
        cycle=cycle,
        klass=klass,
        other_class=other_class,
        foreign_tenant=foreign_tenant,
        foreign_admin=foreign_admin,
        foreign_class=foreign_class,
    )


@pytest.fixture
async def suspended_tenant(test_session_factory) -> Tenant:
    tenant = Tenant(name="Closed College", code="CLOSED", status=TenantStatus.SUSPENDED)
    async with test_session_factory() as session:
        session.add(tenant)
        await session.commit()
    return tenant


@pytest.fixture
def auth_headers(codec) -> Callable[[User], dict[str, str]]:
    """Mint an access token for a seeded user without going through login."""

    def _headers(user: User) -> dict[str, str]:
        token = codec.issue_access_token(user.id, user.tenant_id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def login(client):
    """POST /v1/auth/login for a seeded user (all share ``PASSWORD``)."""

    async def _login(email: str, password: str = PASSWORD, tenant_code: str = "UNI-A"):
        return await client.post("/v1/auth/login", json={
            "tenant_code": tenant_code,
            "email": email,
            "password": password,
        })

    return _login
