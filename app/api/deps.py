"""FastAPI dependencies: credentials, identity, class gating, auditing."""

import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session, get_session_factory
from app.core.errors import AppError, InvalidToken, NotEnrolled, NotFound
from app.core.rate_limit import RateLimiter, rate_limit_key
from app.core.security import TokenCodec, TokenSettings
from app.models.academic import Class
from app.models.base import live_filter
from app.models.enrollment import Enrollment, RoleInClass
from app.models.tenant import Tenant
from app.models.user import User, UserRole
from app.services.audit import AuditSink
from app.services.authorization import AuthorizationEngine
from app.services.enrollment_store import EnrollmentStore
from app.services.identity import ResolvedIdentity, resolve_identity

bearer_scheme = HTTPBearer(auto_error=False)

Session = Annotated[AsyncSession, Depends(get_session)]


# ── Process-wide singletons (overridable in tests) ───────────

@lru_cache
def get_token_codec() -> TokenCodec:
    return TokenCodec(TokenSettings.from_settings(get_settings()))


@lru_cache
def get_request_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
        storage=settings.rate_limit_storage_uri,
    )


@lru_cache
def get_auth_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        settings.auth_rate_limit_max_requests,
        settings.rate_limit_window_seconds,
        storage=settings.rate_limit_storage_uri,
        message="Too many authentication attempts, please try again later",
    )


def get_audit_sink(
    factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> AuditSink:
    return AuditSink(factory)


def get_enrollment_store(session: Session) -> EnrollmentStore:
    return EnrollmentStore(session)


def get_authorization_engine(
    store: Annotated[EnrollmentStore, Depends(get_enrollment_store)],
) -> AuthorizationEngine:
    return AuthorizationEngine(store)


Codec = Annotated[TokenCodec, Depends(get_token_codec)]
Audit = Annotated[AuditSink, Depends(get_audit_sink)]
Store = Annotated[EnrollmentStore, Depends(get_enrollment_store)]
Engine = Annotated[AuthorizationEngine, Depends(get_authorization_engine)]


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


# ── Identity ─────────────────────────────────────────────────

@dataclass(frozen=True)
class RequestContext:
    """Trusted identity carried through a request."""

    identity: ResolvedIdentity

    @property
    def user(self) -> User:
        return self.identity.user

    @property
    def tenant(self) -> Tenant:
        return self.identity.tenant

    @property
    def user_id(self) -> uuid.UUID:
        return self.identity.user_id

    @property
    def tenant_id(self) -> uuid.UUID:
        return self.identity.tenant_id

    @property
    def role(self) -> UserRole:
        return self.identity.role


async def get_request_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    codec: Codec,
    session: Session,
    limiter: Annotated[RateLimiter, Depends(get_request_limiter)],
) -> RequestContext:
    """Verify the bearer token and resolve user + tenant.

    Every call spends the general budget: under the caller's tenant once
    resolved, otherwise under the anonymous key for that client.
    """
    try:
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise InvalidToken("No token provided")
        claims = codec.verify_access_token(credentials.credentials)
        identity = await resolve_identity(session, claims)
    except AppError:
        limiter.hit(rate_limit_key(None, client_ip(request)))
        raise

    limiter.hit(rate_limit_key(str(identity.tenant_id), client_ip(request)))
    return RequestContext(identity=identity)


Context = Annotated[RequestContext, Depends(get_request_context)]


async def require_admin(ctx: Context, engine: Engine) -> RequestContext:
    await engine.require_admin(ctx.identity)
    return ctx


AdminContext = Annotated[RequestContext, Depends(require_admin)]


# ── Class-scoped gating ──────────────────────────────────────

@dataclass(frozen=True)
class ClassScope:
    """A caller cleared for one class; ``enrollment`` is None for admins."""

    ctx: RequestContext
    klass: Class
    enrollment: Enrollment | None

    @property
    def role_in_class(self) -> RoleInClass | None:
        return self.enrollment.role_in_class if self.enrollment else None

    @property
    def sees_only_own_records(self) -> bool:
        return self.role_in_class == RoleInClass.STUDENT


async def load_class(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    class_id: uuid.UUID,
    *,
    include_deleted: bool = False,
) -> Class | None:
    stmt = select(Class).where(
        Class.id == class_id,
        Class.tenant_id == tenant_id,
        *live_filter(Class, include_deleted),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def require_class_access(role_in_class: RoleInClass | None = None):
    """Build a dependency gating a ``{class_id}`` route through the engine.

    Non-admins get ``NOT_ENROLLED`` both for classes they are not enrolled
    in and for classes that do not exist, so existence never leaks. Admins
    get ``NOT_FOUND`` for a class missing from their tenant.
    """

    async def dependency(
        class_id: uuid.UUID,
        ctx: Context,
        engine: Engine,
        session: Session,
    ) -> ClassScope:
        decision = await engine.check(
            ctx.identity,
            class_id=class_id,
            required_role_in_class=role_in_class,
        )
        klass = await load_class(session, ctx.tenant_id, class_id)
        if klass is None:
            if ctx.role == UserRole.ADMIN:
                raise NotFound("Class not found")
            raise NotEnrolled(classId=str(class_id))
        return ClassScope(ctx=ctx, klass=klass, enrollment=decision.enrollment)

    return dependency


ClassMember = Annotated[ClassScope, Depends(require_class_access())]
ClassTeacher = Annotated[ClassScope, Depends(require_class_access(RoleInClass.TEACHER))]
ClassStudent = Annotated[ClassScope, Depends(require_class_access(RoleInClass.STUDENT))]
