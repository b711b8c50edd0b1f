"""Authentication endpoints — register, login, refresh, logout, current user."""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import select

from app.api.deps import (
    Audit,
    Codec,
    Context,
    Session,
    client_ip,
    get_auth_limiter,
)
from app.core.errors import (
    Conflict,
    InvalidCredentials,
    TenantSuspended,
    UserInactive,
    ValidationError,
)
from app.core.rate_limit import RateLimiter, rate_limit_key
from app.core.security import hash_password, verify_password
from app.models.base import utcnow
from app.models.tenant import Tenant, TenantRead, normalize_tenant_code
from app.models.user import User, UserRead, UserRole, UserStatus
from app.services import refresh_sessions
from app.services.audit import AuditEntry
from app.services.identity import resolve_identity

router = APIRouter(prefix="/auth", tags=["auth"])

AuthLimiter = Annotated[RateLimiter, Depends(get_auth_limiter)]


# ── Schemas ──────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    tenant_code: str = Field(max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    full_name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.STUDENT


class LoginRequest(BaseModel):
    tenant_code: str = Field(max_length=50)
    email: EmailStr
    password: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenPair):
    user: UserRead


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class MeResponse(BaseModel):
    user: UserRead
    tenant: TenantRead


# ── Routes ───────────────────────────────────────────────────

@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    session: Session,
    audit: Audit,
    background: BackgroundTasks,
    limiter: AuthLimiter,
) -> UserRead:
    """Self-registration. The account stays ``pending`` until an admin activates it."""
    code = normalize_tenant_code(body.tenant_code)
    limiter.hit(rate_limit_key(f"register:{code}", client_ip(request)))

    if body.role == UserRole.ADMIN:
        raise ValidationError("Admin accounts cannot self-register", field="role")

    tenant = await _tenant_by_code(session, code)
    if tenant is None or not tenant.is_active:
        raise TenantSuspended("Tenant is not accepting registrations")

    email = body.email.lower()
    existing = await session.execute(
        select(User).where(User.tenant_id == tenant.id, User.email == email)
    )
    if existing.scalar_one_or_none():
        raise Conflict("User already exists in this tenant", field="email")

    user = User(
        tenant_id=tenant.id,
        email=email,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        role=body.role,
        status=UserStatus.PENDING,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    audit.schedule(background, AuditEntry(
        tenant_id=tenant.id, user_id=user.id,
        action="user_registered", entity="User", entity_id=user.id,
    ))
    return UserRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    session: Session,
    codec: Codec,
    audit: Audit,
    background: BackgroundTasks,
    limiter: AuthLimiter,
) -> LoginResponse:
    """Authenticate with tenant code + email + password, receive a token pair."""
    code = normalize_tenant_code(body.tenant_code)
    limiter.hit(rate_limit_key(f"login:{code}", client_ip(request)))

    tenant = await _tenant_by_code(session, code)
    if tenant is None:
        raise InvalidCredentials()
    if not tenant.is_active:
        raise TenantSuspended(status=str(tenant.status))

    result = await session.execute(
        select(User).where(User.tenant_id == tenant.id, User.email == body.email.lower())
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_password(body.password, user.password_hash):
        raise InvalidCredentials()
    if not user.is_active:
        raise UserInactive(f"Account is {user.status}. Please contact administrator.", status=str(user.status))

    user.last_login_at = utcnow()
    session.add(user)

    access_token = codec.issue_access_token(user.id, tenant.id, user.role)
    issued = codec.issue_refresh_token(user.id, tenant.id)
    refresh_sessions.remember(session, issued)
    await session.commit()
    await session.refresh(user)

    audit.schedule(background, AuditEntry(
        tenant_id=tenant.id, user_id=user.id,
        action="user_logged_in", entity="User", entity_id=user.id,
    ))
    return LoginResponse(
        access_token=access_token,
        refresh_token=issued.token,
        user=UserRead.model_validate(user),
    )


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    body: RefreshRequest,
    request: Request,
    session: Session,
    codec: Codec,
    audit: Audit,
    limiter: AuthLimiter,
) -> TokenPair:
    """Rotate a refresh token.

    The presented token is spent; a new access token and a new refresh
    token of the same family are returned. User and tenant are resolved
    again, so a blocked account or suspended tenant gets nothing.
    """
    claims = codec.verify_refresh_token(body.refresh_token)
    limiter.hit(rate_limit_key(f"refresh:{claims.tenant_id}", client_ip(request)))

    try:
        await refresh_sessions.consume(session, claims)
    except refresh_sessions.RefreshTokenReused:
        # Error responses drop background tasks, so write this one inline.
        await audit.record(AuditEntry(
            tenant_id=claims.tenant_id, user_id=claims.user_id,
            action="refresh_token_reuse", entity="User", entity_id=claims.user_id,
            metadata={"familyId": str(claims.family_id)},
        ))
        raise

    identity = await resolve_identity(session, claims)

    access_token = codec.issue_access_token(identity.user_id, identity.tenant_id, identity.role)
    issued = codec.issue_refresh_token(identity.user_id, identity.tenant_id, claims.family_id)
    refresh_sessions.remember(session, issued)
    await session.commit()

    return TokenPair(access_token=access_token, refresh_token=issued.token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    body: LogoutRequest,
    ctx: Context,
    session: Session,
    codec: Codec,
    audit: Audit,
    background: BackgroundTasks,
) -> None:
    """Revoke the refresh-token family of the presented token, if any."""
    if body.refresh_token:
        claims = codec.verify_refresh_token(body.refresh_token)
        if claims.user_id == ctx.user_id and claims.tenant_id == ctx.tenant_id:
            await refresh_sessions.revoke_family(session, claims.family_id)
            await session.commit()

    audit.schedule(background, AuditEntry(
        tenant_id=ctx.tenant_id, user_id=ctx.user_id,
        action="user_logged_out", entity="User", entity_id=ctx.user_id,
    ))


@router.get("/me", response_model=MeResponse)
async def get_me(ctx: Context) -> MeResponse:
    """Return the current authenticated user and their tenant."""
    return MeResponse(
        user=UserRead.model_validate(ctx.user),
        tenant=TenantRead.model_validate(ctx.tenant),
    )


# ── Internal helper ───────────────────────────────────────────

async def _tenant_by_code(session, code: str) -> Tenant | None:
    result = await session.execute(select(Tenant).where(Tenant.code == code))
    return result.scalar_one_or_none()
