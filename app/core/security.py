"""Security utilities: password hashing and the bearer-token codec."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings
from app.core.errors import InvalidToken, TokenExpired
from app.models.user import UserRole

# ── Password hashing (Argon2) ────────────────────────────────

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ── JWT codec ────────────────────────────────────────────────

ACCESS = "access"
REFRESH = "refresh"


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenSettings:
    """Secrets and lifetimes for the two token kinds."""

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSettings":
        if not settings.jwt_access_secret or not settings.jwt_refresh_secret:
            raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be configured")
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )


@dataclass(frozen=True)
class AccessClaims:
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    role: UserRole
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    jti: str
    family_id: uuid.UUID
    expires_at: datetime


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    claims: RefreshClaims


class TokenCodec:
    """Signs and verifies access / refresh JWTs.

    Stateless apart from its settings and clock. Access tokens carry
    ``sub``, ``tid`` and ``role``; refresh tokens carry ``sub``, ``tid``,
    ``jti`` and ``fam`` only, so the role is always re-read from the user
    record when an access token is minted from a refresh token.
    """

    def __init__(
        self,
        settings: TokenSettings,
        clock: Callable[[], datetime] = utc_clock,
    ) -> None:
        self._settings = settings
        self._clock = clock

    # ── issue ────────────────────────────────────────────────

    def issue_access_token(
        self, user_id: uuid.UUID, tenant_id: uuid.UUID, role: UserRole
    ) -> str:
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "tid": str(tenant_id),
            "role": str(role),
            "typ": ACCESS,
            "iat": int(now.timestamp()),
            "exp": int((now + self._settings.access_ttl).timestamp()),
        }
        return jwt.encode(
            payload, self._settings.access_secret, algorithm=self._settings.algorithm
        )

    def issue_refresh_token(
        self,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID,
        family_id: uuid.UUID | None = None,
    ) -> IssuedRefreshToken:
        now = self._clock()
        expires_at = now + self._settings.refresh_ttl
        claims = RefreshClaims(
            user_id=user_id,
            tenant_id=tenant_id,
            jti=uuid.uuid4().hex,
            family_id=family_id or uuid.uuid4(),
            expires_at=datetime.fromtimestamp(int(expires_at.timestamp()), timezone.utc),
        )
        payload = {
            "sub": str(user_id),
            "tid": str(tenant_id),
            "typ": REFRESH,
            "jti": claims.jti,
            "fam": str(claims.family_id),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(
            payload, self._settings.refresh_secret, algorithm=self._settings.algorithm
        )
        return IssuedRefreshToken(token=token, claims=claims)

    # ── verify ───────────────────────────────────────────────

    def verify_access_token(self, token: str) -> AccessClaims:
        payload = self._decode(token, self._settings.access_secret, ACCESS)
        try:
            return AccessClaims(
                user_id=uuid.UUID(payload["sub"]),
                tenant_id=uuid.UUID(payload["tid"]),
                role=UserRole(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise InvalidToken("Malformed token payload") from exc

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        payload = self._decode(token, self._settings.refresh_secret, REFRESH)
        try:
            return RefreshClaims(
                user_id=uuid.UUID(payload["sub"]),
                tenant_id=uuid.UUID(payload["tid"]),
                jti=str(payload["jti"]),
                family_id=uuid.UUID(payload["fam"]),
                expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise InvalidToken("Malformed token payload") from exc

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        # Expiry is checked against the injected clock, not jose's wall clock.
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        if payload.get("typ") != expected_type:
            raise InvalidToken("Wrong token type")

        exp = payload.get("exp")
        if not isinstance(exp, int | float):
            raise InvalidToken("Malformed token payload")
        if self._clock().timestamp() >= exp:
            raise TokenExpired()
        return payload
