"""Refresh-token rotation with reuse detection."""

import logging
import uuid
from typing import NoReturn

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import InvalidToken
from app.core.security import IssuedRefreshToken, RefreshClaims
from app.models.base import utcnow
from app.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)


class RefreshTokenReused(InvalidToken):
    default_message = "Refresh token has already been used"


def remember(session: AsyncSession, issued: IssuedRefreshToken) -> RefreshToken:
    """Persist a freshly issued refresh token (caller commits)."""
    claims = issued.claims
    record = RefreshToken(
        jti=claims.jti,
        family_id=claims.family_id,
        tenant_id=claims.tenant_id,
        user_id=claims.user_id,
        expires_at=claims.expires_at.replace(tzinfo=None),
    )
    session.add(record)
    return record


async def consume(session: AsyncSession, claims: RefreshClaims) -> RefreshToken:
    """Mark the token behind *claims* as used.

    A token that is unknown fails with ``InvalidToken``. One that was
    already used or revoked revokes its whole family and fails with
    ``RefreshTokenReused``; the revocation is committed before raising.
    """
    stmt = select(RefreshToken).where(RefreshToken.jti == claims.jti)
    result = await session.execute(stmt)
    record = result.scalar_one_or_none()
    if record is None or record.user_id != claims.user_id or record.tenant_id != claims.tenant_id:
        raise InvalidToken("Unknown refresh token")

    family_id = record.family_id
    if record.used_at is not None or record.revoked_at is not None:
        await _revoke_reused(session, record.user_id, family_id)

    # Conditional update so two concurrent refreshes cannot both succeed.
    now = utcnow()
    claimed = await session.execute(
        update(RefreshToken)
        .where(RefreshToken.id == record.id, RefreshToken.used_at.is_(None))  # type: ignore[union-attr]
        .values(used_at=now)
    )
    if claimed.rowcount != 1:
        # Lost the race: rollback expires ``record``, so only plain ids survive it.
        await session.rollback()
        await _revoke_reused(session, claims.user_id, family_id)
    record.used_at = now
    return record


async def _revoke_reused(session: AsyncSession, user_id: uuid.UUID, family_id: uuid.UUID) -> NoReturn:
    await revoke_family(session, family_id)
    await session.commit()
    logger.warning(
        "Refresh token reuse detected for user %s, family %s revoked",
        user_id, family_id,
    )
    raise RefreshTokenReused(familyId=str(family_id))


async def revoke_family(session: AsyncSession, family_id: uuid.UUID) -> None:
    await session.execute(
        update(RefreshToken)
        .where(RefreshToken.family_id == family_id, RefreshToken.revoked_at.is_(None))  # type: ignore[union-attr]
        .values(revoked_at=utcnow())
    )
