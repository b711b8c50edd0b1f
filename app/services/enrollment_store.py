"""Enrollment Store — durable source of truth for class membership.

Uniqueness of ``(tenant_id, user_id, class_id)`` is enforced by the
``uq_enrollments_tenant_user_class`` constraint, not by a read before the
insert: of two concurrent creates the database rejects the second and
``create`` turns that into ``AlreadyEnrolled``.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import AlreadyEnrolled, NotFound, ValidationError
from app.models.base import live_filter, utcnow
from app.models.enrollment import Enrollment, EnrollmentStatus, RoleInClass

logger = logging.getLogger(__name__)


class EnrollmentStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        class_id: uuid.UUID,
        role_in_class: RoleInClass,
        *,
        acting_user_id: uuid.UUID | None = None,
    ) -> Enrollment:
        enrollment = Enrollment(
            tenant_id=tenant_id,
            user_id=user_id,
            class_id=class_id,
            role_in_class=role_in_class,
            updated_by=acting_user_id,
        )
        self.session.add(enrollment)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Duplicate enrollment rejected for user %s in class %s", user_id, class_id)
            raise AlreadyEnrolled(userId=str(user_id), classId=str(class_id)) from exc
        await self.session.refresh(enrollment)
        return enrollment

    async def get(
        self,
        tenant_id: uuid.UUID,
        enrollment_id: uuid.UUID,
        *,
        include_deleted: bool = False,
    ) -> Enrollment:
        stmt = select(Enrollment).where(
            Enrollment.id == enrollment_id,
            Enrollment.tenant_id == tenant_id,
            *live_filter(Enrollment, include_deleted),
        )
        result = await self.session.execute(stmt)
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFound("Enrollment not found")
        return enrollment

    async def find_active(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        class_id: uuid.UUID,
    ) -> Enrollment | None:
        """Return the enrollment granting access, if any.

        Tombstoned rows never grant access, so there is no
        ``include_deleted`` switch here.
        """
        stmt = select(Enrollment).where(
            Enrollment.tenant_id == tenant_id,
            Enrollment.user_id == user_id,
            Enrollment.class_id == class_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
            *live_filter(Enrollment, include_deleted=False),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_class(
        self,
        tenant_id: uuid.UUID,
        class_id: uuid.UUID,
        role_in_class: RoleInClass | None = None,
        *,
        active_only: bool = True,
        include_deleted: bool = False,
    ) -> Sequence[Enrollment]:
        stmt = select(Enrollment).where(
            Enrollment.tenant_id == tenant_id,
            Enrollment.class_id == class_id,
            *live_filter(Enrollment, include_deleted),
        )
        if role_in_class is not None:
            stmt = stmt.where(Enrollment.role_in_class == role_in_class)
        if active_only:
            stmt = stmt.where(Enrollment.status == EnrollmentStatus.ACTIVE)
        stmt = stmt.order_by(Enrollment.joined_at.desc())  # type: ignore[union-attr]
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_class_ids_for_user(
        self, tenant_id: uuid.UUID, user_id: uuid.UUID
    ) -> list[uuid.UUID]:
        stmt = select(Enrollment.class_id).where(
            Enrollment.tenant_id == tenant_id,
            Enrollment.user_id == user_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
            *live_filter(Enrollment, include_deleted=False),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def require_enrolled_students(
        self,
        tenant_id: uuid.UUID,
        class_id: uuid.UUID,
        student_ids: Iterable[uuid.UUID],
    ) -> None:
        """Fail unless every id has an active student enrollment in the class.

        Raises ``ValidationError`` listing the offending ids.
        """
        roster = await self.list_by_class(tenant_id, class_id, RoleInClass.STUDENT)
        enrolled = {e.user_id for e in roster}
        invalid = [str(sid) for sid in dict.fromkeys(student_ids) if sid not in enrolled]
        if invalid:
            raise ValidationError(
                "Some students are not enrolled in this class",
                invalidStudents=invalid,
            )

    async def update_role(
        self,
        enrollment: Enrollment,
        role_in_class: RoleInClass,
        *,
        acting_user_id: uuid.UUID,
    ) -> Enrollment:
        enrollment.role_in_class = role_in_class
        return await self._save(enrollment, acting_user_id)

    async def set_status(
        self,
        enrollment: Enrollment,
        status: EnrollmentStatus,
        *,
        acting_user_id: uuid.UUID,
    ) -> Enrollment:
        enrollment.status = status
        return await self._save(enrollment, acting_user_id)

    async def soft_delete(
        self, enrollment: Enrollment, *, acting_user_id: uuid.UUID
    ) -> Enrollment:
        enrollment.soft_delete()
        return await self._save(enrollment, acting_user_id)

    async def restore(
        self, enrollment: Enrollment, *, acting_user_id: uuid.UUID
    ) -> Enrollment:
        enrollment.restore()
        return await self._save(enrollment, acting_user_id)

    async def _save(self, enrollment: Enrollment, acting_user_id: uuid.UUID) -> Enrollment:
        enrollment.updated_by = acting_user_id
        enrollment.updated_at = utcnow()
        self.session.add(enrollment)
        await self.session.commit()
        await self.session.refresh(enrollment)
        return enrollment
