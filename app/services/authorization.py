"""Authorization Engine — the single allow/deny decision for tenant data.

Order of checks:

1. ``admin`` is allowed for anything in its own tenant. The tenant is
   already pinned by identity resolution, so this never crosses tenants.
2. With a ``class_id``, every other role needs an *active* enrollment in
   that class, optionally with a specific role in the class.
3. Without a ``class_id``, an optional global role is compared directly.

The enrollment check runs before any global-role check: holding the
``teacher`` role tenant-wide never grants access to a class the caller
is not enrolled in.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import assert_never

from app.core.errors import InsufficientPermissions, NotEnrolled
from app.models.enrollment import Enrollment, RoleInClass
from app.models.user import UserRole
from app.services.enrollment_store import EnrollmentStore
from app.services.identity import ResolvedIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    reason: str
    enrollment: Enrollment | None = None


class AuthorizationEngine:
    def __init__(self, store: EnrollmentStore) -> None:
        self.store = store

    async def check(
        self,
        identity: ResolvedIdentity,
        *,
        class_id: uuid.UUID | None = None,
        required_role_in_class: RoleInClass | None = None,
        required_global_role: UserRole | None = None,
    ) -> AccessDecision:
        """Return an ``AccessDecision`` or raise the matching denial."""
        match identity.role:
            case UserRole.ADMIN:
                return AccessDecision(reason="admin_access")
            case UserRole.TEACHER | UserRole.STUDENT:
                pass
            case _:
                assert_never(identity.role)

        if class_id is not None:
            enrollment = await self.store.find_active(
                identity.tenant_id, identity.user_id, class_id
            )
            if enrollment is None:
                logger.info("Denied user %s: not enrolled in class %s", identity.user_id, class_id)
                raise NotEnrolled(classId=str(class_id))

            if required_role_in_class is not None and enrollment.role_in_class != required_role_in_class:
                logger.info(
                    "Denied user %s in class %s: role %s, requires %s",
                    identity.user_id, class_id, enrollment.role_in_class, required_role_in_class,
                )
                raise InsufficientPermissions(
                    f"Requires {required_role_in_class} role in class",
                    requiredRole=str(required_role_in_class),
                    actualRole=str(enrollment.role_in_class),
                )
            return AccessDecision(reason="enrolled", enrollment=enrollment)

        if required_global_role is not None and identity.role != required_global_role:
            logger.info("Denied user %s: role %s, requires %s", identity.user_id, identity.role, required_global_role)
            raise InsufficientPermissions(
                f"Requires {required_global_role} role",
                requiredRole=str(required_global_role),
                actualRole=str(identity.role),
            )

        return AccessDecision(reason="role_access")

    async def require_admin(self, identity: ResolvedIdentity) -> AccessDecision:
        """Inline guard for tenant-wide, admin-only resources."""
        return await self.check(identity, required_global_role=UserRole.ADMIN)
