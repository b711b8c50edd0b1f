"""Import all models so SQLModel.metadata picks them up."""

from app.models.academic import (
    AcademicCycle,
    AcademicCycleCreate,
    AcademicCycleRead,
    AcademicCycleUpdate,
    Class,
    ClassCreate,
    ClassRead,
    ClassStatus,
    Program,
)
from app.models.audit_log import AuditLog, AuditLogRead
from app.models.coursework import (
    Assignment,
    AssignmentCreate,
    AssignmentRead,
    Submission,
    SubmissionCreate,
    SubmissionGrade,
    SubmissionRead,
    SubmissionStatus,
)
from app.models.enrollment import (
    Enrollment,
    EnrollmentCreate,
    EnrollmentRead,
    EnrollmentStatus,
    EnrollmentUpdate,
    RoleInClass,
)
from app.models.records import (
    Attendance,
    AttendanceStatus,
    Fee,
    FeeStatus,
    Grade,
)
from app.models.refresh_token import RefreshToken
from app.models.tenant import Tenant, TenantRead, TenantStatus
from app.models.user import User, UserCreate, UserRead, UserRole, UserStatus

__all__ = [
    "AcademicCycle",
    "AcademicCycleCreate",
    "AcademicCycleRead",
    "AcademicCycleUpdate",
    "Assignment",
    "AssignmentCreate",
    "AssignmentRead",
    "Attendance",
    "AttendanceStatus",
    "AuditLog",
    "AuditLogRead",
    "Class",
    "ClassCreate",
    "ClassRead",
    "ClassStatus",
    "Enrollment",
    "EnrollmentCreate",
    "EnrollmentRead",
    "EnrollmentStatus",
    "EnrollmentUpdate",
    "Fee",
    "FeeStatus",
    "Grade",
    "Program",
    "RefreshToken",
    "RoleInClass",
    "Submission",
    "SubmissionCreate",
    "SubmissionGrade",
    "SubmissionRead",
    "SubmissionStatus",
    "Tenant",
    "TenantRead",
    "TenantStatus",
    "User",
    "UserCreate",
    "UserRead",
    "UserRole",
    "UserStatus",
]
