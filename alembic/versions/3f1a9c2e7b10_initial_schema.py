"""initial schema: tenants, users, academic structure, enrollments, records, audit

Revision ID: 3f1a9c2e7b10
Revises: 
Create Date: 2026-10-18 10:12:41.208331

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum columns store member names, matching SQLAlchemy's Enum default.
tenant_status = sa.Enum("ACTIVE", "SUSPENDED", "ARCHIVED", name="tenantstatus")
grading_system = sa.Enum("PERCENTAGE", "GPA", "LETTER", name="gradingsystem")
cycle_naming = sa.Enum("SEMESTER", "TRIMESTER", "TERM", "QUARTER", name="cyclenaming")
user_role = sa.Enum("STUDENT", "TEACHER", "ADMIN", name="userrole")
user_status = sa.Enum("PENDING", "ACTIVE", "BLOCKED", name="userstatus")
class_status = sa.Enum("ACTIVE", "INACTIVE", "COMPLETED", name="classstatus")
role_in_class = sa.Enum("STUDENT", "TEACHER", name="roleinclass")
enrollment_status = sa.Enum("ACTIVE", "DROPPED", "COMPLETED", name="enrollmentstatus")
fee_status = sa.Enum("PENDING", "PAID", "WAIVED", name="feestatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("status", tenant_status, nullable=False, index=True),
        sa.Column("grading_system", grading_system, nullable=False),
        sa.Column("cycle_naming", cycle_naming, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tenants_code", "tenants", ["code"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("email", sa.String(320), nullable=False, index=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("status", user_status, nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    op.create_table(
        "programs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "academic_cycles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("program_id", sa.Uuid(), sa.ForeignKey("programs.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("program_id", sa.Uuid(), sa.ForeignKey("programs.id"), nullable=False, index=True),
        sa.Column(
            "academic_cycle_id", sa.Uuid(), sa.ForeignKey("academic_cycles.id"),
            nullable=False, index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("session", sa.String(50), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("status", class_status, nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id"), nullable=False, index=True),
        sa.Column("role_in_class", role_in_class, nullable=False),
        sa.Column("status", enrollment_status, nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "tenant_id", "user_id", "class_id", name="uq_enrollments_tenant_user_class"
        ),
    )

    op.create_table(
        "attendance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id"), nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("records", sa.JSON(), nullable=False),
        sa.Column("marked_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "class_id", "date", name="uq_attendance_tenant_class_date"),
    )

    op.create_table(
        "grades",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id"), nullable=False, index=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("component", sa.String(100), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("max_value", sa.Float(), nullable=False),
        sa.Column("graded_by", sa.Uuid(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "tenant_id", "class_id", "student_id", "component",
            name="uq_grades_tenant_class_student_component",
        ),
    )

    op.create_table(
        "fees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id"), nullable=False, index=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", fee_status, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("jti", sa.String(64), nullable=False),
        sa.Column("family_id", sa.Uuid(), nullable=False, index=True),
        _tenant_fk(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_refresh_tokens_jti", "refresh_tokens", ["jti"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _tenant_fk(),
        sa.Column("user_id", sa.Uuid(), nullable=True, index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("entity", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=True, index=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False, index=True),
        sa.Column("details", sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "refresh_tokens",
        "fees",
        "grades",
        "attendance",
        "enrollments",
        "classes",
        "academic_cycles",
        "programs",
        "users",
        "tenants",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (
        fee_status, enrollment_status, role_in_class, class_status,
        user_status, user_role, cycle_naming, grading_system, tenant_status,
    ):
        enum.drop(bind, checkfirst=True)
