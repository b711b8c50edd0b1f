"""assignments and submissions

Revision ID: 8d42e6b1c905
Revises: 3f1a9c2e7b10
Create Date: 2026-10-18 15:40:07.553019

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8d42e6b1c905'
down_revision: str | Sequence[str] | None = '3f1a9c2e7b10'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

submission_status = sa.Enum("SUBMITTED", "LATE", "GRADED", name="submissionstatus")


def upgrade() -> None:
    op.create_table(
        "assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id"), nullable=False, index=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=False),
        sa.Column("max_marks", sa.Float(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column(
            "assignment_id", sa.Uuid(), sa.ForeignKey("assignments.id"), nullable=False, index=True
        ),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("file_url", sa.String(2048), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("status", submission_status, nullable=False),
        sa.Column("marks", sa.Float(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("graded_by", sa.Uuid(), nullable=True),
        sa.Column("graded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "tenant_id", "assignment_id", "student_id",
            name="uq_submissions_tenant_assignment_student",
        ),
    )


def downgrade() -> None:
    op.drop_table("submissions")
    op.drop_table("assignments")
    submission_status.drop(op.get_bind(), checkfirst=True)
