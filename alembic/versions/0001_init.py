"""scholarships, applications and per-field upload status

Revision ID: 0001_init
Revises:
Create Date: 2026-10-17 10:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "scholarships",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("sponsor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("custom_form_fields", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scholarships_sponsor_id", "scholarships", ["sponsor_id"])
    op.create_index("ix_scholarships_status", "scholarships", ["status"])

    op.create_table(
        "scholarship_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("scholarship_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("custom_form_response", sa.JSON(), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "scholarship_id", name="uq_scholarship_applications_student_scholarship"),
    )
    op.create_index("ix_scholarship_applications_scholarship_id", "scholarship_applications", ["scholarship_id"])
    op.create_index("ix_scholarship_applications_student_id", "scholarship_applications", ["student_id"])
    op.create_index("ix_scholarship_applications_status", "scholarship_applications", ["status"])

    op.create_table(
        "application_field_uploads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("field_key", sa.String(length=80), nullable=False),
        sa.Column("field_label", sa.String(length=200), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("request_key", sa.String(length=64), nullable=True),
        sa.Column("object_keys", sa.JSON(), nullable=True),
        sa.Column("file_urls", sa.JSON(), nullable=True),
        sa.Column("error", sa.String(length=500), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("application_id", "field_key", name="uq_application_field_uploads_application_field"),
    )
    op.create_index("ix_application_field_uploads_application_id", "application_field_uploads", ["application_id"])
    op.create_index("ix_application_field_uploads_status", "application_field_uploads", ["status"])


def downgrade() -> None:
    op.drop_index("ix_application_field_uploads_status", table_name="application_field_uploads")
    op.drop_index("ix_application_field_uploads_application_id", table_name="application_field_uploads")
    op.drop_table("application_field_uploads")
    op.drop_index("ix_scholarship_applications_status", table_name="scholarship_applications")
    op.drop_index("ix_scholarship_applications_student_id", table_name="scholarship_applications")
    op.drop_index("ix_scholarship_applications_scholarship_id", table_name="scholarship_applications")
    op.drop_table("scholarship_applications")
    op.drop_index("ix_scholarships_status", table_name="scholarships")
    op.drop_index("ix_scholarships_sponsor_id", table_name="scholarships")
    op.drop_table("scholarships")
