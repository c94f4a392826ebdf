"""create session occurrences

Revision ID: 20261019_0004
Revises: 20261019_0003
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0004"
down_revision = "20261019_0003"
branch_labels = None
depends_on = None


occurrence_status_enum = sa.Enum("scheduled", "in_progress", "completed", "cancelled", name="occurrence_status")


def upgrade() -> None:
    op.create_table(
        "session_occurrences",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("template_id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("session_group_id", sa.String(length=36), nullable=False),
        sa.Column("room", sa.String(length=50), nullable=True),
        sa.Column("building", sa.String(length=100), nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", occurrence_status_enum, nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("template_id", "scheduled_date", name="uq_session_occurrences_template_date"),
    )
    op.create_index("ix_session_occurrences_template_id", "session_occurrences", ["template_id"])
    op.create_index("ix_session_occurrences_course_id", "session_occurrences", ["course_id"])
    op.create_index("ix_session_occurrences_teacher_id", "session_occurrences", ["teacher_id"])
    op.create_index("ix_session_occurrences_scheduled_date", "session_occurrences", ["scheduled_date"])


def downgrade() -> None:
    op.drop_index("ix_session_occurrences_scheduled_date", table_name="session_occurrences")
    op.drop_index("ix_session_occurrences_teacher_id", table_name="session_occurrences")
    op.drop_index("ix_session_occurrences_course_id", table_name="session_occurrences")
    op.drop_index("ix_session_occurrences_template_id", table_name="session_occurrences")
    op.drop_table("session_occurrences")
    occurrence_status_enum.drop(op.get_bind(), checkfirst=True)
