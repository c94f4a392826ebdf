"""create schedule templates

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


day_of_week_enum = sa.Enum(
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday", name="day_of_week"
)
recurrence_type_enum = sa.Enum("weekly", "biweekly", "custom", name="recurrence_type")
approval_status_enum = sa.Enum("pending", "approved", "rejected", "auto_approved", name="approval_status")


def upgrade() -> None:
    op.create_table(
        "schedule_templates",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("session_group_id", sa.String(length=36), nullable=False),
        sa.Column("room", sa.String(length=50), nullable=True),
        sa.Column("building", sa.String(length=100), nullable=True),
        sa.Column("day_of_week", day_of_week_enum, nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("recurrence_type", recurrence_type_enum, nullable=False, server_default="weekly"),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("exception_dates", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approval_status", approval_status_enum, nullable=False, server_default="pending"),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=False),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_schedule_templates_course_id", "schedule_templates", ["course_id"])
    op.create_index("ix_schedule_templates_teacher_id", "schedule_templates", ["teacher_id"])
    op.create_index("ix_schedule_templates_session_group_id", "schedule_templates", ["session_group_id"])
    op.create_index("ix_schedule_templates_effective_from", "schedule_templates", ["effective_from"])
    op.create_index("ix_schedule_templates_is_active", "schedule_templates", ["is_active"])
    op.create_index("ix_schedule_templates_approval_status", "schedule_templates", ["approval_status"])
    op.create_index("ix_schedule_templates_teacher_day", "schedule_templates", ["teacher_id", "day_of_week"])
    op.create_index("ix_schedule_templates_room_day", "schedule_templates", ["room", "day_of_week"])


def downgrade() -> None:
    for index_name in (
        "ix_schedule_templates_room_day",
        "ix_schedule_templates_teacher_day",
        "ix_schedule_templates_approval_status",
        "ix_schedule_templates_is_active",
        "ix_schedule_templates_effective_from",
        "ix_schedule_templates_session_group_id",
        "ix_schedule_templates_teacher_id",
        "ix_schedule_templates_course_id",
    ):
        op.drop_index(index_name, table_name="schedule_templates")
    op.drop_table("schedule_templates")
    bind = op.get_bind()
    approval_status_enum.drop(bind, checkfirst=True)
    recurrence_type_enum.drop(bind, checkfirst=True)
    day_of_week_enum.drop(bind, checkfirst=True)
