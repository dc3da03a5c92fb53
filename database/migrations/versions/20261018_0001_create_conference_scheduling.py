"""create conference scheduling tables

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "editor", "author", name="user_role")
notification_channel_enum = sa.Enum("email", "in_app", name="notification_channel")
notification_status_enum = sa.Enum("pending", "sent", "failed", name="notification_status")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("conference_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="submitted"),
        sa.Column("author_ids", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_submissions_conference_id", "submissions", ["conference_id"])

    op.create_table(
        "scheduling_parameters",
        sa.Column("conference_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("conference_dates", sa.JSON(), nullable=False),
        sa.Column("session_length_minutes", sa.Integer(), nullable=True),
        sa.Column("daily_start_time", sa.String(length=16), nullable=True),
        sa.Column("daily_end_time", sa.String(length=16), nullable=True),
        sa.Column("available_room_ids", sa.JSON(), nullable=False),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "conference_schedules",
        sa.Column("conference_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("schedule_id", sa.String(length=80), nullable=False),
        sa.Column("created_by_admin_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="generated"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(length=36), nullable=True),
        sa.Column("conference_timezone", sa.String(length=64), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
    )
    op.create_index("ix_conference_schedules_schedule_id", "conference_schedules", ["schedule_id"])

    op.create_table(
        "schedule_notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("conference_id", sa.String(length=64), nullable=False),
        sa.Column("notification_type", sa.String(length=50), nullable=False, server_default="final_schedule"),
        sa.Column("channel", notification_channel_enum, nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=False),
        sa.Column("paper_id", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", notification_status_enum, nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_schedule_notifications_conference_id", "schedule_notifications", ["conference_id"])
    op.create_index("ix_schedule_notifications_notification_type", "schedule_notifications", ["notification_type"])
    op.create_index("ix_schedule_notifications_author_id", "schedule_notifications", ["author_id"])
    op.create_index("ix_schedule_notifications_status", "schedule_notifications", ["status"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_index("ix_schedule_notifications_status", table_name="schedule_notifications")
    op.drop_index("ix_schedule_notifications_author_id", table_name="schedule_notifications")
    op.drop_index("ix_schedule_notifications_notification_type", table_name="schedule_notifications")
    op.drop_index("ix_schedule_notifications_conference_id", table_name="schedule_notifications")
    op.drop_table("schedule_notifications")

    op.drop_index("ix_conference_schedules_schedule_id", table_name="conference_schedules")
    op.drop_table("conference_schedules")
    op.drop_table("scheduling_parameters")

    op.drop_index("ix_submissions_conference_id", table_name="submissions")
    op.drop_table("submissions")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    notification_status_enum.drop(op.get_bind(), checkfirst=True)
    notification_channel_enum.drop(op.get_bind(), checkfirst=True)
    user_role_enum.drop(op.get_bind(), checkfirst=True)
