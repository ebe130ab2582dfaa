"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the complete StudyHub database schema:
- Enums: user_role, connection_status, notification_type,
  notification_related_type, priority_level, task_status
- Tables: users, auth_identities, teacher_profiles, student_profiles,
  connections, study_logs, study_streaks, notifications, tasks
- Constraint and index names follow the naming convention in studyhub.db.base
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    "user_role": ("teacher", "student"),
    "connection_status": ("pending", "accepted", "rejected"),
    "notification_type": (
        "task_assigned", "task_due_soon", "task_overdue", "task_completed",
        "connection_request", "connection_accepted", "student_joined", "achievement",
    ),
    "notification_related_type": ("task", "connection", "user", "streak"),
    "priority_level": ("high", "medium", "low"),
    "task_status": ("pending", "completed"),
}


def enum(name: str) -> postgresql.ENUM:
    """Column type for an enum created at the top of upgrade()."""
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False)


def user_fk(table: str, column: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], ["users.id"], ondelete="CASCADE", name=f"fk_{table}_{column}_users"
    )


def upgrade() -> None:
    # ==========================================================================
    # ENUMS
    # ==========================================================================
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", enum("user_role"), nullable=False),
        timestamp("created_at"),
        timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # ==========================================================================
    # AUTH_IDENTITIES TABLE
    # ==========================================================================
    op.create_table(
        "auth_identities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_user_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        timestamp("created_at"),
        timestamp("last_login_at"),
        sa.PrimaryKeyConstraint("id", name="pk_auth_identities"),
        user_fk("auth_identities", "user_id"),
        sa.UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
    )
    op.create_index("ix_auth_identities_user_id", "auth_identities", ["user_id"])
    op.create_index("idx_auth_identities_provider_lookup", "auth_identities", ["provider", "provider_user_id"])

    # ==========================================================================
    # PROFILES
    # ==========================================================================
    op.create_table(
        "teacher_profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(16), nullable=True),
        timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_teacher_profiles"),
        user_fk("teacher_profiles", "user_id"),
        sa.UniqueConstraint("user_id", name="uq_teacher_profiles_user_id"),
        sa.UniqueConstraint("code", name="uq_teacher_profiles_code"),
    )
    op.create_index("ix_teacher_profiles_code", "teacher_profiles", ["code"])

    op.create_table(
        "student_profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_student_profiles"),
        user_fk("student_profiles", "user_id"),
        sa.UniqueConstraint("user_id", name="uq_student_profiles_user_id"),
    )

    # ==========================================================================
    # CONNECTIONS TABLE
    # ==========================================================================
    op.create_table(
        "connections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("teacher_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("status", enum("connection_status"), nullable=False, server_default="pending"),
        sa.Column("initiated_by", enum("user_role"), nullable=True),
        timestamp("created_at"),
        timestamp("responded_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_connections"),
        user_fk("connections", "teacher_id"),
        user_fk("connections", "student_id"),
        sa.UniqueConstraint("teacher_id", "student_id", name="unique_teacher_student"),
    )
    op.create_index("idx_connections_teacher_status", "connections", ["teacher_id", "status"])
    op.create_index("idx_connections_student_status", "connections", ["student_id", "status"])

    # ==========================================================================
    # STUDY_LOGS / STUDY_STREAKS
    # ==========================================================================
    op.create_table(
        "study_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("subject", sa.String(255), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_study_logs"),
        user_fk("study_logs", "user_id"),
        sa.CheckConstraint("duration >= 1", name="ck_study_logs_valid_duration"),
    )
    op.create_index("idx_study_logs_user_date", "study_logs", ["user_id", "date"])
    op.create_index("idx_study_logs_user_created_at", "study_logs", ["user_id", "created_at"])

    op.create_table(
        "study_streaks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_study_date", sa.Date(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default="0"),
        timestamp("created_at"),
        timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_study_streaks"),
        user_fk("study_streaks", "user_id"),
        sa.UniqueConstraint("user_id", name="uq_study_streaks_user_id"),
        sa.CheckConstraint("current_streak >= 0", name="ck_study_streaks_valid_current_streak"),
        sa.CheckConstraint(
            "longest_streak >= current_streak", name="ck_study_streaks_longest_covers_current"
        ),
    )

    # ==========================================================================
    # NOTIFICATIONS TABLE
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.Uuid(), nullable=True),
        sa.Column("related_type", enum("notification_related_type"), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority", enum("priority_level"), nullable=False, server_default="medium"),
        timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
        user_fk("notifications", "user_id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("idx_notifications_event", "notifications", ["user_id", "type", "related_id"])
    op.create_index("idx_notifications_user_unread", "notifications", ["user_id", "is_read"])

    # ==========================================================================
    # TASKS TABLE
    # ==========================================================================
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", enum("priority_level"), nullable=False, server_default="medium"),
        sa.Column("status", enum("task_status"), nullable=False, server_default="pending"),
        sa.Column("assigned_by", sa.Uuid(), nullable=False),
        sa.Column("assigned_to", sa.Uuid(), nullable=False),
        timestamp("created_at"),
        timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        user_fk("tasks", "assigned_by"),
        user_fk("tasks", "assigned_to"),
    )
    op.create_index("idx_tasks_assigned_to_status", "tasks", ["assigned_to", "status"])
    op.create_index("idx_tasks_assigned_by", "tasks", ["assigned_by"])
    op.create_index("idx_tasks_status_due_at", "tasks", ["status", "due_at"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("tasks")
    op.drop_table("notifications")
    op.drop_table("study_streaks")
    op.drop_table("study_logs")
    op.drop_table("connections")
    op.drop_table("student_profiles")
    op.drop_table("teacher_profiles")
    op.drop_table("auth_identities")
    op.drop_table("users")

    # Drop enums
    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
