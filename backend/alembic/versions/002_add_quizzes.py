"""Add quizzes, quiz assignments and quiz attempts.

Revision ID: 002
Revises: 001_initial
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("time_limit_seconds", sa.Integer(), server_default="300", nullable=False),
        sa.Column("questions", postgresql.JSONB(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        timestamp("created_at"),
        timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_quizzes"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], ondelete="CASCADE", name="fk_quizzes_created_by_users"
        ),
        sa.CheckConstraint(
            "time_limit_seconds >= 30 AND time_limit_seconds <= 7200",
            name="ck_quizzes_valid_time_limit",
        ),
    )
    op.create_index("idx_quizzes_created_by_created_at", "quizzes", ["created_by", "created_at"])

    op.create_table(
        "quiz_assignments",
        sa.Column("quiz_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        timestamp("assigned_at"),
        sa.PrimaryKeyConstraint("quiz_id", "student_id", name="pk_quiz_assignments"),
        sa.ForeignKeyConstraint(
            ["quiz_id"], ["quizzes.id"], ondelete="CASCADE", name="fk_quiz_assignments_quiz_id_quizzes"
        ),
        sa.ForeignKeyConstraint(
            ["student_id"], ["users.id"], ondelete="CASCADE", name="fk_quiz_assignments_student_id_users"
        ),
    )
    op.create_index("idx_quiz_assignments_student", "quiz_assignments", ["student_id"])

    op.create_table(
        "quiz_attempts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("quiz_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("answers", postgresql.JSONB(), nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("time_taken_sec", sa.Integer(), server_default="0", nullable=False),
        timestamp("submitted_at"),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_attempts"),
        sa.ForeignKeyConstraint(
            ["quiz_id"], ["quizzes.id"], ondelete="CASCADE", name="fk_quiz_attempts_quiz_id_quizzes"
        ),
        sa.ForeignKeyConstraint(
            ["student_id"], ["users.id"], ondelete="CASCADE", name="fk_quiz_attempts_student_id_users"
        ),
        sa.UniqueConstraint("quiz_id", "student_id", name="unique_quiz_student_attempt"),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_quiz_attempts_valid_score"),
    )
    op.create_index("ix_quiz_attempts_student_id", "quiz_attempts", ["student_id"])


def downgrade() -> None:
    op.drop_table("quiz_attempts")
    op.drop_table("quiz_assignments")
    op.drop_table("quizzes")
