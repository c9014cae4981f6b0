"""Initial tables: users, quiz questions, quiz sessions, attempts, AI usage.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("subscription_tier", sa.String(16), nullable=False, server_default="NONE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("sport", sa.String(50), nullable=False),
        sa.Column("position", sa.String(50), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("scenario", sa.Text(), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("options_json", sa.Text(), nullable=False),
        sa.Column("correct_option_id", sa.String(10), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("tags_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("source", sa.String(16), nullable=False, server_default="CATALOG"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sport", "position", "external_id", name="uq_quiz_questions_external_id"),
    )
    op.create_index(op.f("ix_quiz_questions_sport"), "quiz_questions", ["sport"], unique=False)
    op.create_index(op.f("ix_quiz_questions_position"), "quiz_questions", ["position"], unique=False)

    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("quiz_type", sa.String(16), nullable=False),
        sa.Column("sport", sa.String(50), nullable=False),
        sa.Column("position", sa.String(50), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("question_ids_json", sa.Text(), nullable=False),
        sa.Column("session_name", sa.String(200), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("best_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_attempt_id", sa.Integer(), nullable=True),
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "sport", "position", "sequence_number", name="uq_quiz_sessions_sequence"),
    )
    op.create_index(op.f("ix_quiz_sessions_user_id"), "quiz_sessions", ["user_id"], unique=False)

    op.create_table(
        "quiz_session_attempts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("quiz_session_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["quiz_session_id"], ["quiz_sessions.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quiz_session_id", "attempt_number", name="uq_attempts_session_number"),
    )
    op.create_index(
        op.f("ix_quiz_session_attempts_quiz_session_id"), "quiz_session_attempts", ["quiz_session_id"], unique=False
    )
    op.create_index(op.f("ix_quiz_session_attempts_user_id"), "quiz_session_attempts", ["user_id"], unique=False)

    op.create_table(
        "quiz_session_question_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("attempt_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("question_number", sa.Integer(), nullable=False),
        sa.Column("answer_selected", sa.String(10), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["attempt_id"], ["quiz_session_attempts.id"]),
        sa.ForeignKeyConstraint(["question_id"], ["quiz_questions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_quiz_session_question_results_attempt_id"),
        "quiz_session_question_results",
        ["attempt_id"],
        unique=False,
    )

    op.create_table(
        "ai_usage_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("feature", sa.String(32), nullable=False),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_ai_usage_records_user_id"), "ai_usage_records", ["user_id"], unique=False)
    op.create_index(op.f("ix_ai_usage_records_created_at"), "ai_usage_records", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_ai_usage_records_created_at"), table_name="ai_usage_records")
    op.drop_index(op.f("ix_ai_usage_records_user_id"), table_name="ai_usage_records")
    op.drop_table("ai_usage_records")
    op.drop_index(op.f("ix_quiz_session_question_results_attempt_id"), table_name="quiz_session_question_results")
    op.drop_table("quiz_session_question_results")
    op.drop_index(op.f("ix_quiz_session_attempts_user_id"), table_name="quiz_session_attempts")
    op.drop_index(op.f("ix_quiz_session_attempts_quiz_session_id"), table_name="quiz_session_attempts")
    op.drop_table("quiz_session_attempts")
    op.drop_index(op.f("ix_quiz_sessions_user_id"), table_name="quiz_sessions")
    op.drop_table("quiz_sessions")
    op.drop_index(op.f("ix_quiz_questions_position"), table_name="quiz_questions")
    op.drop_index(op.f("ix_quiz_questions_sport"), table_name="quiz_questions")
    op.drop_table("quiz_questions")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
