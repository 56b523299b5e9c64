"""create identity, credential and quiz tables

Revision ID: 3b1e7c9d2a40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1e7c9d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("did", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "team_members",
        sa.Column("user_id", sa.String(length=320), primary_key=True),
        sa.Column(
            "team_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("teams.id"),
            nullable=False,
        ),
    )
    op.create_table(
        "candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(length=320), nullable=False, unique=True),
        sa.Column(
            "team_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("teams.id"),
            nullable=True,
        ),
        sa.Column(
            "display_name", sa.String(length=255), nullable=False, server_default=""
        ),
    )
    op.create_table(
        "issuers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_user_id", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "status", sa.String(length=20), nullable=False, server_default="pending"
        ),
        sa.Column("did", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "candidate_credentials",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "candidate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("candidates.id"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column(
            "proof_type", sa.String(length=16), nullable=False, server_default="none"
        ),
        sa.Column("proof_data", sa.Text(), nullable=True),
        sa.Column(
            "issuer_id", sa.Integer(), sa.ForeignKey("issuers.id"), nullable=True
        ),
        sa.Column(
            "status", sa.String(length=20), nullable=False, server_default="unverified"
        ),
        sa.Column(
            "verified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vc_json", sa.Text(), nullable=True),
        sa.Column("pending_anchor_json", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_candidate_credentials_candidate_id",
        "candidate_credentials",
        ["candidate_id"],
    )
    op.create_index(
        "ix_candidate_credentials_issuer_id", "candidate_credentials", ["issuer_id"]
    )
    op.create_table(
        "skill_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
    )
    op.create_table(
        "skill_quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "quiz_id", sa.Integer(), sa.ForeignKey("skill_quizzes.id"), nullable=False
        ),
        sa.Column("prompt", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_skill_quiz_questions_quiz_id", "skill_quiz_questions", ["quiz_id"]
    )
    op.create_table(
        "quiz_attempts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "candidate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("candidates.id"),
            nullable=False,
        ),
        sa.Column(
            "quiz_id", sa.Integer(), sa.ForeignKey("skill_quizzes.id"), nullable=False
        ),
        sa.Column("seed", sa.String(length=66), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("max_score", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("tx_hash", sa.String(length=66), nullable=True),
        sa.Column("vc_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_quiz_attempts_candidate_id", "quiz_attempts", ["candidate_id"])


def downgrade() -> None:
    op.drop_index("ix_quiz_attempts_candidate_id", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index(
        "ix_skill_quiz_questions_quiz_id", table_name="skill_quiz_questions"
    )
    op.drop_table("skill_quiz_questions")
    op.drop_table("skill_quizzes")
    op.drop_index(
        "ix_candidate_credentials_issuer_id", table_name="candidate_credentials"
    )
    op.drop_index(
        "ix_candidate_credentials_candidate_id", table_name="candidate_credentials"
    )
    op.drop_table("candidate_credentials")
    op.drop_table("issuers")
    op.drop_table("candidates")
    op.drop_table("team_members")
    op.drop_table("teams")
