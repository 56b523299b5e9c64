"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in vcanchor/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from vcanchor.db.engine import Base

# --- Identity ---


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    did: Mapped[str | None] = mapped_column(String(128), nullable=True)


class TeamMemberRow(Base):
    __tablename__ = "team_members"

    user_id: Mapped[str] = mapped_column(String(320), primary_key=True)
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False
    )


class CandidateRow(Base):
    __tablename__ = "candidates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    team_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id"), nullable=True
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class IssuerRow(Base):
    __tablename__ = "issuers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending"
    )  # pending|active|rejected
    did: Mapped[str | None] = mapped_column(String(128), nullable=True)


# --- Credentials ---


class CandidateCredentialRow(Base):
    __tablename__ = "candidate_credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("candidates.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    proof_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="none"
    )  # none|evm-tx|json|payment|address
    proof_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    issuer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("issuers.id"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="unverified"
    )  # unverified|pending|verified|rejected
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    vc_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    pending_anchor_json: Mapped[str | None] = mapped_column(Text, nullable=True)


# --- Skill assessments ---


class SkillQuizRow(Base):
    __tablename__ = "skill_quizzes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")


class SkillQuizQuestionRow(Base):
    __tablename__ = "skill_quiz_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quiz_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("skill_quizzes.id"), nullable=False, index=True
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)


class QuizAttemptRow(Base):
    """Append-only: rows are inserted once and never updated."""

    __tablename__ = "quiz_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("candidates.id"), nullable=False, index=True
    )
    quiz_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("skill_quizzes.id"), nullable=False
    )
    seed: Mapped[str] = mapped_column(String(66), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    vc_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
