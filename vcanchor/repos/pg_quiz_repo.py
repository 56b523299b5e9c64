"""PostgreSQL implementation of QuizRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vcanchor.db.tables import QuizAttemptRow, SkillQuizQuestionRow, SkillQuizRow
from vcanchor.models.assessment import Quiz, QuizAttempt, QuizQuestion


class PgQuizRepo:
    """Satisfies the QuizRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_quiz(self, quiz_id: int) -> Quiz | None:
        row = await self._session.get(SkillQuizRow, quiz_id)
        if row is None:
            return None
        return Quiz(id=row.id, title=row.title, description=row.description or "")

    async def list_questions(self, quiz_id: int) -> list[QuizQuestion]:
        stmt = (
            select(SkillQuizQuestionRow)
            .where(SkillQuizQuestionRow.quiz_id == quiz_id)
            .order_by(SkillQuizQuestionRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [QuizQuestion(id=r.id, quiz_id=r.quiz_id, prompt=r.prompt) for r in rows]

    async def add_attempt(self, attempt: QuizAttempt) -> None:
        self._session.add(
            QuizAttemptRow(
                id=attempt.id,
                candidate_id=attempt.candidate_id,
                quiz_id=attempt.quiz_id,
                seed=attempt.seed,
                score=attempt.score,
                max_score=attempt.max_score,
                passed=attempt.passed,
                tx_hash=attempt.tx_hash,
                vc_json=attempt.vc_json,
                created_at=attempt.created_at,
            )
        )
        await self._session.flush()

    async def list_attempts(self, candidate_id: UUID) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(QuizAttemptRow.candidate_id == candidate_id)
            .order_by(QuizAttemptRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_attempt(r) for r in rows]


def _row_to_attempt(row: QuizAttemptRow) -> QuizAttempt:
    return QuizAttempt(
        id=row.id,
        candidate_id=row.candidate_id,
        quiz_id=row.quiz_id,
        seed=row.seed,
        score=row.score,
        created_at=row.created_at,
        max_score=row.max_score,
        passed=row.passed,
        tx_hash=row.tx_hash,
        vc_json=row.vc_json,
    )
