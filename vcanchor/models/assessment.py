from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

PASS_THRESHOLD = 70
MAX_SCORE = 100


@dataclass(frozen=True, slots=True)
class Quiz:
    id: int
    title: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    id: int
    quiz_id: int
    prompt: str


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    """One submitted attempt.  Append-only: written once, never updated."""

    id: UUID
    candidate_id: UUID
    quiz_id: int
    seed: str
    score: int
    created_at: datetime
    max_score: int = MAX_SCORE
    passed: bool = False
    tx_hash: str | None = None
    vc_json: str | None = None

    @staticmethod
    def new(
        *,
        candidate_id: UUID,
        quiz_id: int,
        seed: str,
        score: int,
        created_at: datetime,
        tx_hash: str | None = None,
        vc_json: str | None = None,
    ) -> QuizAttempt:
        # passed is derived here so it can never disagree with score
        return QuizAttempt(
            id=uuid4(),
            candidate_id=candidate_id,
            quiz_id=quiz_id,
            seed=seed,
            score=score,
            created_at=created_at,
            passed=score >= PASS_THRESHOLD,
            tx_hash=tx_hash,
            vc_json=vc_json,
        )
