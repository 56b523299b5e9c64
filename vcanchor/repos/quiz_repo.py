from __future__ import annotations

from typing import Protocol
from uuid import UUID

from vcanchor.models.assessment import Quiz, QuizAttempt, QuizQuestion


class QuizRepo(Protocol):
    async def get_quiz(self, quiz_id: int) -> Quiz | None: ...
    async def list_questions(self, quiz_id: int) -> list[QuizQuestion]: ...
    async def add_attempt(self, attempt: QuizAttempt) -> None: ...
    async def list_attempts(self, candidate_id: UUID) -> list[QuizAttempt]: ...


class InMemoryQuizRepo:
    """Quizzes are seeded by fixtures; attempts are append-only."""

    def __init__(self) -> None:
        self._quizzes: dict[int, Quiz] = {}
        self._questions: dict[int, list[QuizQuestion]] = {}
        self._attempts: list[QuizAttempt] = []

    def clear(self) -> None:
        self._quizzes.clear()
        self._questions.clear()
        self._attempts.clear()

    def seed_quiz(self, quiz: Quiz, prompts: list[str]) -> None:
        self._quizzes[quiz.id] = quiz
        self._questions[quiz.id] = [
            QuizQuestion(id=quiz.id * 1000 + i, quiz_id=quiz.id, prompt=p)
            for i, p in enumerate(prompts, start=1)
        ]

    async def get_quiz(self, quiz_id: int) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    async def list_questions(self, quiz_id: int) -> list[QuizQuestion]:
        # Stored order (by id) is the input to the seeded shuffle.
        return sorted(self._questions.get(quiz_id, []), key=lambda q: q.id)

    async def add_attempt(self, attempt: QuizAttempt) -> None:
        if any(a.id == attempt.id for a in self._attempts):
            raise ValueError("attempt already recorded")
        self._attempts.append(attempt)

    async def list_attempts(self, candidate_id: UUID) -> list[QuizAttempt]:
        return [a for a in self._attempts if a.candidate_id == candidate_id]
