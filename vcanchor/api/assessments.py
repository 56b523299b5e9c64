"""Seeded skill-quiz endpoints.

- GET  /v1/rng-seed?max=N                  issue a seed from ledger randomness
- GET  /v1/quizzes/{id}/questions?seed=    reproducible question order (public)
- POST /v1/quizzes/{id}/attempts           grade, anchor on pass, record
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from vcanchor.api.dependencies import require_role
from vcanchor.models.principal import Principal
from vcanchor.repos.stores import Stores, get_stores
from vcanchor.services import assessment_engine

router = APIRouter(prefix="/v1", tags=["assessments"])


class SeedOut(BaseModel):
    seed: str


class QuestionOut(BaseModel):
    id: int
    prompt: str


class QuestionOrderOut(BaseModel):
    quiz_id: int
    seed: str
    questions: list[QuestionOut]


class AttemptIn(BaseModel):
    answer: str
    seed: str


class AttemptOut(BaseModel):
    id: str
    quiz_id: int
    seed: str
    score: int
    max_score: int
    passed: bool
    tx_hash: str | None
    vc_json: str | None
    created_at: datetime
    message: str


@router.get("/rng-seed", response_model=SeedOut)
async def rng_seed(
    principal: Annotated[Principal, Depends(require_role("candidate"))],
    max_: Annotated[int, Query(alias="max", ge=1)],
) -> SeedOut:
    seed = await assessment_engine.request_seed(principal.user_id, max_)
    return SeedOut(seed=seed)


@router.get("/quizzes/{quiz_id}/questions", response_model=QuestionOrderOut)
async def quiz_questions(
    quiz_id: int,
    seed: str,
    stores: Annotated[Stores, Depends(get_stores)],
) -> QuestionOrderOut:
    questions = await assessment_engine.order_questions(stores, quiz_id, seed)
    return QuestionOrderOut(
        quiz_id=quiz_id,
        seed=seed,
        questions=[QuestionOut(id=q.id, prompt=q.prompt) for q in questions],
    )


@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=AttemptOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_attempt(
    quiz_id: int,
    body: AttemptIn,
    principal: Annotated[Principal, Depends(require_role("candidate"))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> AttemptOut:
    result = await assessment_engine.submit_attempt(
        stores,
        principal.user_id,
        quiz_id,
        body.answer,
        body.seed,
        display_name=principal.name,
    )
    a = result.attempt
    return AttemptOut(
        id=str(a.id),
        quiz_id=a.quiz_id,
        seed=a.seed,
        score=a.score,
        max_score=a.max_score,
        passed=a.passed,
        tx_hash=a.tx_hash,
        vc_json=a.vc_json,
        created_at=a.created_at,
        message=result.message,
    )
