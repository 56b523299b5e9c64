from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import QUIZ_ID, auth
from vcanchor.services import assessment_engine
from vcanchor.services.errors import AnchoringFailed
from vcanchor.services.ledger_client import ledger_client


class _Grader:
    def __init__(self, score: int) -> None:
        self.score = score

    async def grade(self, answer: str, quiz_title: str) -> int:
        return self.score


@pytest.fixture
def grade_as(monkeypatch: pytest.MonkeyPatch):
    def _set(score: int) -> None:
        monkeypatch.setattr(assessment_engine, "grader", _Grader(score))

    return _set


def _seed(client: TestClient, token: str, value: int = 0x1) -> str:
    ledger_client.queue_random(value)
    resp = client.get("/v1/rng-seed", params={"max": 1000}, headers=auth(token))
    assert resp.status_code == 200
    return resp.json()["seed"]


def _attempt(client: TestClient, token: str, seed: str, answer: str = "my answer"):
    return client.post(
        f"/v1/quizzes/{QUIZ_ID}/attempts",
        json={"answer": answer, "seed": seed},
        headers=auth(token),
    )


def test_rng_seed_requires_candidate(client: TestClient, issuer_token: str) -> None:
    resp = client.get("/v1/rng-seed", params={"max": 10}, headers=auth(issuer_token))
    assert resp.status_code == 403


def test_rng_seed_rejects_zero_max(client: TestClient, candidate_token: str) -> None:
    resp = client.get("/v1/rng-seed", params={"max": 0}, headers=auth(candidate_token))
    assert resp.status_code == 422


def test_rng_seed_returns_hex(client: TestClient, candidate_token: str) -> None:
    assert _seed(client, candidate_token, 255) == "0xff"


def test_questions_ordered_by_seed(client: TestClient, quiz) -> None:
    resp = client.get(f"/v1/quizzes/{QUIZ_ID}/questions", params={"seed": "0x1"})
    assert resp.status_code == 200
    body = resp.json()
    assert [q["prompt"] for q in body["questions"]] == ["q0", "q2", "q3", "q4", "q1"]
    assert body["seed"] == "0x1"


def test_questions_invalid_seed(client: TestClient, quiz) -> None:
    resp = client.get(f"/v1/quizzes/{QUIZ_ID}/questions", params={"seed": "banana"})
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Invalid seed."}


def test_questions_unknown_quiz(client: TestClient) -> None:
    resp = client.get("/v1/quizzes/42/questions", params={"seed": "0x1"})
    assert resp.status_code == 404


def test_passing_attempt(
    client: TestClient, candidate_token: str, quiz, team, grade_as
) -> None:
    grade_as(88)
    seed = _seed(client, candidate_token)

    resp = _attempt(client, candidate_token, seed)

    assert resp.status_code == 201
    body = resp.json()
    assert body["score"] == 88
    assert body["max_score"] == 100
    assert body["passed"] is True
    assert body["tx_hash"].startswith("0x")
    assert body["message"] == "You scored 88. You passed! Skill Pass anchored on-chain."


def test_failing_attempt(
    client: TestClient, candidate_token: str, quiz, team, grade_as
) -> None:
    grade_as(40)
    seed = _seed(client, candidate_token)

    body = _attempt(client, candidate_token, seed).json()

    assert body["passed"] is False
    assert body["tx_hash"] is None
    assert body["message"] == "You scored 40. You failed."


def test_attempt_with_unissued_seed(
    client: TestClient, candidate_token: str, quiz, team, grade_as
) -> None:
    grade_as(88)
    resp = _attempt(client, candidate_token, "0x1234")
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Invalid seed."}


def test_attempt_without_team_did(
    client: TestClient, candidate_token: str, quiz, grade_as
) -> None:
    grade_as(88)
    seed = _seed(client, candidate_token)
    resp = _attempt(client, candidate_token, seed)
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Please create your team DID before taking a quiz."}


def test_attempt_survives_anchoring_failure(
    client: TestClient, candidate_token: str, quiz, team, grade_as
) -> None:
    grade_as(95)
    ledger_client.fail_next_mint(AnchoringFailed("execution reverted", stage="revert"))
    seed = _seed(client, candidate_token)

    resp = _attempt(client, candidate_token, seed)

    assert resp.status_code == 201
    body = resp.json()
    assert body["passed"] is True
    assert body["tx_hash"] is None
    assert body["message"].endswith("Failed to anchor credential: execution reverted")


def test_attempt_rejects_empty_answer(
    client: TestClient, candidate_token: str, quiz, team, grade_as
) -> None:
    grade_as(88)
    seed = _seed(client, candidate_token)
    resp = _attempt(client, candidate_token, seed, answer="  ")
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Invalid request."}
