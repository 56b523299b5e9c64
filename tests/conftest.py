from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from vcanchor.main import app
from vcanchor.models.assessment import Quiz
from vcanchor.models.identity import Issuer, IssuerStatus, Team
from vcanchor.repos.stores import (
    memory_credentials,
    memory_identities,
    memory_quizzes,
    memory_stores,
)
from vcanchor.services import token_service
from vcanchor.services.ledger_client import ledger_client
from vcanchor.services.seed_registry import seed_registry

# Ensure repo root is on sys.path so `import vcanchor` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

CANDIDATE_USER = "cand-1"
ISSUER_USER = "issuer-1"
ISSUER_ID = 7
TEAM_DID = "did:flare:0x" + "ab" * 20
ISSUER_DID = "did:flare:0x" + "cd" * 20
QUIZ_ID = 3
QUIZ_PROMPTS = ["q0", "q1", "q2", "q3", "q4"]


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the in-memory repositories between tests."""
    memory_credentials.clear()
    memory_identities.clear()
    memory_quizzes.clear()


@pytest.fixture(autouse=True)
def reset_seeds() -> None:
    """Forget issued seeds between tests."""
    if hasattr(seed_registry, "_expires"):
        seed_registry._expires.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_ledger() -> None:
    """Fresh in-process ledger: no tokens, no identities, token ids from 1."""
    if hasattr(ledger_client, "reset"):
        ledger_client.reset()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def stores():
    return memory_stores


def mint_token(
    username: str = CANDIDATE_USER,
    roles: list[str] | None = None,
    name: str = "",
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles, name=name)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def candidate_token() -> str:
    return mint_token(CANDIDATE_USER, ["candidate"], name="Ada Lovelace")


@pytest.fixture
def issuer_token() -> str:
    return mint_token(ISSUER_USER, ["issuer"])


@pytest.fixture
def admin_token() -> str:
    return mint_token("ops-1", ["admin"])


# ---------------------------------------------------------------------------
# Identity and quiz helpers
# ---------------------------------------------------------------------------


def create_team(user_id: str = CANDIDATE_USER, did: str | None = TEAM_DID) -> Team:
    """Create a team and put ``user_id`` in it."""

    async def _go() -> Team:
        team = Team.new(name=f"{user_id}-team", did=did)
        await memory_identities.add_team(team)
        await memory_identities.add_team_member(team.id, user_id)
        return team

    return asyncio.run(_go())


def create_issuer(
    issuer_id: int = ISSUER_ID,
    owner: str = ISSUER_USER,
    did: str | None = ISSUER_DID,
    status: IssuerStatus = IssuerStatus.ACTIVE,
) -> Issuer:
    issuer = Issuer(
        id=issuer_id, owner_user_id=owner, name="Acme Academy", status=status, did=did
    )
    return asyncio.run(memory_identities.add_issuer(issuer))


def create_quiz(quiz_id: int = QUIZ_ID, title: str = "Solidity Basics") -> Quiz:
    quiz = Quiz(id=quiz_id, title=title)
    memory_quizzes.seed_quiz(quiz, list(QUIZ_PROMPTS))
    return quiz


@pytest.fixture
def team() -> Team:
    return create_team()


@pytest.fixture
def issuer() -> Issuer:
    return create_issuer()


@pytest.fixture
def quiz() -> Quiz:
    return create_quiz()
