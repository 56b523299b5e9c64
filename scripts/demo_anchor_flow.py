"""Demo: walk a credential and a quiz attempt through the API in-process.

Run with:
    python scripts/demo_anchor_flow.py

Uses FastAPI's TestClient against the in-memory repos and in-process ledger,
so no database, Redis or RPC endpoint is needed.  Leave DATABASE_URL,
REDIS_URL and LEDGER_RPC_URL unset.
"""

from __future__ import annotations

import asyncio
import json

from fastapi.testclient import TestClient

from vcanchor.main import app
from vcanchor.models.assessment import Quiz
from vcanchor.models.identity import Issuer, IssuerStatus, Team
from vcanchor.repos.stores import memory_identities, memory_quizzes
from vcanchor.services import token_service
from vcanchor.services.ledger_client import ledger_client

CANDIDATE = "demo-candidate"
ISSUER_OWNER = "demo-issuer"
TEAM_DID = "did:flare:0x" + "ab" * 20
ISSUER_DID = "did:flare:0x" + "cd" * 20


async def _seed_identities() -> None:
    team = Team.new(name="Demo Team", did=TEAM_DID)
    await memory_identities.add_team(team)
    await memory_identities.add_team_member(team.id, CANDIDATE)
    await memory_identities.add_issuer(
        Issuer(
            id=7,
            owner_user_id=ISSUER_OWNER,
            name="Demo University",
            status=IssuerStatus.ACTIVE,
            did=ISSUER_DID,
        )
    )
    memory_quizzes.seed_quiz(
        Quiz(id=1, title="Solidity Basics"),
        [
            "What does msg.sender hold?",
            "Why guard against reentrancy?",
            "What is a view function?",
        ],
    )


def _bearer(sub: str, role: str, name: str = "") -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=[role], name=name)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    asyncio.run(_seed_identities())
    ledger_client.set_next_token_id(42)  # type: ignore[union-attr]

    candidate = _bearer(CANDIDATE, "candidate", name="Demo Candidate")
    issuer = _bearer(ISSUER_OWNER, "issuer")

    # ── Step 1: submit a credential routed to issuer 7 ──────────────
    r = client.post(
        "/v1/credentials",
        json={
            "title": "BSc Computer Science",
            "category": "education",
            "type": "degree",
            "file_url": "https://example.com/diploma.pdf",
            "issuer_id": 7,
        },
        headers=candidate,
    )
    cid = r.json()["id"]
    print(f"1. POST /v1/credentials            → {r.status_code}  status={r.json()['status']}")

    # ── Step 2: issuer approves (mints) ─────────────────────────────
    r = client.post(f"/v1/issuer/credentials/{cid}/approve", headers=issuer)
    body = r.json()
    print(
        f"2. POST .../approve                → {r.status_code}  "
        f"token_id={body['token_id']}  {body['message']}"
    )

    # ── Step 3: public on-chain read-back ───────────────────────────
    r = client.get(f"/v1/credentials/{cid}/verify")
    print(f"3. GET  .../verify                 → {r.status_code}  valid={r.json()['valid']}")

    # ── Step 4: unverify, re-approve (anchor reused) ────────────────
    client.post(f"/v1/issuer/credentials/{cid}/unverify", headers=issuer)
    r = client.post(f"/v1/issuer/credentials/{cid}/approve", headers=issuer)
    print(f"4. POST .../approve (again)        → {r.status_code}  {r.json()['message']}")

    # ── Step 5: seeded quiz ─────────────────────────────────────────
    r = client.get("/v1/rng-seed", params={"max": 1_000_000}, headers=candidate)
    seed = r.json()["seed"]
    r = client.get("/v1/quizzes/1/questions", params={"seed": seed})
    order = [q["id"] for q in r.json()["questions"]]
    print(f"5. GET  /v1/rng-seed + questions   → seed={seed}  order={order}")

    r = client.post(
        "/v1/quizzes/1/attempts",
        json={"answer": "msg.sender is the immediate caller ...", "seed": seed},
        headers=candidate,
    )
    attempt = r.json()
    print(f"6. POST /v1/quizzes/1/attempts     → {r.status_code}  {attempt['message']}")
    if attempt["vc_json"]:
        vc = json.loads(attempt["vc_json"])["vc"]
        print(f"   Skill Pass subject: {vc['credentialSubject']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
