"""Seeded skill quizzes and Skill Pass anchoring.

An attempt moves through

    requested -> seeded -> answered -> graded -> anchored | unanchored

The seed comes from the ledger's randomness source and is remembered per
user for SEED_TTL_SECONDS, so an attempt can only be submitted with a seed
this service actually issued.  Seed plus the stored question list reproduce
the presented order exactly (see seeded_shuffle).

A graded attempt is always persisted, pass or fail, and whether or not the
Skill Pass mint succeeded: a ledger outage must not cost the candidate a
passing score.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime

from vcanchor.core.config import SETTINGS
from vcanchor.core.metrics import QUIZ_ATTEMPTS
from vcanchor.models.assessment import PASS_THRESHOLD, QuizAttempt, QuizQuestion
from vcanchor.repos.stores import Stores
from vcanchor.services import identity_gate, seeded_shuffle, vc_builder
from vcanchor.services.errors import (
    AnchoringFailed,
    AnchoringIndeterminate,
    InvalidSeed,
    NotFound,
    ValidationFailed,
)
from vcanchor.services.grader import Grader, check_score, grader
from vcanchor.services.ledger_client import LedgerClient, Signer, ledger_client
from vcanchor.services.seed_registry import SeedRegistry, seed_registry

logger = logging.getLogger(__name__)

SEED_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")
MAX_ANSWER_LENGTH = 10_000


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    attempt: QuizAttempt
    message: str

    @property
    def anchored(self) -> bool:
        return self.attempt.tx_hash is not None


def _check_seed_format(seed: str | None) -> str:
    if not seed or not SEED_RE.match(seed):
        raise InvalidSeed()
    return seed


async def request_seed(
    user_id: str,
    bound: int,
    *,
    ledger: LedgerClient | None = None,
    seeds: SeedRegistry | None = None,
) -> str:
    """Draw ``randomMod(bound)`` from the ledger and hand it out as a hex seed."""
    ledger = ledger or ledger_client
    seeds = seeds or seed_registry

    value = await asyncio.to_thread(ledger.read_random, bound)
    seed = hex(value)
    await seeds.remember(user_id, seed, SETTINGS.seed_ttl_seconds)
    logger.info("Issued quiz seed=%s user=%s bound=%d", seed, user_id, bound)
    return seed


async def order_questions(stores: Stores, quiz_id: int, seed: str) -> list[QuizQuestion]:
    """Questions of ``quiz_id`` in the order ``seed`` presents them.

    Public and side-effect free, so an auditor can replay any attempt.
    """
    _check_seed_format(seed)
    quiz = await stores.quizzes.get_quiz(quiz_id)
    if quiz is None:
        raise NotFound("Quiz not found.")
    questions = await stores.quizzes.list_questions(quiz_id)
    return seeded_shuffle.shuffle(questions, seed)


async def submit_attempt(
    stores: Stores,
    user_id: str,
    quiz_id: int,
    answer: str,
    seed: str,
    *,
    display_name: str = "",
    grader_: Grader | None = None,
    ledger: LedgerClient | None = None,
    seeds: SeedRegistry | None = None,
    now: datetime | None = None,
) -> AttemptOutcome:
    grader_ = grader_ or grader
    ledger = ledger or ledger_client
    seeds = seeds or seed_registry

    answer = (answer or "").strip()
    if not answer or len(answer) > MAX_ANSWER_LENGTH:
        raise ValidationFailed("Invalid request.")
    seed = _check_seed_format(seed)
    if not await seeds.was_issued(user_id, seed):
        logger.warning("Rejected unissued or expired seed=%s user=%s", seed, user_id)
        raise InvalidSeed()

    # DID before grading: no point spending a grader call on an attempt
    # that could never be anchored.
    subject = await identity_gate.require_user_subject_did(stores.identities, user_id)

    quiz = await stores.quizzes.get_quiz(quiz_id)
    if quiz is None:
        raise NotFound("Quiz not found.")

    candidate = await identity_gate.ensure_candidate(
        stores.identities, user_id, display_name
    )
    # Any Grader, not just the HTTP one, must stay inside 0..MAX_SCORE.
    score = check_score(await grader_.grade(answer, quiz.title))
    created_at = now or datetime.now(UTC)
    passed = score >= PASS_THRESHOLD

    message = f"You scored {score}. {'You passed!' if passed else 'You failed.'}"
    tx_hash: str | None = None
    vc_json: str | None = None
    outcome = "failed"

    if passed:
        doc, digest = vc_builder.build_skill_pass(
            SETTINGS.platform_issuer_did,
            str(subject),
            quiz.title,
            score,
            candidate.display_name or user_id,
            issued_at=created_at,
        )
        try:
            minted = await asyncio.to_thread(
                ledger.mint_credential,
                subject.address,
                digest,
                "",
                Signer(address=subject.address),
            )
        except AnchoringIndeterminate as exc:
            logger.error(
                "Skill Pass anchoring outcome unknown: %s",
                exc.reason,
                extra={"quiz_id": quiz_id, "tx_hash": exc.tx_hash},
            )
            message += f" {exc.message}"
            outcome = "passed_unanchored"
        except AnchoringFailed as exc:
            logger.warning(
                "Skill Pass anchoring failed stage=%s: %s",
                exc.stage,
                exc.reason,
                extra={"quiz_id": quiz_id},
            )
            message += f" {exc.message}"
            outcome = "passed_unanchored"
        else:
            tx_hash = minted.tx_hash
            vc_json = vc_builder.anchored_wrapper(
                doc, token_id=minted.token_id, tx_hash=minted.tx_hash
            )
            message += " Skill Pass anchored on-chain."
            outcome = "passed_anchored"

    attempt = QuizAttempt.new(
        candidate_id=candidate.id,
        quiz_id=quiz_id,
        seed=seed,
        score=score,
        created_at=created_at,
        tx_hash=tx_hash,
        vc_json=vc_json,
    )
    await stores.quizzes.add_attempt(attempt)
    # Seeds are single-use once an attempt has been recorded with them.
    await seeds.consume(user_id, seed)

    QUIZ_ATTEMPTS.labels(outcome=outcome).inc()
    logger.info(
        "Quiz attempt recorded score=%d outcome=%s",
        score,
        outcome,
        extra={"quiz_id": quiz_id, "tx_hash": tx_hash},
    )
    return AttemptOutcome(attempt=attempt, message=message)
