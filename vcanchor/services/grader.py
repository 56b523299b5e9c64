"""Free-text answer grading.

OpenAIGrader calls an OpenAI-compatible ``/chat/completions`` endpoint and
expects a bare integer 0-100 back.  Anything else (no integer, an integer
out of range, a transport or HTTP error) raises GradingUnavailable; the
score is never clamped or guessed.

FallbackGrader exists for local dev without an API key and returns a
pseudo-random score.  It is only selected when GRADER_API_KEY is unset.
"""

from __future__ import annotations

import logging
import re
import secrets
from typing import Protocol

import httpx

from vcanchor.core.config import SETTINGS
from vcanchor.models.assessment import MAX_SCORE
from vcanchor.services.errors import GradingUnavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a strict exam grader. Respond ONLY with an integer 0-100."

_INT_RE = re.compile(r"-?\d+")


class Grader(Protocol):
    async def grade(self, answer: str, quiz_title: str) -> int: ...


def check_score(score: object) -> int:
    """``score`` when it is an integer in 0..MAX_SCORE, else GradingUnavailable."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise GradingUnavailable(f"grader returned a non-integer score: {score!r}")
    if not 0 <= score <= MAX_SCORE:
        raise GradingUnavailable(f"grader score {score} outside 0-{MAX_SCORE}")
    return score


def parse_score(reply: str) -> int:
    match = _INT_RE.search(reply)
    if match is None:
        raise GradingUnavailable(f"grader reply has no score: {reply[:80]!r}")
    return check_score(int(match.group()))


class OpenAIGrader:
    def __init__(
        self,
        *,
        api_key: str,
        api_base: str,
        model: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = api_base.rstrip("/") + "/chat/completions"
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def grade(self, answer: str, quiz_title: str) -> int:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Quiz topic: {quiz_title}\n"
                        f"Candidate answer: {answer}\n"
                        "Grade (0-100):"
                    ),
                },
            ],
            "temperature": 0,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise GradingUnavailable(
                f"grader returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GradingUnavailable(f"grader unreachable: {exc}") from exc
        except ValueError as exc:
            raise GradingUnavailable("grader returned invalid JSON") from exc

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GradingUnavailable("grader response missing message content") from exc

        score = parse_score(str(content))
        logger.info("Answer graded quiz=%r score=%d", quiz_title, score)
        return score


class FallbackGrader:
    async def grade(self, answer: str, quiz_title: str) -> int:
        score = secrets.randbelow(MAX_SCORE + 1)
        logger.warning(
            "No GRADER_API_KEY configured - assigned pseudo-random score %d "
            "for quiz=%r",
            score,
            quiz_title,
        )
        return score


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if SETTINGS.grader_api_key:
    grader: Grader = OpenAIGrader(
        api_key=SETTINGS.grader_api_key,
        api_base=SETTINGS.grader_api_base,
        model=SETTINGS.grader_model,
    )
else:
    grader = FallbackGrader()
