from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from vcanchor.services.errors import GradingUnavailable
from vcanchor.services.grader import SYSTEM_PROMPT, OpenAIGrader, check_score, parse_score


def _grader(handler) -> OpenAIGrader:
    return OpenAIGrader(
        api_key="sk-test",
        api_base="https://grader.example/v1/",
        model="gpt-4o",
        transport=httpx.MockTransport(handler),
    )


def _reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.mark.parametrize(
    ("reply", "score"),
    [("85", 85), ("Score: 70", 70), ("0", 0), ("100\n", 100)],
)
def test_parse_score(reply: str, score: int) -> None:
    assert parse_score(reply) == score


@pytest.mark.parametrize("reply", ["excellent", "", "101", "-5"])
def test_parse_score_rejects(reply: str) -> None:
    with pytest.raises(GradingUnavailable):
        parse_score(reply)


def test_grade_posts_chat_completion() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return _reply("77")

    score = asyncio.run(_grader(handler).grade("my answer", "Solidity Basics"))

    assert score == 77
    assert seen["url"] == "https://grader.example/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "gpt-4o"
    assert seen["body"]["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert "Solidity Basics" in seen["body"]["messages"][1]["content"]
    assert "my answer" in seen["body"]["messages"][1]["content"]


def test_grade_http_error() -> None:
    grader = _grader(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(GradingUnavailable, match="HTTP 500"):
        asyncio.run(grader.grade("a", "t"))


def test_grade_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GradingUnavailable, match="unreachable"):
        asyncio.run(_grader(handler).grade("a", "t"))


def test_grade_malformed_body() -> None:
    grader = _grader(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(GradingUnavailable, match="missing message content"):
        asyncio.run(grader.grade("a", "t"))


def test_grade_out_of_range_reply_is_not_clamped() -> None:
    grader = _grader(lambda request: _reply("150"))
    with pytest.raises(GradingUnavailable, match="outside 0-100"):
        asyncio.run(grader.grade("a", "t"))


@pytest.mark.parametrize("score", [0, 70, 100])
def test_check_score_accepts_range(score: int) -> None:
    assert check_score(score) == score


@pytest.mark.parametrize("score", [-1, 101, 99.5, "80", False])
def test_check_score_rejects(score) -> None:
    with pytest.raises(GradingUnavailable):
        check_score(score)
