"""Tests for post-session feedback: heuristic, OpenAI client, fallback.

HOW: The OpenAI generator runs against httpx.MockTransport handlers that
return canned chat-completion payloads or error statuses.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from recitation_coach.feedback.base import (
    FeedbackAuthError,
    FeedbackGenerator,
    FeedbackQuotaError,
    FeedbackResult,
    FeedbackUnavailableError,
    Mistake,
    MistakeKind,
    RecitationValidationError,
)
from recitation_coach.feedback.heuristic import (
    MAX_MISTAKES,
    HeuristicFeedbackGenerator,
    encouragement_for,
    heuristic_feedback,
    suggestions_for,
)
from recitation_coach.feedback.openai_coach import OpenAIFeedbackGenerator, parse_feedback
from recitation_coach.feedback.service import evaluate_recitation

VERSE = "For God so loved the world."

GOOD_REPLY = {
    "accuracy": 83.4,
    "mistakes": [
        {"type": "missing", "word": "the", "position": 4},
        {"type": "typo", "word": "x", "position": 1},
    ],
    "encouragement": "Well done!",
    "suggestions": "Watch the little words.",
}


def _chat_response(payload) -> httpx.Response:
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def _generator(handler) -> OpenAIFeedbackGenerator:
    return OpenAIFeedbackGenerator(
        api_key="sk-test",
        base_url="https://api.openai.test/v1",
        transport=httpx.MockTransport(handler),
    )


# ---------------------------------------------------------------------------
# Heuristic
# ---------------------------------------------------------------------------


class TestEncouragement:
    @pytest.mark.parametrize("accuracy", [90, 95, 100])
    def test_excellent_bucket(self, accuracy):
        assert encouragement_for(accuracy).startswith("Excellent work!")

    @pytest.mark.parametrize("accuracy", [70, 89])
    def test_great_bucket(self, accuracy):
        assert encouragement_for(accuracy).startswith("Great job!")

    @pytest.mark.parametrize("accuracy", [50, 69])
    def test_good_bucket(self, accuracy):
        assert encouragement_for(accuracy).startswith("Good effort!")

    @pytest.mark.parametrize("accuracy", [0, 49])
    def test_lowest_bucket(self, accuracy):
        assert encouragement_for(accuracy).startswith("Keep practicing!")


class TestSuggestions:
    def test_no_mistakes(self):
        assert "doing great" in suggestions_for([])

    def test_names_first_three(self):
        mistakes = [Mistake(MistakeKind.MISSING, w, i) for i, w in enumerate("abcd")]
        text = suggestions_for(mistakes)
        assert "a, b, c." in text
        assert "d" not in text.split(":")[1].split(".")[0]


class TestHeuristicFeedback:
    def test_perfect(self):
        result = heuristic_feedback(VERSE, "for god so loved the world")
        assert result.accuracy == 100
        assert result.mistakes == []
        assert result.source == "heuristic"

    def test_omission(self):
        result = heuristic_feedback(VERSE, "for god so loved world")
        assert result.accuracy == 83
        assert result.mistakes == [Mistake(MistakeKind.MISSING, "the", 4)]
        assert result.encouragement.startswith("Great job!")

    def test_substitution_is_wrong(self):
        result = heuristic_feedback(VERSE, "for god so liked the world")
        assert result.mistakes == [Mistake(MistakeKind.WRONG, "liked", 3)]

    def test_filler_is_added(self):
        result = heuristic_feedback(VERSE, "for um god so loved the world")
        assert result.mistakes == [Mistake(MistakeKind.ADDED, "um", 1)]
        assert result.accuracy == 100

    def test_empty_reference_does_not_divide_by_zero(self):
        result = heuristic_feedback("", "anything at all")
        assert result.accuracy == 0
        assert result.encouragement.startswith("Keep practicing!")

    def test_accuracy_clamped_with_extra_words(self):
        result = heuristic_feedback("amen", "amen amen amen amen")
        assert 0 <= result.accuracy <= 100

    def test_mistakes_capped(self):
        result = heuristic_feedback(VERSE, " ".join(["nope"] * 40))
        assert len(result.mistakes) == MAX_MISTAKES

    def test_generator_wrapper(self):
        result = asyncio.run(HeuristicFeedbackGenerator().generate(VERSE, "for god"))
        assert result.source == "heuristic"


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class TestParseFeedback:
    def test_normalizes(self):
        result = parse_feedback(GOOD_REPLY)
        assert result.accuracy == 83
        assert result.mistakes == [Mistake(MistakeKind.MISSING, "the", 4)]
        assert result.source == "openai"

    def test_clamps_accuracy(self):
        reply = dict(GOOD_REPLY, accuracy=140)
        assert parse_feedback(reply).accuracy == 100
        reply = dict(GOOD_REPLY, accuracy=-3)
        assert parse_feedback(reply).accuracy == 0

    def test_schema_violation(self):
        with pytest.raises(FeedbackUnavailableError):
            parse_feedback({"accuracy": "high"})

    @pytest.mark.parametrize("accuracy", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_accuracy(self, accuracy):
        with pytest.raises(FeedbackUnavailableError, match="non-finite accuracy"):
            parse_feedback(dict(GOOD_REPLY, accuracy=accuracy))

    def test_non_finite_position(self):
        reply = dict(GOOD_REPLY, mistakes=[{"type": "added", "word": "x", "position": float("inf")}])
        with pytest.raises(FeedbackUnavailableError, match="non-finite position"):
            parse_feedback(reply)


class TestOpenAIFeedbackGenerator:
    def test_success_sends_expected_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return _chat_response(GOOD_REPLY)

        result = asyncio.run(_generator(handler).generate(VERSE, "for god"))
        assert result.accuracy == 83
        assert seen["url"] == "https://api.openai.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["messages"][0]["role"] == "system"
        assert VERSE in seen["body"]["messages"][1]["content"]

    def test_quota_status(self):
        gen = _generator(lambda r: httpx.Response(429, json={"error": "rate limited"}))
        with pytest.raises(FeedbackQuotaError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_quota_message(self):
        gen = _generator(lambda r: httpx.Response(403, text="You exceeded your current quota"))
        with pytest.raises(FeedbackQuotaError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_invalid_key(self):
        gen = _generator(lambda r: httpx.Response(401, json={"error": "bad key"}))
        with pytest.raises(FeedbackAuthError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        gen = OpenAIFeedbackGenerator()
        assert not gen.configured
        with pytest.raises(FeedbackAuthError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_server_error(self):
        gen = _generator(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(FeedbackUnavailableError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_non_json_content(self):
        gen = _generator(lambda r: _chat_response("not json"))
        with pytest.raises(FeedbackUnavailableError):
            asyncio.run(gen.generate(VERSE, "for god"))

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(FeedbackUnavailableError):
            asyncio.run(_generator(handler).generate(VERSE, "for god"))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class _FailingGenerator(FeedbackGenerator):
    name = "failing"

    def __init__(self, error):
        self.error = error

    async def generate(self, reference_body, transcript):
        raise self.error


class _FixedGenerator(FeedbackGenerator):
    async def generate(self, reference_body, transcript):
        return FeedbackResult(accuracy=77, source="openai")


class TestEvaluateRecitation:
    def test_uses_generator(self):
        result = asyncio.run(evaluate_recitation(VERSE, "for god", _FixedGenerator()))
        assert result.accuracy == 77
        assert result.warning is None

    def test_quota_falls_back(self):
        gen = _FailingGenerator(FeedbackQuotaError("429"))
        result = asyncio.run(evaluate_recitation(VERSE, "for god so loved world", gen))
        assert result.source == "heuristic"
        assert result.code == "QUOTA_EXCEEDED"
        assert "quota" in result.warning
        assert result.accuracy == 83

    def test_invalid_key_falls_back(self):
        gen = _FailingGenerator(FeedbackAuthError("401"))
        result = asyncio.run(evaluate_recitation(VERSE, "for god", gen))
        assert result.code == "INVALID_KEY"

    def test_unavailable_falls_back(self):
        gen = _FailingGenerator(FeedbackUnavailableError("down"))
        result = asyncio.run(evaluate_recitation(VERSE, "for god", gen))
        assert result.code == "UNAVAILABLE"

    @pytest.mark.parametrize(
        "content",
        [
            '{"accuracy": NaN, "mistakes": [], "encouragement": "e", "suggestions": "s"}',
            '{"accuracy": 1e400, "mistakes": [], "encouragement": "e", "suggestions": "s"}',
            '{"accuracy": 90, "mistakes": [{"type": "added", "word": "x", "position": 1e400}], '
            '"encouragement": "e", "suggestions": "s"}',
        ],
    )
    def test_non_finite_reply_falls_back(self, content):
        gen = _generator(lambda request: _chat_response(content))
        result = asyncio.run(evaluate_recitation(VERSE, "for god so loved the world", gen))
        assert result.source == "heuristic"
        assert result.code == "UNAVAILABLE"
        assert result.accuracy == 100

    @pytest.mark.parametrize("reference,transcript", [("", "for god"), (VERSE, "   ")])
    def test_blank_inputs_rejected(self, reference, transcript):
        with pytest.raises(RecitationValidationError):
            asyncio.run(evaluate_recitation(reference, transcript, _FixedGenerator()))

    def test_default_is_heuristic_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = asyncio.run(evaluate_recitation(VERSE, "for god so loved the world"))
        assert result.source == "heuristic"
        assert result.code is None
