"""Feedback from an OpenAI chat-completion model, called over httpx.

WHY: A language model can explain slips in context and phrase its
encouragement naturally, which the heuristic cannot.

HOW: One POST to {OPENAI_BASE_URL}/chat/completions with a JSON response
format. The reply is parsed, validated against FEEDBACK_SCHEMA with
jsonschema, and normalized into a FeedbackResult. HTTP and parsing
failures map onto the feedback error taxonomy so the service layer can
fall back.

RULES:
- 429, or a body mentioning quota, raises FeedbackQuotaError
- 401 or a missing key raises FeedbackAuthError
- Any other failure (network, status, bad JSON, schema) raises
  FeedbackUnavailableError
- Accuracy is rounded and clamped to [0, 100]; mistakes with an unknown
  type are dropped
"""

from __future__ import annotations

import json
import logging
import math

import httpx
import jsonschema

from recitation_coach.config import (
    OPENAI_BASE_URL,
    OPENAI_MODEL,
    OPENAI_TEMPERATURE,
    load_openai_key,
)
from recitation_coach.feedback.base import (
    FeedbackAuthError,
    FeedbackGenerator,
    FeedbackQuotaError,
    FeedbackResult,
    FeedbackUnavailableError,
    Mistake,
    MistakeKind,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful Bible memorization coach. Always respond with valid JSON."
)

USER_PROMPT_TEMPLATE = """Compare the user's recitation with the correct Bible verse and provide feedback.

Correct Verse: "{reference}"

User's Recitation: "{transcript}"

Please provide:
1. An accuracy score (0-100)
2. A list of specific mistakes (words that are wrong, missing, or added)
3. An encouraging message
4. Suggestions for improvement

Format your response as JSON with these fields:
- accuracy: number (0-100)
- mistakes: array of objects with {{type: "missing"|"wrong"|"added", word: string, position: number}}
- encouragement: string
- suggestions: string

Be gentle and encouraging. Focus on what they got right, then help them with what needs work."""

FEEDBACK_SCHEMA = {
    "type": "object",
    "required": ["accuracy", "mistakes", "encouragement", "suggestions"],
    "properties": {
        "accuracy": {"type": "number"},
        "mistakes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["type", "word"],
                "properties": {
                    "type": {"type": "string"},
                    "word": {"type": "string"},
                    "position": {"type": "number"},
                },
            },
        },
        "encouragement": {"type": "string"},
        "suggestions": {"type": "string"},
    },
}

_KINDS = {kind.value: kind for kind in MistakeKind}


def _finite_int(value, name: str) -> int:
    """Round a reply number half up, rejecting NaN and infinities."""
    number = float(value)
    if not math.isfinite(number):
        raise FeedbackUnavailableError(f"Model reply has a non-finite {name}: {value!r}")
    return int(math.floor(number + 0.5))


def parse_feedback(payload: dict) -> FeedbackResult:
    """Validate and normalize a model reply.

    Raises:
        FeedbackUnavailableError: If the reply does not match FEEDBACK_SCHEMA.
    """
    try:
        jsonschema.validate(payload, FEEDBACK_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise FeedbackUnavailableError(f"Model reply failed validation: {exc.message}") from exc

    accuracy = _finite_int(payload["accuracy"], "accuracy")
    mistakes = []
    for item in payload["mistakes"]:
        kind = _KINDS.get(item["type"].strip().lower())
        if kind is None:
            logger.debug("Dropping mistake with unknown type %r", item["type"])
            continue
        position = _finite_int(item.get("position", 0), "position")
        mistakes.append(Mistake(kind, item["word"], position))

    return FeedbackResult(
        accuracy=max(0, min(100, accuracy)),
        mistakes=mistakes,
        encouragement=payload["encouragement"],
        suggestions=payload["suggestions"],
        source="openai",
    )


class OpenAIFeedbackGenerator(FeedbackGenerator):
    """Feedback from an OpenAI-compatible chat-completions endpoint.

    Args:
        api_key: API key. Defaults to OPENAI_API_KEY from the environment.
        base_url: Override for OPENAI_BASE_URL.
        model: Override for OPENAI_MODEL.
        temperature: Override for OPENAI_TEMPERATURE.
        transport: httpx transport (tests).
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if api_key is None:
            try:
                api_key = load_openai_key()
            except ValueError:
                api_key = None
        self._api_key = api_key
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._model = model or OPENAI_MODEL
        self._temperature = OPENAI_TEMPERATURE if temperature is None else temperature
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def generate(self, reference_body: str, transcript: str) -> FeedbackResult:
        if not self._api_key:
            raise FeedbackAuthError("OPENAI_API_KEY not configured")

        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT_TEMPLATE.format(
                        reference=reference_body, transcript=transcript
                    ),
                },
            ],
            "temperature": self._temperature,
            "response_format": {"type": "json_object"},
        }

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=httpx.Timeout(60.0, connect=10.0),
                transport=self._transport,
            ) as client:
                resp = await client.post("/chat/completions", json=body)
        except httpx.HTTPError as exc:
            raise FeedbackUnavailableError(f"OpenAI request failed: {exc}") from exc

        if resp.status_code != 200:
            _raise_for_status(resp)

        try:
            content = resp.json()["choices"][0]["message"]["content"]
            payload = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise FeedbackUnavailableError("No usable response from OpenAI") from exc

        return parse_feedback(payload)


def _raise_for_status(resp: httpx.Response) -> None:
    text = resp.text
    lowered = text.lower()
    logger.error("OpenAI error %d: %s", resp.status_code, text[:500])
    if resp.status_code == 429 or "quota" in lowered or "exceeded" in lowered:
        raise FeedbackQuotaError(f"OpenAI quota exceeded ({resp.status_code})")
    if resp.status_code == 401 or "invalid api key" in lowered:
        raise FeedbackAuthError("Invalid OpenAI API key")
    raise FeedbackUnavailableError(f"OpenAI error {resp.status_code}")
