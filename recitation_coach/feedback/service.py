"""Pick a feedback generator and fall back to the heuristic.

RULES:
- Both inputs must be non-blank, else RecitationValidationError
- Any FeedbackGeneratorError yields heuristic feedback carrying the
  error's warning and code
- Without an explicit generator, OpenAI is used when a key is configured
"""

from __future__ import annotations

import logging

from recitation_coach.feedback.base import (
    FeedbackGenerator,
    FeedbackGeneratorError,
    FeedbackResult,
    RecitationValidationError,
)
from recitation_coach.feedback.heuristic import HeuristicFeedbackGenerator, heuristic_feedback
from recitation_coach.feedback.openai_coach import OpenAIFeedbackGenerator

logger = logging.getLogger(__name__)


def default_generator() -> FeedbackGenerator:
    """OpenAI when OPENAI_API_KEY is set, otherwise the heuristic."""
    generator = OpenAIFeedbackGenerator()
    if generator.configured:
        return generator
    logger.info("OPENAI_API_KEY not configured, using heuristic feedback")
    return HeuristicFeedbackGenerator()


async def evaluate_recitation(
    reference_body: str,
    transcript: str,
    generator: FeedbackGenerator | None = None,
) -> FeedbackResult:
    """Compare ``transcript`` with ``reference_body`` and return feedback.

    Raises:
        RecitationValidationError: If either text is blank.
    """
    if not reference_body or not reference_body.strip():
        raise RecitationValidationError("reference text is required")
    if not transcript or not transcript.strip():
        raise RecitationValidationError("recitation transcript is required")

    generator = generator or default_generator()
    try:
        return await generator.generate(reference_body, transcript)
    except FeedbackGeneratorError as exc:
        logger.warning(
            "%s feedback failed (%s): %s; using heuristic",
            generator.name,
            exc.code,
            exc,
        )
        result = heuristic_feedback(reference_body, transcript)
        result.warning = exc.warning
        result.code = exc.code
        return result
