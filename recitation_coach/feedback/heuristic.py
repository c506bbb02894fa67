"""Local feedback built on the live aligner.

WHY: Feedback must still arrive when the language model cannot be
reached. Reusing the live aligner keeps the post-session score consistent
with the colouring the reciter just watched.

HOW: Tokenize both texts, align them, and walk the annotated words:
  - missing or pending reference words become "missing" mistakes
  - a spoken word straight after a missing one replaces that entry with
    a "wrong" mistake (a substitution)
  - any other incorrect spoken word is "added"
Encouragement is bucketed by accuracy; suggestions name the first three
mistake words.

RULES:
- Accuracy comes from align() and is clamped to [0, 100]
- At most MAX_MISTAKES mistakes are reported, in reading order
- Buckets: >= 90, >= 70, >= 50, below 50
"""

from __future__ import annotations

from typing import List, Sequence

from recitation_coach.core.aligner import align
from recitation_coach.core.models import AlignmentResult, WordStatus
from recitation_coach.core.tokenizer import tokenize
from recitation_coach.feedback.base import (
    FeedbackGenerator,
    FeedbackResult,
    Mistake,
    MistakeKind,
)

MAX_MISTAKES = 10
SUGGESTION_WORDS = 3


def encouragement_for(accuracy: int) -> str:
    if accuracy >= 90:
        return "Excellent work! You've memorized this verse very well."
    if accuracy >= 70:
        return "Great job! You're doing well. Keep practicing to perfect it."
    if accuracy >= 50:
        return "Good effort! You're making progress. Review the verse and try again."
    return "Keep practicing! Memorization takes time. Review the verse and try again."


def suggestions_for(mistakes: Sequence[Mistake]) -> str:
    if not mistakes:
        return "You're doing great! Keep practicing to maintain your memory."
    words = ", ".join(m.word for m in mistakes[:SUGGESTION_WORDS])
    return f"Focus on these areas: {words}. Review the verse and practice again."


def mistakes_from_alignment(result: AlignmentResult) -> List[Mistake]:
    """Turn annotated live words into an ordered list of mistakes."""
    mistakes: List[Mistake] = []
    ref_pos = 0
    after_missing = False

    for word in result.words:
        if word.status is WordStatus.CORRECT:
            ref_pos += 1
            after_missing = False
        elif word.status in (WordStatus.MISSING, WordStatus.PENDING):
            mistakes.append(Mistake(MistakeKind.MISSING, word.text, ref_pos))
            ref_pos += 1
            after_missing = True
        else:
            if after_missing:
                replaced = mistakes.pop()
                mistakes.append(Mistake(MistakeKind.WRONG, word.text, replaced.position))
            else:
                mistakes.append(Mistake(MistakeKind.ADDED, word.text, ref_pos))
            after_missing = False

    return mistakes


def heuristic_feedback(reference_body: str, transcript: str) -> FeedbackResult:
    result = align(tokenize(reference_body), tokenize(transcript))
    accuracy = max(0, min(100, result.accuracy))
    mistakes = mistakes_from_alignment(result)[:MAX_MISTAKES]
    return FeedbackResult(
        accuracy=accuracy,
        mistakes=mistakes,
        encouragement=encouragement_for(accuracy),
        suggestions=suggestions_for(mistakes),
        source="heuristic",
    )


class HeuristicFeedbackGenerator(FeedbackGenerator):
    name = "heuristic"

    async def generate(self, reference_body: str, transcript: str) -> FeedbackResult:
        return heuristic_feedback(reference_body, transcript)
