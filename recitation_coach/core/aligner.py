"""Windowed sequential alignment of live words against a reference.

WHY: A reciter's transcript is re-aligned on every fragment, sometimes
several times a second. Full edit distance would be O(n*m) per update and
would happily re-pair words far from where the reciter actually is. A
forward walk with a small lookahead is O(n*k), keeps the alignment anchored
to the reciter's current position, and tolerates a filler word or a
skipped word without losing its place.

HOW: Walk the reference with cursor ``i`` and the live words with cursor
``user_index``. For each reference word, search the next LOOKAHEAD_WINDOW
live words for an exact match (nearest first). Skipped-over live words are
marked incorrect unless they equal one of the next few reference words, in
which case they are left for that later position. Unmatched reference
words become missing (or pending when the reciter has simply not got there
yet). Leftover live words are incorrect.

RULES:
- Lookahead: live window [user_index, user_index + 3)
- Future reference window: (i, i + 4), i.e. the next three reference words
- Nearest match wins, never best match (favours forward progress)
- Pending only when live words ran out and the reciter is more than one
  word behind the current reference position
- So the words just past the reciter read as missing and only the far
  ones as pending: ["for"] against "for god so loved the world" gives
  god and so missing, then loved, the and world pending
- accuracy = round(100 * correct / len(reference)), half rounds up,
  0 for an empty reference
- Output truncated to max(2 * len(reference), len(live)) + 2 entries
"""

from __future__ import annotations

import math
from typing import Sequence

from recitation_coach.config import FUTURE_REFERENCE_WINDOW, LOOKAHEAD_WINDOW
from recitation_coach.core.models import AlignmentResult, AnnotatedWord, WordStatus


def percentage(part: int, whole: int) -> int:
    """Integer percentage of ``part`` in ``whole``, rounding half up.

    Returns 0 when ``whole`` is zero and clamps the result to [0, 100].
    """
    if whole <= 0:
        return 0
    value = int(math.floor(100.0 * part / whole + 0.5))
    return max(0, min(100, value))


def _matches_future_reference(
    word: str,
    reference: Sequence[str],
    i: int,
) -> bool:
    """True if ``word`` equals one of the reference words after position ``i``."""
    end = min(i + 1 + FUTURE_REFERENCE_WINDOW, len(reference))
    for v in range(i + 1, end):
        if reference[v] == word:
            return True
    return False


def align(
    reference_tokens: Sequence[str],
    live_tokens: Sequence[str],
) -> AlignmentResult:
    """Align live tokens against reference tokens.

    Args:
        reference_tokens: Tokenized reference passage.
        live_tokens: Tokenized transcript so far (accumulated + interim).

    Returns:
        AlignmentResult with annotated words in display order and the
        percentage of reference words matched.
    """
    words: list[AnnotatedWord] = []
    correct = 0
    user_index = 0
    ref_len = len(reference_tokens)
    live_len = len(live_tokens)

    for i, ref_word in enumerate(reference_tokens):
        matched_at = -1
        search_end = min(user_index + LOOKAHEAD_WINDOW, live_len)
        for j in range(user_index, search_end):
            if live_tokens[j] == ref_word:
                matched_at = j
                break

        if matched_at >= 0:
            for k in range(user_index, matched_at):
                skipped = live_tokens[k]
                if not _matches_future_reference(skipped, reference_tokens, i):
                    words.append(AnnotatedWord(skipped, WordStatus.INCORRECT))
            words.append(AnnotatedWord(ref_word, WordStatus.CORRECT))
            correct += 1
            user_index = matched_at + 1
        elif user_index < live_len:
            current = live_tokens[user_index]
            words.append(AnnotatedWord(ref_word, WordStatus.MISSING))
            if not _matches_future_reference(current, reference_tokens, i):
                words.append(AnnotatedWord(current, WordStatus.INCORRECT))
                user_index += 1
            # otherwise the live word waits for the later reference position
        else:
            # Live words exhausted: behind pace means "still coming"
            if live_len > 0 and live_len < i - 1:
                words.append(AnnotatedWord(ref_word, WordStatus.PENDING))
            else:
                words.append(AnnotatedWord(ref_word, WordStatus.MISSING))

    while user_index < live_len:
        words.append(AnnotatedWord(live_tokens[user_index], WordStatus.INCORRECT))
        user_index += 1

    limit = max(ref_len * 2, live_len) + 2
    return AlignmentResult(
        words=words[:limit],
        accuracy=percentage(correct, ref_len),
        correct_count=correct,
    )
