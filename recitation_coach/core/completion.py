"""Verse-end detection, independent of overall accuracy.

WHY: A reciter who stumbles through the middle of a verse but recovers the
ending has still finished the verse. Tying "done" to the aligner's
accuracy would withhold the success cue from exactly the users who most
need encouragement.

HOW: After every live update, look at the last few live words. If the
final reference word is among them, or the last two reference words
appear back to back among them, the verse is complete. A latch makes the
detector fire once per session until it is explicitly reset.

RULES:
- Window: the last RECENT_LIVE_WINDOW (5) live tokens
- Trigger A: last reference token in the window
- Trigger B: second-last reference token immediately followed by the last
  reference token inside the window
- Empty reference or empty live text never triggers
- Once fired, check() returns False until reset()
"""

from __future__ import annotations

from typing import Sequence

from recitation_coach.config import RECENT_LIVE_WINDOW


def reached_verse_end(
    reference_tokens: Sequence[str],
    live_tokens: Sequence[str],
) -> bool:
    """Return True if the live tokens end on the reference passage's ending."""
    if not reference_tokens or not live_tokens:
        return False

    last_ref = reference_tokens[-1]
    second_last_ref = reference_tokens[-2] if len(reference_tokens) > 1 else ""
    recent = list(live_tokens[-RECENT_LIVE_WINDOW:])

    if last_ref in recent:
        return True

    for k in range(len(recent) - 1):
        if recent[k] == second_last_ref and recent[k + 1] == last_ref:
            return True
    return False


class CompletionDetector:
    """Latching wrapper around reached_verse_end()."""

    def __init__(self) -> None:
        self.signaled = False

    def check(
        self,
        reference_tokens: Sequence[str],
        live_tokens: Sequence[str],
    ) -> bool:
        """Return True exactly once, on the update that completes the verse."""
        if self.signaled:
            return False
        if reached_verse_end(reference_tokens, live_tokens):
            self.signaled = True
            return True
        return False

    def reset(self) -> None:
        self.signaled = False
