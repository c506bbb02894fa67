"""Word normalization shared by reference text and live transcripts.

WHY: The aligner compares words by exact equality. A reference verse
written with em-dashes, curly quotes, and capitals must compare equal to a
recognizer's lowercase, unpunctuated output, so both sides go through the
same normalization.

HOW: Replace every character of a fixed punctuation set with a space,
lowercase, split on whitespace runs, and drop empty strings.

RULES:
- Stripped set: . , ! ? ; : — – " ' and the curly quote variants
- Punctuation becomes a word break, so "Love—your" yields two words
- Deterministic and pure; any string, including "", is valid input
"""

from __future__ import annotations

import re

_PUNCTUATION_RE = re.compile(r"[.,!?;:—–\"'“”‘’]")


def tokenize(text: str) -> list[str]:
    """Normalize ``text`` into an ordered list of comparable words.

    Example:
        >>> tokenize("Love—your neighbor, as yourself.")
        ['love', 'your', 'neighbor', 'as', 'yourself']
    """
    if not text:
        return []
    return _PUNCTUATION_RE.sub(" ", text.lower()).split()
