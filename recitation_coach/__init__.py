"""Recitation Coach: live scripture memorization practice.

WHY: Memorizing a verse means reciting it over and over while someone
checks each word. Speech recognizers emit a noisy, restarting stream of
partial results, so naive diffing against the verse flickers and
double-counts. This package aligns that stream against the reference text
as it grows, resets after long pauses, and recognizes when the reciter
reaches the end of the verse.

HOW: Four stages around one session object:
  core      - tokenizer, windowed aligner, silence monitor, completion
              detector, and the RecitationSession that sequences them
  sources   - recognition source adapters and the async live runner
  scripture - reference text lookup (API.Bible with a free fallback)
  feedback  - post-recitation evaluation (LLM coach with a local fallback)

RULES:
- The core never performs I/O; clients and sources live at the edges
- All session mutation goes through RecitationSession methods
- The CLI, the HTTP API, and the tests drive the same session class
"""

__version__ = "0.1.0"
