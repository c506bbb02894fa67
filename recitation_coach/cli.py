"""Command-line interface for the recitation coach.

WHY: The quickest way to practise (and to try the engine) is a terminal:
fetch a verse, type what you recite line by line, watch the live marks,
hear a bell when a long pause resets the attempt, and get feedback at the
end.

HOW: argparse subcommands:
  practice      live session over typed stdin lines
  feedback      one-shot feedback on a reference text and a transcript
  translations  list translations available for lookup
  serve         run the HTTP API with uvicorn
Async work runs via asyncio.run(). Status messages go to stderr; results
(live lines, feedback, translation list) go to stdout.

RULES:
- Passage given as a verse id ("JHN.3.16"), or --text with --citation
- --pause-threshold defaults to the saved preference
- Live marks: plain = correct, +word = extra, -word = missing, ~word = pending
- Exit code 1 on bad input or lookup failure, 130 on Ctrl-C
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

from recitation_coach.config import MAX_PAUSE_THRESHOLD_MS, MIN_PAUSE_THRESHOLD_MS
from recitation_coach.core.alerts import TerminalBellAlertSink
from recitation_coach.core.models import AlertCue, AnnotatedWord, ReferenceText, WordStatus
from recitation_coach.core.session import RecitationSession
from recitation_coach.feedback.base import FeedbackResult, RecitationValidationError
from recitation_coach.feedback.service import evaluate_recitation
from recitation_coach.preferences import PreferencesStore
from recitation_coach.scripture.provider import (
    PassageId,
    PassageValidationError,
    ScriptureProvider,
)
from recitation_coach.sources.base import SourceError, SourceRetriesExhaustedError
from recitation_coach.sources.live import practice
from recitation_coach.sources.scripted import LineInputSource

_MARKS = {
    WordStatus.CORRECT: "",
    WordStatus.INCORRECT: "+",
    WordStatus.MISSING: "-",
    WordStatus.PENDING: "~",
}


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def render_words(words: Sequence[AnnotatedWord]) -> str:
    """Render annotated words as one line using the live marks."""
    return " ".join(_MARKS[w.status] + w.text for w in words)


class _ConsoleAlertSink(TerminalBellAlertSink):
    """Rings the bell and says why."""

    def play(self, cue: AlertCue) -> None:
        super().play(cue)
        if cue is AlertCue.PAUSE_RESET:
            _status("Long pause: starting the match over from the beginning.")
        else:
            _status("Verse complete!")


def _print_live(session: RecitationSession) -> None:
    live = session.live
    if live is None:
        return
    print("[{:3d}%] {}".format(live.accuracy, render_words(live.words)), flush=True)


def _print_feedback(result: FeedbackResult) -> None:
    print("Accuracy: {}%".format(result.accuracy))
    if result.mistakes:
        print("Mistakes:")
        for mistake in result.mistakes:
            print("  {:<8} {} (word {})".format(mistake.kind.value, mistake.word, mistake.position + 1))
    print(result.encouragement)
    print(result.suggestions)
    if result.warning:
        _status("Note: {}".format(result.warning))


async def _resolve_reference(args: argparse.Namespace, prefs: PreferencesStore) -> ReferenceText:
    if args.text:
        return ReferenceText(citation=args.citation or "Custom passage", body=args.text.strip())
    if not args.passage:
        raise PassageValidationError("Give a verse id like JHN.3.16, or --text")

    bible_id = args.bible_id or prefs.load().default_translation
    passage_id = PassageId.parse(args.passage, bible_id)
    _status("Fetching {}...".format(passage_id.citation))
    reference = await ScriptureProvider().get_passage(passage_id)
    if reference is None:
        raise LookupError("Could not fetch {}".format(passage_id.citation))
    return reference


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _run_practice(args: argparse.Namespace) -> int:
    prefs = PreferencesStore(args.preferences) if args.preferences else PreferencesStore()
    try:
        reference = await _resolve_reference(args, prefs)
    except (PassageValidationError, LookupError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    if args.pause_threshold:
        prefs.set_pause_threshold(args.pause_threshold)
    threshold = args.pause_threshold or prefs.load().pause_threshold_ms
    try:
        session = RecitationSession(reference, threshold, alerts=_ConsoleAlertSink())
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    _status("")
    _status("{} ({})".format(reference.citation, reference.translation or "custom"))
    if args.show_text:
        _status(reference.body)
    _status("")
    _status("Recite one phrase per line. Pause {:.1f}s to start over. Ctrl-D to finish.".format(
        threshold / 1000.0
    ))

    try:
        snapshot = await practice(session, LineInputSource(), on_update=_print_live)
    except (SourceError, SourceRetriesExhaustedError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    _status("")
    if snapshot.completed:
        _status("Completed at {}% accuracy.".format(snapshot.completion_accuracy))
        if args.mark_memorized and prefs.add_memorized(reference.citation):
            _status("Marked {} as memorized.".format(reference.citation))
    if snapshot.reset_count:
        _status("Automatic resets: {}".format(snapshot.reset_count))

    if not snapshot.transcript or args.no_feedback:
        return 0

    result = await evaluate_recitation(reference.body, snapshot.transcript)
    _print_feedback(result)
    return 0


def _read_text(value: Optional[str], path: Optional[str], name: str) -> str:
    if path:
        return Path(path).read_text(encoding="utf-8")
    if value is not None:
        return value
    raise RecitationValidationError("{} is required".format(name))


async def _run_feedback(args: argparse.Namespace) -> int:
    try:
        reference = _read_text(args.reference, args.reference_file, "reference text")
        transcript = _read_text(args.transcript, args.transcript_file, "transcript")
        result = await evaluate_recitation(reference, transcript)
    except (RecitationValidationError, OSError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(asdict(result), indent=2))
    else:
        _print_feedback(result)
    return 0


async def _run_translations(args: argparse.Namespace) -> int:
    catalog = await ScriptureProvider().list_translations()
    if catalog.warning:
        _status("Note: {}".format(catalog.warning))
    for t in catalog.translations:
        if args.english and not t.is_english:
            continue
        print("{:<10} {:<45} {:<12} {}".format(t.abbreviation, t.name, t.language, t.id))
    _status("{} translations ({} English)".format(catalog.total, catalog.english_count))
    return 0


def _pause_threshold(value: str) -> int:
    number = int(value)
    if not MIN_PAUSE_THRESHOLD_MS <= number <= MAX_PAUSE_THRESHOLD_MS:
        raise argparse.ArgumentTypeError(
            "must be between {} and {} ms".format(MIN_PAUSE_THRESHOLD_MS, MAX_PAUSE_THRESHOLD_MS)
        )
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="recitation_coach",
        description="Practise reciting memorized passages with live word-by-word feedback.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show informational log messages.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("practice", help="Recite a passage with live feedback.")
    p.add_argument(
        "passage",
        nargs="?",
        default=None,
        help="Verse id, e.g. JHN.3.16 (omit when using --text).",
    )
    p.add_argument("--bible-id", default=None, help="API.Bible translation id (default: saved preference).")
    p.add_argument("--text", default=None, help="Recite this text instead of fetching a passage.")
    p.add_argument("--citation", default=None, help="Display name for --text.")
    p.add_argument(
        "--pause-threshold",
        type=_pause_threshold,
        default=None,
        help="Silence (ms) before starting over, {}-{} (saved as the new default).".format(
            MIN_PAUSE_THRESHOLD_MS, MAX_PAUSE_THRESHOLD_MS
        ),
    )
    p.add_argument("--show-text", action="store_true", help="Print the passage before starting.")
    p.add_argument("--mark-memorized", action="store_true", help="Save the passage as memorized on completion.")
    p.add_argument("--no-feedback", action="store_true", help="Skip feedback at the end.")
    p.add_argument("--preferences", default=None, help="Preferences file (default: ~/.recitation_coach/preferences.json).")
    p.set_defaults(handler=_run_practice)

    f = sub.add_parser("feedback", help="Get feedback on a finished recitation.")
    f.add_argument("--reference", default=None, help="Reference text.")
    f.add_argument("--reference-file", default=None, help="File holding the reference text.")
    f.add_argument("--transcript", default=None, help="What was recited.")
    f.add_argument("--transcript-file", default=None, help="File holding what was recited.")
    f.add_argument("--json", action="store_true", help="Print the result as JSON.")
    f.set_defaults(handler=_run_feedback)

    t = sub.add_parser("translations", help="List available translations.")
    t.add_argument("--english", action="store_true", help="Only English translations.")
    t.set_defaults(handler=_run_translations)

    s = sub.add_parser("serve", help="Run the HTTP API.")
    s.add_argument("--host", default="0.0.0.0", help="Bind address (default: %(default)s).")
    s.add_argument("--port", type=int, default=8000, help="Port (default: %(default)s).")
    s.set_defaults(handler=None)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m recitation_coach`` and the console script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from recitation_coach.server.app import run_api

        run_api(host=args.host, port=args.port)
        return

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        code = asyncio.run(args.handler(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    if code:
        sys.exit(code)
