"""Live alignment engine.

WHY: The core package holds everything that turns a stream of recognizer
results into word-level feedback: tokenizing, aligning, detecting the end
of a verse, and watching for long pauses. It has no network or audio
dependencies so every rule can be tested with plain strings and a fake
clock.

HOW: models.py defines the shared value types, tokenizer.py and
aligner.py compute live feedback, completion.py and silence.py hold the
two small state machines, alerts.py abstracts the beep/chime, and
session.py ties them together into RecitationSession.

RULES:
- No I/O here beyond the alert sink handed in by the caller
- Time is always passed in as milliseconds from an injected clock
- Alignment is pure: same tokens in, same result out
"""
