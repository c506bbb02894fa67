"""Upstream speech-recognition sources and the live practice runner.

WHY: The engine never talks to a microphone. Whatever produces text
(a browser recognizer relayed over HTTP, a cloud streaming API, typed
lines in a terminal, a scripted test fixture) is wrapped as a
RecognitionSource and driven by run_recognition().

HOW: base.py defines the source contract, the reconnect policy, and the
source error taxonomy. scripted.py holds the in-process sources. live.py
drives a session from a source and ticks its silence monitor.

RULES:
- Sources push batches of TranscriptFragment; they never touch session state
- Restart and retry decisions live in run_recognition, not in sources
"""
