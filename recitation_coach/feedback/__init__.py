"""Post-session feedback on a finished recitation.

WHY: Live word colouring tells the reciter where they are; after a
recording they also want a score, a list of slips, and a kind word. A
language model writes the nicest feedback, but quota limits and bad keys
happen, so a local heuristic is always available.

HOW: base.py defines the result types, the generator contract, and the
error taxonomy. heuristic.py builds feedback from the live aligner.
openai_coach.py asks a chat-completion model. service.py picks one and
falls back.

RULES:
- Feedback never fails just because the model is unavailable
- Accuracy is always an integer in [0, 100]
"""
