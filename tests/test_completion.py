"""Tests for verse-end detection and its latch."""

from __future__ import annotations

from recitation_coach.core.completion import CompletionDetector, reached_verse_end

REF = ["in", "the", "beginning", "god", "created", "the", "heavens", "and", "the", "earth"]


class TestReachedVerseEnd:
    def test_last_word_in_recent_window(self):
        assert reached_verse_end(REF, ["and", "the", "earth"])

    def test_last_word_outside_window(self):
        live = ["earth", "a", "b", "c", "d", "e"]
        assert not reached_verse_end(REF, live)

    def test_last_word_anywhere_in_last_five(self):
        live = ["the", "earth", "amen", "amen", "amen"]
        assert reached_verse_end(REF, live)

    def test_not_reached(self):
        assert not reached_verse_end(REF, ["in", "the", "beginning"])

    def test_empty_inputs(self):
        assert not reached_verse_end([], ["earth"])
        assert not reached_verse_end(REF, [])

    def test_single_word_reference(self):
        assert reached_verse_end(["wept"], ["jesus", "wept"])

    def test_independent_of_accuracy(self):
        # Garbled middle, correct ending
        live = ["in", "mumble", "mumble", "mumble", "the", "earth"]
        assert reached_verse_end(REF, live)


class TestCompletionDetector:
    def test_fires_once(self):
        detector = CompletionDetector()
        assert detector.check(REF, ["the", "earth"])
        assert detector.signaled
        assert not detector.check(REF, ["the", "earth"])
        assert not detector.check(REF, ["the", "earth", "the", "earth"])

    def test_reset_rearms(self):
        detector = CompletionDetector()
        detector.check(REF, ["earth"])
        detector.reset()
        assert not detector.signaled
        assert detector.check(REF, ["earth"])

    def test_no_fire_without_ending(self):
        detector = CompletionDetector()
        assert not detector.check(REF, ["in", "the"])
        assert not detector.signaled
