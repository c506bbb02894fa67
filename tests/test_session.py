"""Tests for RecitationSession, the live session controller.

HOW: Every test drives a session with a FakeClock and a recording alert
sink, submitting fragment batches and ticking by hand.
"""

from __future__ import annotations

import pytest

from recitation_coach.core.alerts import AlertSink
from recitation_coach.core.models import AlertCue, ReferenceText, WordStatus
from recitation_coach.core.session import (
    RecitationSession,
    is_duplicate,
    is_speech,
    validate_pause_threshold,
)
from recitation_coach.sources.scripted import finals, interims


class ExplodingAlertSink(AlertSink):
    def __init__(self) -> None:
        self.calls = 0

    def play(self, cue: AlertCue) -> None:
        self.calls += 1
        raise RuntimeError("speaker unplugged")


@pytest.fixture
def session(six_words, alerts, clock):
    s = RecitationSession(six_words, pause_threshold_ms=3000, alerts=alerts, clock=clock)
    s.start()
    return s


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestIsSpeech:
    def test_words(self):
        assert is_speech("for god")

    def test_single_character_is_noise(self):
        assert not is_speech("a")

    def test_punctuation_only_is_noise(self):
        assert not is_speech("...")
        assert not is_speech("—–")

    def test_digits_count(self):
        assert is_speech("16")


class TestIsDuplicate:
    def test_empty_transcript_never_duplicate(self):
        assert not is_duplicate("", "for god")

    def test_suffix_repeat(self):
        assert is_duplicate("for god so loved", "so loved")

    def test_starts_with_tail(self):
        assert is_duplicate("for god", "for god so loved")

    def test_new_text(self):
        assert not is_duplicate("for god", "so loved")

    def test_tail_limited_to_fifty_chars(self):
        accumulated = "x" * 60 + " " + "y" * 49
        assert is_duplicate(accumulated, accumulated[-50:] + " more")


class TestValidatePauseThreshold:
    def test_bounds_inclusive(self):
        assert validate_pause_threshold(1000) == 1000
        assert validate_pause_threshold(10000) == 10000

    @pytest.mark.parametrize("value", [0, 999, 10001])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError):
            validate_pause_threshold(value)


# ---------------------------------------------------------------------------
# Construction and lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_rejects_empty_reference(self):
        with pytest.raises(ValueError):
            RecitationSession(ReferenceText("Nothing", "  ...  "))

    def test_rejects_bad_threshold(self, six_words):
        with pytest.raises(ValueError):
            RecitationSession(six_words, pause_threshold_ms=500)

    def test_start_sets_recording(self, session):
        assert session.is_recording
        assert session.snapshot().monitor_state == "watching"

    def test_stop_is_idempotent(self, session):
        session.stop()
        session.stop()
        assert not session.is_recording
        assert session.snapshot().monitor_state == "idle"

    def test_stop_clears_interim(self, session):
        session.submit_fragments(finals("for god") + interims("so loved"))
        session.stop()
        assert session.interim == ""
        assert session.transcript == "for god"
        assert session.live.correct_count == 2

    def test_fragments_ignored_when_stopped(self, six_words, clock):
        s = RecitationSession(six_words, clock=clock)
        assert not s.submit_fragments(finals("for god"))
        assert s.transcript == ""

    def test_start_clears_previous_attempt(self, session):
        session.submit_fragments(finals("for god so loved the world"))
        session.stop()
        session.start()
        assert session.transcript == ""
        assert session.live is None
        assert not session.completed

    def test_fail_stops_and_records_error(self, session):
        session.fail("Microphone permission denied")
        assert not session.is_recording
        assert session.error == "Microphone permission denied"
        session.start()
        assert session.error is None


# ---------------------------------------------------------------------------
# Fragment ingestion
# ---------------------------------------------------------------------------


class TestIngestion:
    def test_finals_accumulate(self, session):
        session.submit_fragment(finals("for god")[0])
        session.submit_fragment(finals("so loved")[0])
        assert session.transcript == "for god so loved"

    def test_batch_finals_joined(self, session):
        session.submit_fragments(finals("for god", "so loved"))
        assert session.transcript == "for god so loved"

    def test_interim_shown_but_not_accumulated(self, session):
        session.submit_fragments(finals("for god") + interims("so"))
        assert session.transcript == "for god"
        assert session.interim == "so"
        assert session.live.correct_count == 3

        session.submit_fragments(interims("so loved"))
        assert session.interim == "so loved"
        assert session.transcript == "for god"

    def test_noise_ignored(self, session):
        session.submit_fragments(finals("a"))
        session.submit_fragments(finals("..."))
        assert session.transcript == ""

    def test_noise_does_not_restart_clock(self, session, clock):
        session.submit_fragments(finals("for god"))
        clock.advance(2500)
        session.submit_fragments(finals("."))
        clock.advance(500)
        assert session.tick()

    def test_duplicate_dropped(self, session):
        session.submit_fragments(finals("for god so"))
        session.submit_fragments(finals("god so"))
        assert session.transcript == "for god so"

    def test_duplicate_still_restarts_clock(self, session, clock):
        session.submit_fragments(finals("for god so"))
        clock.advance(2500)
        session.submit_fragments(finals("for god so"))
        clock.advance(2500)
        assert not session.tick()

    def test_live_feedback_statuses(self, session):
        session.submit_fragments(finals("for god so loved world"))
        statuses = {w.text: w.status for w in session.live.words}
        assert statuses["the"] is WordStatus.MISSING
        assert statuses["world"] is WordStatus.CORRECT
        assert session.live.accuracy == 83


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


class TestCompletion:
    def test_completion_plays_once(self, session, alerts):
        session.submit_fragments(finals("for god so loved the world"))
        assert session.completed
        assert session.completion_accuracy == 100
        session.submit_fragments(interims("the world"))
        session.submit_fragments(finals("amen the world"))
        assert alerts.cues == [AlertCue.COMPLETION]

    def test_completion_from_interim(self, session, alerts):
        session.submit_fragments(finals("for god so loved") + interims("the world"))
        assert session.completed
        assert alerts.cues == [AlertCue.COMPLETION]

    def test_completion_with_low_accuracy(self, session):
        session.submit_fragments(finals("for the world"))
        assert session.completed
        assert session.completion_accuracy < 100

    def test_reset_rearms_completion(self, session, alerts):
        session.submit_fragments(finals("for god so loved the world"))
        session.reset()
        assert not session.completed
        assert session.transcript == ""
        assert session.is_recording
        session.submit_fragments(finals("for god so loved the world"))
        assert alerts.cues == [AlertCue.COMPLETION, AlertCue.COMPLETION]


# ---------------------------------------------------------------------------
# Silence resets
# ---------------------------------------------------------------------------


class TestPauseReset:
    def test_single_reset_after_threshold(self, session, alerts, clock):
        session.submit_fragments(finals("for god so"))
        clock.advance(2999)
        assert not session.tick()
        clock.advance(1)
        assert session.tick()

        assert alerts.cues == [AlertCue.PAUSE_RESET]
        assert session.transcript == ""
        assert session.live is None
        assert session.reset_count == 1
        assert session.is_recording

    def test_no_second_reset_within_cooldown(self, session, alerts, clock):
        session.submit_fragments(finals("for god so"))
        clock.advance(3000)
        assert session.tick()

        session.submit_fragments(finals("loved the"))
        for _ in range(4):
            clock.advance(200)
            assert not session.tick()
        assert session.reset_count == 1
        assert alerts.cues == [AlertCue.PAUSE_RESET]

    def test_no_reset_without_transcript(self, session, clock):
        clock.advance(60_000)
        assert not session.tick()

    def test_no_tick_when_stopped(self, session, clock):
        session.submit_fragments(finals("for god so"))
        session.stop()
        clock.advance(10_000)
        assert not session.tick()

    def test_alert_failure_does_not_block_reset(self, six_words, clock):
        sink = ExplodingAlertSink()
        s = RecitationSession(six_words, 1000, alerts=sink, clock=clock)
        s.start()
        s.submit_fragments(finals("for god"))
        clock.advance(1000)
        assert s.tick()
        assert sink.calls == 1
        assert s.transcript == ""
        assert s.reset_count == 1

    def test_threshold_change_applies_to_next_check(self, session, clock):
        session.submit_fragments(finals("for god"))
        clock.advance(1500)
        assert not session.tick()
        session.set_pause_threshold(1000)
        assert session.tick()

    def test_set_pause_threshold_validates(self, session):
        with pytest.raises(ValueError):
            session.set_pause_threshold(20_000)
        assert session.pause_threshold_ms == 3000

    def test_snapshot_reports_elapsed(self, session, clock):
        session.submit_fragments(finals("for god"))
        clock.advance(1234)
        snap = session.snapshot()
        assert snap.ms_since_last_word == 1234
        assert snap.transcript == "for god"
        assert snap.citation == "John 3:16a"
