"""Tests for the debounced silence monitor.

RULES:
- Time is passed explicitly; nothing sleeps
"""

from __future__ import annotations

from recitation_coach.core.silence import MonitorState, SilenceMonitor


def _watching(threshold: int = 3000, cooldown: int = 1000, now: float = 0) -> SilenceMonitor:
    monitor = SilenceMonitor(threshold, cooldown)
    monitor.start(now)
    return monitor


class TestLifecycle:
    def test_starts_idle(self):
        monitor = SilenceMonitor()
        assert monitor.state is MonitorState.IDLE
        assert not monitor.check(10_000, True)

    def test_start_watches(self):
        monitor = _watching()
        assert monitor.state is MonitorState.WATCHING
        assert not monitor.armed

    def test_stop_from_any_state(self):
        monitor = _watching()
        assert monitor.check(3000, True)
        assert monitor.state is MonitorState.RESETTING
        monitor.stop()
        assert monitor.state is MonitorState.IDLE
        assert not monitor.armed

    def test_complete_reset_after_stop_stays_idle(self):
        monitor = _watching()
        monitor.check(3000, True)
        monitor.stop()
        monitor.complete_reset(3001)
        assert monitor.state is MonitorState.IDLE

    def test_elapsed_zero_when_idle(self):
        monitor = SilenceMonitor()
        assert monitor.elapsed_ms(5000) == 0


class TestTrigger:
    def test_fires_at_threshold(self):
        monitor = _watching()
        assert not monitor.check(2999, True)
        assert monitor.check(3000, True)
        assert monitor.armed

    def test_needs_transcript(self):
        monitor = _watching()
        assert not monitor.check(5000, False)
        assert monitor.state is MonitorState.WATCHING

    def test_word_restarts_clock(self):
        monitor = _watching()
        monitor.mark_word(2000)
        assert not monitor.check(4999, True)
        assert monitor.check(5000, True)

    def test_fires_once_per_pause(self):
        monitor = _watching()
        assert monitor.check(3000, True)
        # While resetting, further checks are ignored
        assert not monitor.check(3200, True)


class TestDebounce:
    def test_no_refire_during_cooldown(self):
        monitor = _watching(threshold=500, cooldown=1000)
        assert monitor.check(500, True)
        monitor.complete_reset(500)
        assert monitor.armed
        for now in range(600, 1500, 100):
            # elapsed reaches the threshold again, but the cooldown holds
            assert not monitor.check(now, True)

    def test_refires_after_cooldown(self):
        monitor = _watching(threshold=500, cooldown=1000)
        monitor.check(500, True)
        monitor.complete_reset(500)
        assert monitor.check(1500, True)

    def test_cooldown_expiry_disarms(self):
        monitor = _watching(threshold=3000, cooldown=1000)
        monitor.check(3000, True)
        monitor.complete_reset(3000)
        assert not monitor.check(4000, False)
        assert not monitor.armed
        assert not monitor.cooling_down

    def test_word_during_cooldown_keeps_armed(self):
        monitor = _watching(threshold=3000, cooldown=1000)
        monitor.check(3000, True)
        monitor.complete_reset(3000)
        monitor.mark_word(3500)
        assert monitor.armed

    def test_early_disarm_when_speaking_resumes(self):
        monitor = _watching(threshold=3000, cooldown=0)
        monitor.armed = True
        monitor.mark_word(100)
        # mark_word outside cooldown disarms directly
        assert not monitor.armed

        monitor.armed = True
        monitor.restart_clock(1000)
        assert not monitor.check(2000, True)  # elapsed 1000 < 1500
        assert not monitor.armed

    def test_armed_blocks_until_disarmed(self):
        monitor = _watching(threshold=3000, cooldown=0)
        monitor.armed = True
        monitor.restart_clock(0)
        # elapsed >= half threshold, so no early disarm and no fire
        assert not monitor.check(3500, True)
        assert monitor.armed
