"""
Unit tests for FrameRateTracker.
Run with:  pytest tests/test_frame_rate.py
"""

from __future__ import annotations

import pytest

from heartlen.frame_rate import FrameRateTracker


class StepClock:
    """Deterministic clock advanced by hand."""

    def __init__(self, step: float) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self) -> None:
        self.now += self.step


# ---------------------------------------------------------------------------
# FrameRateTracker tests
# ---------------------------------------------------------------------------

class TestFrameRateTracker:

    def test_default_rate_before_first_second(self):
        clock = StepClock(1 / 20)
        tracker = FrameRateTracker(clock=clock)
        for _ in range(10):
            tracker.tick()
            clock.advance()
        assert tracker.current_rate() == 30.0

    def test_measures_sustained_rate(self):
        clock = StepClock(1 / 20)
        tracker = FrameRateTracker(clock=clock)
        for _ in range(25):
            tracker.tick()
            clock.advance()
        assert tracker.current_rate() == pytest.approx(20.0, rel=1e-6)

    def test_rate_held_between_boundaries(self):
        clock = StepClock(1 / 15)
        tracker = FrameRateTracker(clock=clock)
        for _ in range(18):
            tracker.tick()
            clock.advance()
        measured = tracker.current_rate()
        assert measured == pytest.approx(15.0, rel=1e-6)
        # A burst of fast ticks inside the next window does not change it yet
        clock.step = 1 / 60
        for _ in range(5):
            tracker.tick()
            clock.advance()
        assert tracker.current_rate() == measured

    def test_explicit_now_overrides_clock(self):
        tracker = FrameRateTracker(clock=lambda: 0.0)
        for i in range(12):
            tracker.tick(now=i * 0.1)
        assert tracker.current_rate() == pytest.approx(10.0, rel=1e-6)

    def test_reset_restores_default(self):
        clock = StepClock(1 / 10)
        tracker = FrameRateTracker(default_rate=25.0, clock=clock)
        for _ in range(15):
            tracker.tick()
            clock.advance()
        assert tracker.current_rate() != 25.0
        tracker.reset()
        assert tracker.current_rate() == 25.0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            FrameRateTracker(default_rate=0)
        with pytest.raises(ValueError):
            FrameRateTracker(window_seconds=-1)

    def test_restart_window_ignores_idle_gap(self):
        clock = StepClock(1 / 30)
        tracker = FrameRateTracker(default_rate=20.0, clock=clock)
        for _ in range(40):
            tracker.tick()
            clock.advance()
        assert tracker.current_rate() == pytest.approx(30.0, rel=1e-6)

        clock.now += 10.0                     # no ticks while paused
        tracker.restart_window()
        assert tracker.current_rate() == pytest.approx(30.0, rel=1e-6)
        for _ in range(40):
            tracker.tick()
            clock.advance()
            assert tracker.current_rate() == pytest.approx(30.0, rel=1e-6)
