"""
Sustained tick-rate measurement.

The frame collaborator rarely delivers exactly the nominal rate, and
valley spacing is measured in samples, so the pipeline needs the *actual*
rate to turn sample distances into seconds.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RATE = 30.0


class FrameRateTracker:
    """
    Counts ticks over rolling one-second windows of wall-clock time.

    Parameters
    ----------
    default_rate:
        Rate reported before the first full window has elapsed.
    window_seconds:
        Length of a measurement window.
    clock:
        Monotonic clock returning seconds.  Injected by tests.
    """

    def __init__(
        self,
        default_rate: float = DEFAULT_RATE,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_rate <= 0:
            raise ValueError(f"default_rate must be positive, got {default_rate}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self.default_rate = default_rate
        self.window_seconds = window_seconds
        self._clock = clock

        self._rate: float = default_rate
        self._window_start: Optional[float] = None
        self._ticks: int = 0

    def tick(self, now: Optional[float] = None) -> None:
        """Record one tick.  Closes the window once a full second has elapsed."""
        if now is None:
            now = self._clock()
        if self._window_start is None:
            # The first tick only opens the window; rate counts intervals.
            self._window_start = now
            return
        self._ticks += 1

        elapsed = now - self._window_start
        if elapsed >= self.window_seconds:
            self._rate = self._ticks / elapsed
            logger.debug("Measured rate %.2f ticks/s over %.3f s", self._rate, elapsed)
            self._ticks = 0
            self._window_start = now

    def current_rate(self) -> float:
        return self._rate

    def restart_window(self) -> None:
        """Drop the open window but keep the last measured rate."""
        self._window_start = None
        self._ticks = 0

    def reset(self) -> None:
        self._rate = self.default_rate
        self._window_start = None
        self._ticks = 0
