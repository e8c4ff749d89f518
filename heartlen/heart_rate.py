"""
Heart rate from valley timing.

The median inter-valley interval within the physiological range
(0.4 – 1.5 s, i.e. 40 – 150 BPM) gives the rate; the spread of those
intervals gives the confidence.  Intervals outside the range are dropped,
never clamped.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from heartlen.results import HeartRateResult, Valley

NO_HEART_RATE = HeartRateResult(bpm=0, confidence=0.0)


def round_half_up(x: float) -> int:
    """Round to the nearest integer, ties away from zero for positive *x*."""
    return int(math.floor(x + 0.5))


def valley_intervals(valleys: Sequence[Valley]) -> np.ndarray:
    """Seconds between consecutive valleys."""
    if len(valleys) < 2:
        return np.array([], dtype=np.float64)
    times = np.array([v.timestamp for v in valleys], dtype=np.float64)
    return np.diff(times)


class HeartRateEstimator:
    """
    Parameters
    ----------
    min_interval_s:
        Shortest accepted beat interval (default 0.4 s = 150 BPM).
    max_interval_s:
        Longest accepted beat interval (default 1.5 s = 40 BPM).
    """

    def __init__(self, min_interval_s: float = 0.4, max_interval_s: float = 1.5) -> None:
        if not 0 < min_interval_s < max_interval_s:
            raise ValueError("need 0 < min_interval_s < max_interval_s")
        self.min_interval_s = min_interval_s
        self.max_interval_s = max_interval_s

    def estimate(self, valleys: Sequence[Valley]) -> HeartRateResult:
        """Return ``HeartRateResult(0, 0)`` when there is too little data."""
        intervals = valley_intervals(valleys)
        if len(intervals) == 0:
            return NO_HEART_RATE

        valid = intervals[(intervals >= self.min_interval_s) & (intervals <= self.max_interval_s)]
        if len(valid) == 0:
            return NO_HEART_RATE

        median = float(np.median(np.sort(valid)))
        bpm = round_half_up(60.0 / median)

        # Coefficient of variation over the accepted intervals only
        mean = float(np.mean(valid))
        cv = float(np.std(valid)) / mean * 100.0
        confidence = float(np.clip(100.0 - cv, 0.0, 100.0))

        return HeartRateResult(bpm=bpm, confidence=confidence)
