"""
Heartbeat valley detection.

Algorithm
---------
1. Compute a centred moving average (radius 7, clipped at the window edges)
   as the local baseline.
2. A sample is a candidate trough when it is strictly lower than its two
   neighbours on each side *and* strictly lower than the baseline.
3. Candidates are accepted oldest → newest when
   - at least ``min_distance_s`` (0.4 s, i.e. ≤ 150 BPM) have passed since the
     previously *accepted* valley, measured as sample distance / rate, and
   - the trough sits more than ``noise_threshold`` below the baseline.
4. Each accepted valley is time-stamped by projecting its offset from the
   end of the window back from ``now`` using the sampling rate, unless the
   host supplied real capture timestamps for every sample.

The 5-point test rejects single-sample spikes, the baseline comparison
rejects shallow dips on a drifting baseline, the spacing rule is a
refractory period and the amplitude threshold rejects the near-flat signal
seen when the finger is lifted.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
from scipy.signal import argrelmin

from heartlen.results import Valley

logger = logging.getLogger(__name__)

MIN_WINDOW = 5


def moving_average(signal: np.ndarray, radius: int) -> np.ndarray:
    """
    Centred moving average that only averages the samples that exist.

    Near the edges the window shrinks instead of being zero-padded, so the
    baseline of the first sample is the mean of ``signal[0:radius + 1]``.
    """
    n = len(signal)
    if n == 0:
        return np.array([], dtype=np.float64)
    csum = np.concatenate(([0.0], np.cumsum(signal, dtype=np.float64)))
    idx = np.arange(n)
    lo = np.maximum(idx - radius, 0)
    hi = np.minimum(idx + radius + 1, n)
    return (csum[hi] - csum[lo]) / (hi - lo)


class ValleyDetector:
    """
    Stateless trough detector; every call starts from scratch.

    Parameters
    ----------
    baseline_radius:
        Half-width of the moving-average baseline in samples (default 7).
    neighbours:
        Samples on each side a candidate must be strictly below (default 2).
    min_distance_s:
        Minimum spacing between accepted valleys in seconds (default 0.4).
    noise_threshold:
        Minimum depth below the baseline, in signal units (default 8.0, tuned
        for the 0 – 255 pixel-intensity range).
    """

    def __init__(
        self,
        baseline_radius: int = 7,
        neighbours: int = 2,
        min_distance_s: float = 0.4,
        noise_threshold: float = 8.0,
    ) -> None:
        if baseline_radius < 0 or neighbours < 1:
            raise ValueError("baseline_radius must be >= 0 and neighbours >= 1")
        self.baseline_radius = baseline_radius
        self.neighbours = neighbours
        self.min_distance_s = min_distance_s
        self.noise_threshold = noise_threshold

    def detect(
        self,
        window: Sequence[float],
        rate: float,
        now: float,
        timestamps: Optional[Sequence[float]] = None,
        first_index: int = 0,
    ) -> List[Valley]:
        """
        Return the valleys in *window*, oldest → newest.

        Parameters
        ----------
        window:
            Buffered samples, oldest → newest.
        rate:
            Estimated sampling rate in samples per second.
        now:
            Reference time (seconds) of the newest sample.
        timestamps:
            Optional per-sample capture times, same length as *window*.
        first_index:
            Absolute sample index of ``window[0]``.
        """
        signal = np.asarray(window, dtype=np.float64)
        n = len(signal)
        if n < MIN_WINDOW or rate <= 0:
            return []
        if timestamps is not None and len(timestamps) != n:
            logger.debug("Ignoring %d timestamps for %d samples", len(timestamps), n)
            timestamps = None

        baseline = moving_average(signal, self.baseline_radius)

        k = self.neighbours
        (candidates,) = argrelmin(signal, order=k, mode="clip")
        candidates = candidates[(candidates >= k) & (candidates <= n - 1 - k)]

        valleys: List[Valley] = []
        last_accepted: Optional[int] = None
        for i in candidates:
            i = int(i)
            value = signal[i]
            if not value < baseline[i]:
                continue
            if last_accepted is not None and (i - last_accepted) / rate < self.min_distance_s:
                continue
            if abs(value - baseline[i]) <= self.noise_threshold:
                continue

            if timestamps is not None:
                ts = float(timestamps[i])
            else:
                ts = now - (n - i) / rate
            valleys.append(Valley(timestamp=ts, value=float(value), sample_index=first_index + i))
            last_accepted = i

        return valleys
