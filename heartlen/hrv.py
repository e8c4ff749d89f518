"""
Heart-rate variability (SDNN) from valley timing.

SDNN is the Bessel-corrected standard deviation of the RR intervals.  The
accepted RR range (250 – 2000 ms) is deliberately wider than the heart-rate
estimator's so that genuine beat-to-beat variation is not trimmed away.

Confidence is the mean of two sub-scores:

* interval count – five intervals are treated as the reliability floor;
* consistency    – ``100 − SDNN / meanRR × 100``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from heartlen.heart_rate import round_half_up, valley_intervals
from heartlen.results import HRVResult, Valley

NO_HRV = HRVResult(sdnn_ms=0.0, confidence=0.0)


class HRVEstimator:
    """
    Parameters
    ----------
    min_rr_ms, max_rr_ms:
        Accepted RR interval range in milliseconds.
    reliable_count:
        Number of valid intervals that earns the full count sub-score.
    """

    def __init__(
        self,
        min_rr_ms: float = 250.0,
        max_rr_ms: float = 2000.0,
        reliable_count: int = 5,
    ) -> None:
        if not 0 < min_rr_ms < max_rr_ms:
            raise ValueError("need 0 < min_rr_ms < max_rr_ms")
        if reliable_count < 1:
            raise ValueError("reliable_count must be >= 1")
        self.min_rr_ms = min_rr_ms
        self.max_rr_ms = max_rr_ms
        self.reliable_count = reliable_count

    def estimate(self, valleys: Sequence[Valley]) -> HRVResult:
        rr = valley_intervals(valleys) * 1000.0
        valid = rr[(rr >= self.min_rr_ms) & (rr <= self.max_rr_ms)]
        n = len(valid)
        if n < 2:
            return NO_HRV

        mean_rr = float(np.mean(valid))
        sdnn = float(np.std(valid, ddof=1))

        count_score = min(100.0, n / self.reliable_count * 100.0)
        consistency_score = max(0.0, 100.0 - sdnn / mean_rr * 100.0)
        confidence = (
            float(np.clip(count_score, 0.0, 100.0))
            + float(np.clip(consistency_score, 0.0, 100.0))
        ) / 2.0

        return HRVResult(
            sdnn_ms=float(round_half_up(sdnn)),
            confidence=float(round_half_up(confidence)),
        )
