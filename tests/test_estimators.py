"""
Unit tests for HeartRateEstimator and HRVEstimator.
Run with:  pytest tests/test_estimators.py
"""

from __future__ import annotations

import numpy as np
import pytest

from heartlen.heart_rate import HeartRateEstimator, round_half_up
from heartlen.hrv import HRVEstimator
from heartlen.results import HeartRateResult, HRVResult, Valley
from heartlen.valley_detector import ValleyDetector


def _valleys_from_intervals(intervals_s, start: float = 100.0) -> list[Valley]:
    """Valleys whose consecutive timestamps differ by *intervals_s*."""
    times = start + np.concatenate(([0.0], np.cumsum(intervals_s)))
    return [Valley(timestamp=float(t), value=-20.0, sample_index=i) for i, t in enumerate(times)]


# ---------------------------------------------------------------------------
# HeartRateEstimator tests
# ---------------------------------------------------------------------------

class TestHeartRateEstimator:

    def test_no_valleys(self):
        assert HeartRateEstimator().estimate([]) == HeartRateResult(0, 0.0)

    def test_single_valley(self):
        valleys = _valleys_from_intervals([])
        assert HeartRateEstimator().estimate(valleys) == HeartRateResult(0, 0.0)

    def test_all_intervals_out_of_range(self):
        valleys = _valleys_from_intervals([0.3, 0.2, 1.8])
        assert HeartRateEstimator().estimate(valleys) == HeartRateResult(0, 0.0)

    def test_steady_60_bpm(self):
        result = HeartRateEstimator().estimate(_valleys_from_intervals([1.0] * 6))
        assert result.bpm == 60
        assert result.confidence == pytest.approx(100.0)

    def test_out_of_range_intervals_are_discarded(self):
        result = HeartRateEstimator().estimate(_valleys_from_intervals([1.0, 0.2, 1.0, 2.5, 1.0]))
        assert result.bpm == 60
        assert result.confidence == pytest.approx(100.0)

    def test_median_is_robust_to_outliers(self):
        result = HeartRateEstimator().estimate(_valleys_from_intervals([0.8, 0.8, 0.8, 1.4]))
        assert result.bpm == 75

    def test_bpm_is_rounded(self):
        result = HeartRateEstimator().estimate(_valleys_from_intervals([0.9, 0.9]))
        assert result.bpm == 67           # 66.67

    def test_confidence_from_coefficient_of_variation(self):
        # mean 0.75 s, population std 0.25 s → CV 33.3 %
        result = HeartRateEstimator().estimate(_valleys_from_intervals([0.5, 1.0]))
        assert result.confidence == pytest.approx(100.0 - 100.0 / 3.0)

    def test_confidence_clamped_at_zero(self):
        est = HeartRateEstimator(min_interval_s=0.05, max_interval_s=20.0)
        result = est.estimate(_valleys_from_intervals([0.1, 0.1, 0.1, 10.0]))
        assert result.confidence == 0.0

    @pytest.mark.parametrize("seed", range(10))
    def test_bpm_always_sentinel_or_physiological(self, seed):
        rng = np.random.default_rng(seed)
        intervals = rng.uniform(0.1, 3.0, size=rng.integers(0, 12))
        result = HeartRateEstimator().estimate(_valleys_from_intervals(intervals))
        assert result.bpm == 0 or 40 <= result.bpm <= 150
        assert 0.0 <= result.confidence <= 100.0

    def test_rejected_close_valley_does_not_affect_bpm(self):
        signal = np.zeros(300)
        for idx in (100, 109, 130, 160, 190):
            signal[idx] = -20.0
        valleys = ValleyDetector().detect(signal, rate=30.0, now=10.0)
        assert HeartRateEstimator().estimate(valleys).bpm == 60

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            HeartRateEstimator(min_interval_s=1.5, max_interval_s=0.4)


def test_round_half_up():
    assert round_half_up(66.5) == 67
    assert round_half_up(72.5) == 73
    assert round_half_up(59.49) == 59


# ---------------------------------------------------------------------------
# HRVEstimator tests
# ---------------------------------------------------------------------------

class TestHRVEstimator:

    def test_no_valleys(self):
        assert HRVEstimator().estimate([]) == HRVResult(0.0, 0.0)

    def test_single_valid_interval_is_not_enough(self):
        valleys = _valleys_from_intervals([0.8, 3.0])
        assert HRVEstimator().estimate(valleys) == HRVResult(0.0, 0.0)

    def test_tightly_clustered_intervals(self):
        intervals_ms = [800, 810, 790, 805, 795, 2500]       # last one out of range
        result = HRVEstimator().estimate(_valleys_from_intervals(np.array(intervals_ms) / 1000.0))
        # sample std of [800, 810, 790, 805, 795] = sqrt(250 / 4) ≈ 7.9
        assert result.sdnn_ms == 8.0
        assert result.confidence > 90

    def test_count_score_below_reliability_floor(self):
        result = HRVEstimator().estimate(_valleys_from_intervals([1.0, 1.0]))
        # count 2/5 → 40, consistency 100 → mean 70
        assert result.sdnn_ms == 0.0
        assert result.confidence == 70.0

    def test_rr_range_is_wider_than_heart_rate_range(self):
        # 0.3 s and 1.8 s are outside the HR range but valid RR intervals
        result = HRVEstimator().estimate(_valleys_from_intervals([0.3, 1.8]))
        assert result.sdnn_ms == pytest.approx(round_half_up(np.std([300, 1800], ddof=1)))

    def test_results_are_integers(self):
        result = HRVEstimator().estimate(_valleys_from_intervals([0.81, 0.93, 0.77, 1.02]))
        assert result.sdnn_ms == int(result.sdnn_ms)
        assert result.confidence == int(result.confidence)

    @pytest.mark.parametrize("seed", range(10))
    def test_sdnn_never_negative(self, seed):
        rng = np.random.default_rng(seed)
        intervals = rng.uniform(0.1, 3.0, size=rng.integers(0, 12))
        result = HRVEstimator().estimate(_valleys_from_intervals(intervals))
        assert result.sdnn_ms >= 0.0
        assert 0.0 <= result.confidence <= 100.0

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            HRVEstimator(min_rr_ms=2000, max_rr_ms=250)
        with pytest.raises(ValueError):
            HRVEstimator(reliable_count=0)
