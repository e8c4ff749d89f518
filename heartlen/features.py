"""
Statistical feature vector for the signal-quality model.

The quality model was trained on 19 features computed over the raw
(unfiltered) PPG window, in this order::

    fft_energy, fft_variance, fft_sum,            # reserved, always 0
    mean, q1, median, q3, min, max,
    std, range, variance, rms, perfusion,
    skewness, kurtosis, entropy,
    zero_crossing_rate, snr_approx

The three frequency-domain slots were never computed for the model and
carry zeros; they are kept so the vector matches the model's input shape.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy import stats

FEATURE_NAMES = (
    "fft_energy",
    "fft_variance",
    "fft_sum",
    "mean",
    "q1",
    "median",
    "q3",
    "min",
    "max",
    "std",
    "range",
    "variance",
    "rms",
    "perfusion",
    "skewness",
    "kurtosis",
    "entropy",
    "zero_crossing_rate",
    "snr_approx",
)
N_FEATURES = len(FEATURE_NAMES)

_EPS_PERFUSION = 1e-7
_EPS_ENTROPY = 1e-10
_EPS_SNR = 1e-7


class FeatureExtractor:
    """Computes the fixed-order feature vector; see the module docstring."""

    def extract(self, window: Sequence[float]) -> np.ndarray:
        """
        Return a ``(19,)`` float64 array.

        An empty window yields all zeros.  A constant (or single-sample)
        window has zero variance; skewness and kurtosis are then reported
        as 0 rather than dividing by zero.
        """
        x = np.asarray(window, dtype=np.float64)
        features = np.zeros(N_FEATURES, dtype=np.float64)
        n = len(x)
        if n == 0:
            return features

        mean = float(np.mean(x))
        variance = float(np.var(x))          # population
        std = math.sqrt(variance)
        x_min = float(np.min(x))
        x_max = float(np.max(x))
        q1, median, q3 = (float(q) for q in np.percentile(x, [25, 50, 75]))
        mean_square = float(np.mean(x * x))
        rms = math.sqrt(mean_square)

        perfusion = (x_max - x_min) / (abs(mean) + _EPS_PERFUSION) * 100.0

        if std > 0:
            skewness = _finite_or_zero(stats.skew(x, bias=True))
            kurtosis = _finite_or_zero(stats.kurtosis(x, fisher=False, bias=True))
        else:
            skewness = 0.0
            kurtosis = 0.0

        squared = x * x
        entropy = -float(np.sum(squared * np.log(squared + _EPS_ENTROPY))) / n

        non_negative = x >= 0
        zero_crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
        zero_crossing_rate = zero_crossings / n

        snr_approx = variance / (mean_square + _EPS_SNR)

        features[3:] = (
            mean,
            q1,
            median,
            q3,
            x_min,
            x_max,
            std,
            x_max - x_min,
            variance,
            rms,
            perfusion,
            skewness,
            kurtosis,
            entropy,
            zero_crossing_rate,
            snr_approx,
        )
        return features


def _finite_or_zero(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0
