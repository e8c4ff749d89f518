"""
Value types shared by the pipeline stages.

Every result is immutable and replaced wholesale on each tick.  Zero values
(``bpm == 0``, ``sdnn_ms == 0``) and :attr:`QualityLabel.UNKNOWN` are
"no estimate" sentinels, not physiological readings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sample:
    value:     float
    index:     int                       # monotonically increasing, never reused
    timestamp: Optional[float] = None    # host capture time in seconds, if known


@dataclass(frozen=True)
class Valley:
    timestamp:    float   # seconds, same clock as the pipeline's "now"
    value:        float
    sample_index: int     # absolute :attr:`Sample.index` of the trough


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeartRateResult:
    bpm:        int = 0
    confidence: float = 0.0   # 0 – 100

    @property
    def has_estimate(self) -> bool:
        return self.bpm > 0


@dataclass(frozen=True)
class HRVResult:
    sdnn_ms:    float = 0.0
    confidence: float = 0.0   # 0 – 100

    @property
    def has_estimate(self) -> bool:
        return self.sdnn_ms > 0


class QualityLabel(Enum):
    BAD        = "bad"
    ACCEPTABLE = "acceptable"
    EXCELLENT  = "excellent"
    UNKNOWN    = "unknown"


# Class order of the external model's probability output.
MODEL_CLASSES = (QualityLabel.BAD, QualityLabel.ACCEPTABLE, QualityLabel.EXCELLENT)


@dataclass(frozen=True)
class QualityResult:
    label:      QualityLabel = QualityLabel.UNKNOWN
    confidence: float = 0.0   # 0 – 100

    def __str__(self) -> str:
        if self.label is QualityLabel.UNKNOWN:
            return "--"
        return f"{self.label.value} ({self.confidence:.1f}%)"
