"""
HeartLen — camera PPG signal pipeline.

Turns a stream of scalar fingertip-PPG samples into heartbeat valleys,
heart-rate and HRV estimates with confidence scores, and a signal-quality
label from a pre-trained classifier.
"""

from heartlen.pipeline import PipelineConfig, PipelineOrchestrator
from heartlen.results import (
    HeartRateResult,
    HRVResult,
    QualityLabel,
    QualityResult,
    Sample,
    Valley,
)

__version__ = "0.1.0"
__author__ = "heartlen"

__all__ = [
    "HeartRateResult",
    "HRVResult",
    "PipelineConfig",
    "PipelineOrchestrator",
    "QualityLabel",
    "QualityResult",
    "Sample",
    "Valley",
]
