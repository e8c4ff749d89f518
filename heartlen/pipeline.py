"""
Per-tick PPG pipeline.

One :class:`PipelineOrchestrator` owns everything for a recording session:
the rolling buffer, the rate tracker and the latest published results.  An
external driver calls :meth:`PipelineOrchestrator.ingest` once per frame.

Per-tick flow
-------------

.. code-block:: text

    ingest(value)
       │
       ├─ publish a finished background classification (if any)
       ├─ append to buffer, tick rate tracker
       ├─ ValleyDetector      → valleys
       ├─ HeartRateEstimator  → HeartRateResult
       ├─ HRVEstimator        → HRVResult
       └─ (window ≥ 100, every k-th tick, nothing in flight)
              FeatureExtractor → QualityClassifier  (background thread)

Classification runs on a single-worker executor.  At most one request is in
flight; newer requests are dropped while one is pending, so the quality
result lags the signal by at least one tick.

Thread safety
-------------
Not thread-safe.  Use one instance per session and drive it from a single
thread.
"""

from __future__ import annotations

import logging
import math
import time
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Optional, Tuple

import numpy as np

from heartlen.buffer import DEFAULT_CAPACITY, RollingSignalBuffer
from heartlen.features import FeatureExtractor
from heartlen.frame_rate import DEFAULT_RATE, FrameRateTracker
from heartlen.heart_rate import NO_HEART_RATE, HeartRateEstimator
from heartlen.hrv import NO_HRV, HRVEstimator
from heartlen.quality import UNKNOWN_QUALITY, QualityClassifier
from heartlen.records import RecordData
from heartlen.results import HeartRateResult, HRVResult, QualityResult, Valley
from heartlen.valley_detector import ValleyDetector

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineConfig:
    """
    Tunables for one pipeline instance.

    Parameters
    ----------
    capacity:
        Samples kept in the rolling window (default 300 ≈ 10 s at 30 fps).
    default_rate:
        Sampling rate assumed until the first full second has been measured.
    baseline_radius:
        Half-width of the valley detector's moving-average baseline.
    min_valley_distance_s:
        Refractory period between accepted valleys.
    noise_threshold:
        Minimum valley depth below the baseline.
    min_quality_samples:
        Window length required before quality is classified.
    classify_every:
        Classify on every k-th tick only.
    async_classification:
        Run the classifier on a background thread (default) or inline.
    """

    capacity:              int = DEFAULT_CAPACITY
    default_rate:          float = DEFAULT_RATE
    baseline_radius:       int = 7
    min_valley_distance_s: float = 0.4
    noise_threshold:       float = 8.0
    min_quality_samples:   int = 100
    classify_every:        int = 1
    async_classification:  bool = True

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError(f"capacity must be positive, got {self.capacity}")
        if self.default_rate <= 0:
            raise ValueError(f"default_rate must be positive, got {self.default_rate}")
        if self.min_quality_samples <= 0:
            raise ValueError("min_quality_samples must be positive")
        if self.classify_every < 1:
            raise ValueError("classify_every must be >= 1")
        if self.min_valley_distance_s < 0 or self.noise_threshold < 0:
            raise ValueError("min_valley_distance_s and noise_threshold must be >= 0")


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class PipelineStatus(Enum):
    IDLE   = auto()
    ACTIVE = auto()


@dataclass
class PipelineState:
    """Latest published results.  Replaced field by field, never merged."""

    heart_rate: HeartRateResult = NO_HEART_RATE
    hrv:        HRVResult = NO_HRV
    quality:    QualityResult = UNKNOWN_QUALITY
    valleys:    Tuple[Valley, ...] = field(default_factory=tuple)


class PipelineOrchestrator:
    """
    Drives the pipeline one tick at a time.

    Parameters
    ----------
    config:
        Pipeline tunables; defaults to :class:`PipelineConfig`.
    classifier:
        Quality classifier.  Without one (or without a loaded model) the
        quality result stays ``Unknown``.
    clock:
        Monotonic clock in seconds used for rate measurement and valley
        timestamps.  Injected by tests.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        classifier: Optional[QualityClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config if config is not None else PipelineConfig()
        self.classifier = classifier if classifier is not None else QualityClassifier()
        self._clock = clock

        cfg = self.config
        self._buffer = RollingSignalBuffer(cfg.capacity)
        self._rate_tracker = FrameRateTracker(default_rate=cfg.default_rate, clock=clock)
        self._detector = ValleyDetector(
            baseline_radius=cfg.baseline_radius,
            min_distance_s=cfg.min_valley_distance_s,
            noise_threshold=cfg.noise_threshold,
        )
        self._hr_estimator = HeartRateEstimator()
        self._hrv_estimator = HRVEstimator()
        self._extractor = FeatureExtractor()

        self._state = PipelineState()
        self._status = PipelineStatus.IDLE
        self._ticks: int = 0

        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._status is PipelineStatus.ACTIVE:
            return
        # No ticks arrive while idle; measure from the first tick after a restart.
        self._rate_tracker.restart_window()
        self._status = PipelineStatus.ACTIVE
        logger.info("Pipeline started (buffer=%d samples).", len(self._buffer))

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """
        Stop accepting samples.  Buffer and results are kept.

        A finished classification is published and a pending one is
        discarded.  With *wait*, a pending classification is first given up
        to *timeout* seconds to finish.
        """
        if self._status is PipelineStatus.IDLE:
            return
        self._status = PipelineStatus.IDLE
        if wait:
            self.wait_for_classification(timeout)
        self._collect_quality()
        self._discard_pending()
        logger.info("Pipeline stopped.")

    def reset(self) -> None:
        """Clear the buffer, the rate estimate and every published result."""
        self._discard_pending()
        self._buffer.clear()
        self._rate_tracker.reset()
        self._state = PipelineState()
        self._ticks = 0
        logger.info("Pipeline state reset.")

    def close(self) -> None:
        """Stop and release the classification thread."""
        self.stop()
        self._discard_pending()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self) -> "PipelineOrchestrator":
        self.start()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is PipelineStatus.ACTIVE

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def ingest(self, value: float, timestamp: Optional[float] = None) -> None:
        """
        Feed one sample.

        Parameters
        ----------
        value:
            Scalar PPG reading for this frame.  Non-finite values are dropped.
        timestamp:
            Optional capture time in seconds on the pipeline clock.  When
            every sample in the window carries one, valley times use them
            instead of reconstructing from the estimated rate.
        """
        if self._status is not PipelineStatus.ACTIVE:
            logger.debug("Ignoring sample while idle.")
            return
        value = float(value)
        if not math.isfinite(value):
            logger.debug("Discarding non-finite sample %r.", value)
            return

        self._collect_quality()

        now = self._clock()
        self._buffer.push(value, timestamp)
        self._rate_tracker.tick(now)
        self._ticks += 1

        window = self._buffer.as_array()
        valleys = self._detector.detect(
            window,
            rate=self._rate_tracker.current_rate(),
            now=now,
            timestamps=self._buffer.timestamps(),
            first_index=self._buffer.first_index,
        )
        self._state.valleys = tuple(valleys)
        self._state.heart_rate = self._hr_estimator.estimate(valleys)
        self._state.hrv = self._hrv_estimator.estimate(valleys)

        self._maybe_classify(window)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_heart_rate(self) -> HeartRateResult:
        return self._state.heart_rate

    def current_hrv(self) -> HRVResult:
        return self._state.hrv

    def current_quality(self) -> QualityResult:
        return self._state.quality

    def current_window(self) -> np.ndarray:
        return self._buffer.as_array()

    def current_valleys(self) -> Tuple[Valley, ...]:
        return self._state.valleys

    def current_rate(self) -> float:
        return self._rate_tracker.current_rate()

    @property
    def classification_pending(self) -> bool:
        return self._pending is not None

    def wait_for_classification(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the in-flight classification (if any) finishes.  The
        result is published on the next tick or by :meth:`stop`.  Returns
        *False* on timeout.
        """
        if self._pending is None:
            return True
        done, _ = futures.wait([self._pending], timeout=timeout)
        return bool(done)

    def build_record(self, subject_id: str, timestamp: Optional[datetime] = None) -> RecordData:
        """Snapshot the published results and window for the record store."""
        kwargs = {} if timestamp is None else {"timestamp": timestamp}
        return RecordData(
            subject_id=subject_id,
            heart_rate=self._state.heart_rate,
            hrv=self._state.hrv,
            ppg_data=self._buffer.as_list(),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Private helpers – quality classification
    # ------------------------------------------------------------------

    def _maybe_classify(self, window: np.ndarray) -> None:
        if len(window) < self.config.min_quality_samples:
            return
        if self._ticks % self.config.classify_every != 0:
            return
        if not self.classifier.is_available:
            self._state.quality = UNKNOWN_QUALITY
            return
        if self._pending is not None:
            logger.debug("Classification in flight – dropping request.")
            return

        features = self._extractor.extract(window)
        if not self.config.async_classification:
            self._state.quality = self.classifier.classify(features)
            return

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="heartlen-quality"
            )
        self._pending = self._executor.submit(self.classifier.classify, features)

    def _collect_quality(self) -> None:
        pending = self._pending
        if pending is None or not pending.done():
            return
        self._pending = None
        if pending.cancelled():
            return
        try:
            self._state.quality = pending.result()
        except Exception as exc:
            logger.warning("Quality classification raised: %s", exc)
            self._state.quality = UNKNOWN_QUALITY

    def _discard_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
