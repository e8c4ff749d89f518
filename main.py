#!/usr/bin/env python3
"""
HeartLen – offline replay of a PPG recording through the pipeline.

Usage
-----
    python main.py [OPTIONS] [INPUT]

INPUT is a text file with one sample per line, or ``value,timestamp`` CSV
rows (timestamp in seconds).  Without INPUT a synthetic waveform is
generated.

Options
-------
    --fps FLOAT          Replay tick rate (default: 30)
    --capacity INT       Rolling window length in samples (default: 300)
    --model PATH         joblib-serialised quality model (optional)
    --classify-every N   Classify quality every N ticks (default: 1)
    --bpm FLOAT          Synthetic heart rate (default: 72)
    --seconds FLOAT      Synthetic duration (default: 30)
    --noise FLOAT        Synthetic Gaussian noise std (default: 1.0)
    --seed INT           Synthetic noise seed (default: 0)
    --subject ID         Print the final record for this subject as JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from heartlen.pipeline import PipelineConfig, PipelineOrchestrator
from heartlen.quality import QualityClassifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("heartlen")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a fingertip PPG recording through the HeartLen pipeline",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("input", type=Path, nargs="?", default=None,
                        help="Sample file; omit for a synthetic waveform")
    parser.add_argument("--fps", type=float, default=30.0,
                        help="Replay tick rate")
    parser.add_argument("--capacity", type=int, default=300,
                        help="Rolling window length in samples")
    parser.add_argument("--model", type=Path, default=None,
                        help="joblib-serialised quality model")
    parser.add_argument("--classify-every", type=int, default=1,
                        help="Classify quality every N ticks")
    parser.add_argument("--bpm", type=float, default=72.0,
                        help="Synthetic heart rate")
    parser.add_argument("--seconds", type=float, default=30.0,
                        help="Synthetic duration in seconds")
    parser.add_argument("--noise", type=float, default=1.0,
                        help="Synthetic Gaussian noise standard deviation")
    parser.add_argument("--seed", type=int, default=0,
                        help="Synthetic noise seed")
    parser.add_argument("--subject", default=None,
                        help="Print the final record for this subject id as JSON")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def read_samples(path: Path) -> List[Tuple[float, Optional[float]]]:
    """Parse ``value`` or ``value,timestamp`` lines; blank and ``#`` lines are skipped."""
    samples: List[Tuple[float, Optional[float]]] = []
    with path.open() as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = [p.strip() for p in line.split(",")]
            try:
                value = float(parts[0])
                ts = float(parts[1]) if len(parts) > 1 and parts[1] else None
            except ValueError:
                logger.warning("%s:%d: skipping unparsable line %r", path, lineno, line)
                continue
            samples.append((value, ts))
    return samples


def synthetic_ppg(
    bpm: float, seconds: float, fps: float, noise: float = 0.0, seed: int = 0
) -> np.ndarray:
    """
    Fingertip-like PPG: a ~120 intensity baseline with a sharp 20-unit
    trough once per beat, plus optional Gaussian noise.
    """
    n = int(seconds * fps)
    t = np.arange(n) / fps
    period = 60.0 / bpm
    phase = np.mod(t, period) - period / 2.0
    width = 0.07 * period
    signal = 120.0 - 20.0 * np.exp(-(phase ** 2) / (2.0 * width ** 2))
    if noise > 0:
        signal = signal + np.random.default_rng(seed).normal(0.0, noise, n)
    return signal


class _TickClock:
    """Simulated clock; the replay loop sets ``now`` before every tick."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    if args.fps <= 0:
        logger.error("--fps must be positive.")
        return 1

    if args.input is not None:
        try:
            samples = read_samples(args.input)
        except OSError as exc:
            logger.error("Cannot read %s: %s", args.input, exc)
            return 1
    else:
        wave = synthetic_ppg(args.bpm, args.seconds, args.fps, args.noise, args.seed)
        samples = [(float(v), None) for v in wave]
    if not samples:
        logger.error("No samples to replay.")
        return 1

    try:
        config = PipelineConfig(
            capacity=args.capacity,
            default_rate=args.fps,
            classify_every=args.classify_every,
            # Replay runs faster than real time; classify inline so every
            # requested classification is published.
            async_classification=False,
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    classifier = QualityClassifier.from_path(args.model) if args.model else QualityClassifier()
    clock = _TickClock()
    log_interval = max(1, int(round(args.fps)))   # log roughly once per second

    logger.info("Replaying %d samples at %.1f fps.", len(samples), args.fps)
    with PipelineOrchestrator(config, classifier=classifier, clock=clock) as pipeline:
        for i, (value, ts) in enumerate(samples):
            clock.now = i / args.fps
            pipeline.ingest(value, ts)
            if i % log_interval == 0:
                hr = pipeline.current_heart_rate()
                hrv = pipeline.current_hrv()
                quality = pipeline.current_quality()
                if hr.has_estimate:
                    print(f"[{clock.now:7.2f}s] BPM={hr.bpm}  conf={hr.confidence:.0f}%  "
                          f"SDNN={hrv.sdnn_ms:.0f}ms  conf={hrv.confidence:.0f}%  "
                          f"quality={quality}")
                else:
                    print(f"[{clock.now:7.2f}s] Waiting for signal…  "
                          f"buffer={len(pipeline.current_window())}")

        if args.subject:
            try:
                record = pipeline.build_record(args.subject)
            except ValueError as exc:
                logger.error("%s", exc)
                return 1
            print(json.dumps(record.to_dict()))

    return 0


def main() -> int:
    return run(parse_args())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
