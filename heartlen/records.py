"""
Measurement records exchanged with the host's storage.

The pipeline does not store anything itself.  It only shapes its published
results into the record the storage service accepts and reads back the
per-subject aggregate the service returns::

    {subjectId, heartRate: {bpm, confidence}, hrv: {sdnn, confidence},
     ppgData: [...], timestamp}

    {avgHeartRate, avgHRV, lastAccess}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from heartlen.results import HeartRateResult, HRVResult


@dataclass(frozen=True)
class RecordData:
    subject_id:  str
    heart_rate:  HeartRateResult
    hrv:         HRVResult
    ppg_data:    List[float]
    timestamp:   datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.subject_id or not self.subject_id.strip():
            raise ValueError("Missing subjectId")

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready mapping using the storage service's field names."""
        return {
            "subjectId": self.subject_id,
            "heartRate": {
                "bpm": self.heart_rate.bpm,
                "confidence": self.heart_rate.confidence,
            },
            "hrv": {
                "sdnn": self.hrv.sdnn_ms,
                "confidence": self.hrv.confidence,
            },
            "ppgData": [float(v) for v in self.ppg_data],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HistoricalSummary:
    avg_heart_rate: float = 0.0
    avg_hrv:        float = 0.0
    last_access:    Optional[datetime] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HistoricalSummary":
        """Parse the service's aggregate reply; missing fields fall back to zero."""
        last_access = payload.get("lastAccess")
        if isinstance(last_access, str):
            last_access = datetime.fromisoformat(last_access.replace("Z", "+00:00"))
        return cls(
            avg_heart_rate=float(payload.get("avgHeartRate") or 0.0),
            avg_hrv=float(payload.get("avgHRV") or 0.0),
            last_access=last_access,
        )


class RecordStore(Protocol):
    """Storage contract supplied by the host."""

    def save(self, record: RecordData) -> None: ...

    def fetch_summary(self, subject_id: str) -> HistoricalSummary: ...


def summarize_records(records: Iterable[RecordData]) -> HistoricalSummary:
    """
    Aggregate *records* the way the storage service does: mean BPM, mean
    SDNN and the most recent timestamp.  No records gives zeros and *None*.
    """
    records = list(records)
    if not records:
        return HistoricalSummary()
    n = len(records)
    return HistoricalSummary(
        avg_heart_rate=sum(r.heart_rate.bpm for r in records) / n,
        avg_hrv=sum(r.hrv.sdnn_ms for r in records) / n,
        last_access=max(r.timestamp for r in records),
    )
