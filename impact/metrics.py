"""Outcome metrics over measured records: did the expected direction hold?"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from .models import ImpactRecord, Pool, iso_instant, utcnow

HIGH_SCORE = 80


@dataclass(frozen=True)
class BucketStats:
    label: str
    total_measured: int
    direction_accuracy: float
    high_score_hit_rate: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "totalMeasured": self.total_measured,
            "directionAccuracy": self.direction_accuracy,
            "highScoreHitRate": self.high_score_hit_rate,
        }


@dataclass(frozen=True)
class PoolMetrics:
    total_measured: int
    direction_accuracy: float
    avg_abs_error: float
    high_score_hit_rate: float
    buckets: List[BucketStats] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "updatedAt": iso_instant(utcnow()),
            "totalMeasured": self.total_measured,
            "directionAccuracy": self.direction_accuracy,
            "avgAbsError": self.avg_abs_error,
            "highScoreHitRate": self.high_score_hit_rate,
            "buckets": [bucket.as_dict() for bucket in self.buckets],
        }


def _pct(value: float) -> float:
    return round(value * 10) / 10


def _hit(item: ImpactRecord) -> bool:
    return item.expected_dir != 0 and item.expected_dir == (item.realized_dir or 0)


def _measured(items: Iterable[ImpactRecord]) -> List[ImpactRecord]:
    return [item for item in items if not item.too_early]


def _rate(items: Sequence[ImpactRecord]) -> float:
    if not items:
        return 0.0
    return _pct(sum(1 for item in items if _hit(item)) / len(items) * 100)


def bucket(items: Iterable[ImpactRecord], label: str) -> BucketStats:
    measured = _measured(items)
    return BucketStats(
        label=label,
        total_measured=len(measured),
        direction_accuracy=_rate(measured),
        high_score_hit_rate=_rate([item for item in measured if item.score >= HIGH_SCORE]),
    )


BUCKETS: Sequence[Tuple[str, Callable[[ImpactRecord], bool]]] = (
    ("Earnings", lambda item: "earn" in (item.category or "").lower()),
    ("Upgrades", lambda item: "upgrade" in (item.category or "").lower()),
    ("BullTrap flagged", lambda item: item.bull_trap is True),
    ("Uptrend", lambda item: "Uptrend" in item.technical_context),
    ("Downtrend", lambda item: "Downtrend" in item.technical_context),
    ("Range", lambda item: "Range" in item.technical_context),
)


def compute_metrics(pool: Pool) -> PoolMetrics:
    measured = _measured(pool.items)
    misses = sum(1 for item in measured if not _hit(item))
    avg_abs_error = _pct(misses / len(measured) * 100) if measured else 0.0
    return PoolMetrics(
        total_measured=len(measured),
        direction_accuracy=_rate(measured),
        avg_abs_error=avg_abs_error,
        high_score_hit_rate=_rate([item for item in measured if item.score >= HIGH_SCORE]),
        buckets=[bucket([item for item in pool.items if match(item)], label) for label, match in BUCKETS],
    )
