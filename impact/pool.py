from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .models import CandleSeries, ImpactRecord, Pool, iso_instant, utcnow
from .scoring import measure_record
from .sentiment import SentimentEstimator

logger = logging.getLogger(__name__)


def dedup_key(record: ImpactRecord) -> str:
    return "|".join(
        (
            record.symbol.strip().lower(),
            iso_instant(record.published_at),
            record.headline.strip().lower(),
        )
    )


def merge_pool(
    existing: Pool,
    new_records: Iterable[ImpactRecord],
    capacity: int,
    *,
    as_of: Optional[dt.datetime] = None,
) -> Pool:
    """Prepend ``new_records`` to the pool, keep the first record per key, stop at ``capacity``.

    Records past the cap are dropped; since new records come first, the oldest
    pool entries go first. The input pool is left untouched.
    """

    if capacity < 0:
        raise ValueError(f"pool capacity must be non-negative, got {capacity}")

    combined: List[ImpactRecord] = [*new_records, *existing.items]
    seen: Set[str] = set()
    kept: List[ImpactRecord] = []
    for record in combined:
        if len(kept) >= capacity:
            break
        key = dedup_key(record)
        if key in seen:
            continue
        seen.add(key)
        kept.append(record)

    dropped = len(combined) - len(kept)
    if dropped:
        logger.debug("merge dropped %d duplicate or over-capacity records", dropped)
    return Pool(as_of=as_of or utcnow(), items=tuple(kept), revision=existing.revision)


def unseen_records(pool: Pool, records: Iterable[ImpactRecord]) -> List[ImpactRecord]:
    """Records whose key is not already pooled; pooled events keep their measured state."""

    known = {dedup_key(item) for item in pool.items}
    return [record for record in records if dedup_key(record) not in known]


def measure_eligible(
    pool: Pool,
    min_score: int,
    min_age_hours: float,
    max_items: int,
    *,
    now: Optional[dt.datetime] = None,
) -> List[ImpactRecord]:
    """Highest-scoring provisional records old enough to have a market reaction."""

    now = now or utcnow()
    candidates = [
        item
        for item in pool.items
        if item.too_early
        and item.measured_at is None
        and item.score >= min_score
        and item.age_hours(now) >= min_age_hours
    ]
    candidates.sort(key=lambda item: item.score, reverse=True)
    return candidates[: max(0, max_items)]


def measure_candidates(
    candidates: Sequence[ImpactRecord],
    candles_by_symbol: Mapping[str, Optional[CandleSeries]],
    *,
    now: dt.datetime,
    min_age_hours: float,
    estimator: Optional[SentimentEstimator] = None,
) -> Dict[str, ImpactRecord]:
    measured: Dict[str, ImpactRecord] = {}
    for record in candidates:
        updated = measure_record(
            record,
            candles_by_symbol.get(record.symbol),
            now=now,
            min_age_hours=min_age_hours,
            estimator=estimator,
        )
        if updated is None:
            logger.debug("%s %r not measurable yet", record.symbol, record.headline[:60])
            continue
        measured[dedup_key(record)] = updated
    return measured


def apply_measurements(
    pool: Pool,
    measured: Mapping[str, ImpactRecord],
    *,
    as_of: Optional[dt.datetime] = None,
) -> Pool:
    """Swap in measured records by key; records already measured in the pool are kept."""

    items: List[ImpactRecord] = []
    for item in pool.items:
        replacement = measured.get(dedup_key(item))
        if replacement is not None and not item.is_measured:
            items.append(replacement)
        else:
            items.append(item)
    return Pool(as_of=as_of or utcnow(), items=tuple(items), revision=pool.revision)
