from __future__ import annotations

from .engine import ImpactEngine, MeasureReport, ScanReport
from .leaderboard import leaderboard_frame, reduce_leaderboard
from .metrics import PoolMetrics, compute_metrics
from .models import CandleSeries, ImpactRecord, LeaderboardView, NewsEvent, Pool, RecordState
from .pool import dedup_key, measure_eligible, merge_pool
from .scoring import measure_record, score_one_event
from .settings import EngineSettings, load_settings
from .store import JsonFileStore, MemoryStore

__all__ = [
    "CandleSeries",
    "EngineSettings",
    "ImpactEngine",
    "ImpactRecord",
    "JsonFileStore",
    "LeaderboardView",
    "MeasureReport",
    "MemoryStore",
    "NewsEvent",
    "Pool",
    "PoolMetrics",
    "RecordState",
    "ScanReport",
    "compute_metrics",
    "dedup_key",
    "leaderboard_frame",
    "load_settings",
    "measure_eligible",
    "measure_record",
    "merge_pool",
    "reduce_leaderboard",
    "score_one_event",
]
