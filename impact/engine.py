from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .data_contracts import validate_payload
from .exceptions import InvariantViolation, PoolConflictError, StoreError
from .leaderboard import reduce_leaderboard
from .lexicon import SentimentLexicon
from .metrics import PoolMetrics, compute_metrics
from .models import CandleSeries, ImpactRecord, LeaderboardView, NewsEvent, Pool, iso_instant, to_unix, utcnow
from .pool import apply_measurements, measure_candidates, measure_eligible, merge_pool, unseen_records
from .scoring import score_news_event
from .sentiment import SentimentEstimator
from .settings import EngineSettings
from .store import CachedCandleSource, CandleFetcher, DocumentStore

logger = logging.getLogger(__name__)

NewsFetcher = Callable[[str, dt.date, dt.date], Sequence[Mapping[str, Any]]]
Clock = Callable[[], dt.datetime]
T = TypeVar("T")


@dataclass
class ScanReport:
    as_of: dt.datetime
    symbols: int
    news_items: int = 0
    new_records: int = 0
    pool_size: int = 0
    failed_symbols: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        out = dataclasses.asdict(self)
        out["as_of"] = iso_instant(self.as_of)
        return out


@dataclass
class MeasureReport:
    as_of: dt.datetime
    candidates: int = 0
    measured: int = 0
    unique_symbols_fetched: int = 0
    failed_symbols: List[str] = field(default_factory=list)
    note: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        out = dataclasses.asdict(self)
        out["as_of"] = iso_instant(self.as_of)
        return out


class ImpactEngine:
    """Runs the scan and measure passes against a document store.

    Each pass reads the whole pool, computes a new pool value and writes it back
    together with the derived leaderboard. Per-symbol fetch failures are logged
    and skipped; the rest of the batch continues.
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        fetch_news: NewsFetcher,
        fetch_candles: CandleFetcher,
        settings: Optional[EngineSettings] = None,
        estimator: Optional[SentimentEstimator] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.fetch_news = fetch_news
        self.settings = settings or EngineSettings()
        self.fetch_candles = CachedCandleSource(
            fetch_candles, store, ttl_seconds=self.settings.candle_cache_ttl_seconds
        )
        self.estimator = estimator or SentimentEstimator(SentimentLexicon.load(self.settings.lexicon_path))
        self.clock = clock

    # ------------------------------------------------------------------ store boundary
    def load_pool(self) -> Pool:
        raw = self.store.get(self.settings.pool_key)
        if raw is None:
            return Pool(as_of=self.clock())
        ok, msg = validate_payload("pool", raw)
        if not ok:
            raise StoreError(f"pool document {self.settings.pool_key!r} is malformed: {msg}")
        return Pool.from_dict(raw)

    def save_pool(self, pool: Pool, *, expected_revision: int) -> Pool:
        """Write ``pool`` unless another pass wrote since it was read."""

        current = self.store.get(self.settings.pool_key)
        current_revision = int(current.get("revision", 0) or 0) if isinstance(current, Mapping) else 0
        if current_revision != expected_revision:
            raise PoolConflictError(
                f"pool revision moved from {expected_revision} to {current_revision} during the pass"
            )
        saved = dataclasses.replace(pool, revision=expected_revision + 1)
        self.store.set(self.settings.pool_key, saved.as_dict())
        board = reduce_leaderboard(saved, self.settings.leaderboard_top_n, as_of=saved.as_of)
        self.store.set(self.settings.leaderboard_key, board.as_dict())
        return saved

    # ------------------------------------------------------------------ fetch helpers
    def _candle_window(self, now: dt.datetime) -> Tuple[int, int]:
        end = to_unix(now)
        return end - self.settings.candle_lookback_days * 86400, end

    def _fan_out(self, symbols: Sequence[str], task: Callable[[str], T]) -> Tuple[Dict[str, T], List[str]]:
        results: Dict[str, T] = {}
        failed: List[str] = []
        if not symbols:
            return results, failed
        workers = max(1, min(self.settings.max_workers, len(symbols)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {symbol: pool.submit(task, symbol) for symbol in symbols}
            for symbol, future in futures.items():
                try:
                    results[symbol] = future.result()
                except InvariantViolation:
                    raise
                except Exception as exc:
                    logger.warning("skipping %s: %s", symbol, exc)
                    failed.append(symbol)
        return results, failed

    def _collect_symbol(self, symbol: str, now: dt.datetime) -> Tuple[int, List[ImpactRecord]]:
        to_date = now.date()
        from_date = to_date - dt.timedelta(days=self.settings.news_lookback_days)
        items = self.fetch_news(symbol, from_date, to_date) or []

        events: List[NewsEvent] = []
        for item in items:
            ok, msg = validate_payload("news_item", item)
            if not ok:
                logger.debug("dropping %s news item: %s", symbol, msg)
                continue
            events.append(NewsEvent.from_provider(symbol, item))
        if not events:
            return len(items), []

        events.sort(key=lambda event: event.published_at, reverse=True)
        events = events[: self.settings.max_news_per_symbol]
        window_start, window_end = self._candle_window(now)
        candles: Optional[CandleSeries] = self.fetch_candles(symbol, window_start, window_end)
        if candles is None:
            logger.info("%s: no candles, scoring headlines only", symbol)
        return len(items), [score_news_event(event, candles, estimator=self.estimator) for event in events]

    # ------------------------------------------------------------------ passes
    def scan(self, symbols: Optional[Sequence[str]] = None) -> ScanReport:
        now = self.clock()
        universe = [s.strip().upper() for s in (symbols or self.settings.symbols) if s.strip()]
        universe = list(dict.fromkeys(universe))
        report = ScanReport(as_of=now, symbols=len(universe))

        results, failed = self._fan_out(universe, lambda symbol: self._collect_symbol(symbol, now))
        report.failed_symbols = failed

        collected: List[ImpactRecord] = []
        for symbol in universe:
            if symbol not in results:
                continue
            n_items, records = results[symbol]
            report.news_items += n_items
            collected.extend(records)

        pool = self.load_pool()
        fresh = unseen_records(pool, collected)
        merged = merge_pool(pool, fresh, self.settings.max_pool_items, as_of=now)
        saved = self.save_pool(merged, expected_revision=pool.revision)

        report.new_records = len(fresh)
        report.pool_size = len(saved)
        logger.info(
            "scan: %d symbols, %d failed, %d new records, pool size %d",
            report.symbols,
            len(failed),
            report.new_records,
            report.pool_size,
        )
        return report

    def measure(self) -> MeasureReport:
        now = self.clock()
        report = MeasureReport(as_of=now)
        pool = self.load_pool()
        if not pool.items:
            report.note = "pool empty"
            return report

        candidates = measure_eligible(
            pool,
            self.settings.measure_min_score,
            self.settings.min_age_hours,
            self.settings.measure_max_items,
            now=now,
        )
        report.candidates = len(candidates)
        if not candidates:
            report.note = "no eligible items"
            return report

        symbols = list(dict.fromkeys(record.symbol for record in candidates))
        window_start, window_end = self._candle_window(now)
        candles, failed = self._fan_out(symbols, lambda symbol: self.fetch_candles(symbol, window_start, window_end))
        report.unique_symbols_fetched = len(symbols)
        report.failed_symbols = failed

        measured = measure_candidates(
            candidates,
            candles,
            now=now,
            min_age_hours=self.settings.min_age_hours,
            estimator=self.estimator,
        )
        updated = apply_measurements(pool, measured, as_of=now)
        self.save_pool(updated, expected_revision=pool.revision)

        report.measured = len(measured)
        logger.info("measure: %d candidates, %d measured", report.candidates, report.measured)
        return report

    # ------------------------------------------------------------------ views
    def leaderboard(self, top_n: Optional[int] = None) -> LeaderboardView:
        limit = self.settings.leaderboard_top_n if top_n is None else top_n
        return reduce_leaderboard(self.load_pool(), limit, as_of=self.clock())

    def metrics(self) -> PoolMetrics:
        return compute_metrics(self.load_pool())
