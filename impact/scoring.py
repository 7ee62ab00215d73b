from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from . import technicals
from .alignment import align_event, compute_returns
from .models import CandleSeries, ImpactRecord, NewsEvent, parse_instant, to_unix
from .realized import CONFIDENCE_BASE, CONFIDENCE_PRICED_IN_BONUS, combine_score, evaluate_outcome
from .sentiment import SentimentEstimator

logger = logging.getLogger(__name__)

_DEFAULT_ESTIMATOR: Optional[SentimentEstimator] = None


def _estimator(estimator: Optional[SentimentEstimator]) -> SentimentEstimator:
    global _DEFAULT_ESTIMATOR
    if estimator is not None:
        return estimator
    if _DEFAULT_ESTIMATOR is None:
        _DEFAULT_ESTIMATOR = SentimentEstimator()
    return _DEFAULT_ESTIMATOR


def score_one_event(
    headline: str,
    candles: Optional[CandleSeries],
    published_at: dt.datetime,
    *,
    symbol: str = "",
    category: Optional[str] = None,
    url: Optional[str] = None,
    estimator: Optional[SentimentEstimator] = None,
) -> ImpactRecord:
    """Provisional record for one headline: returns, technical tags and expected impact.

    Missing candles leave every derived field ``None``; the record still gets an
    expected impact from the headline alone.
    """

    instant = parse_instant(published_at)
    if instant is None:
        raise ValueError(f"published_at must be a datetime or instant, got {published_at!r}")
    published_at = instant
    estimator = _estimator(estimator)
    idx = align_event(candles, to_unix(published_at))
    returns = compute_returns(candles.closes if candles is not None else (), idx)
    snapshot = technicals.analyze(candles, idx)

    expected = estimator.estimate(headline, returns.ret_pre5)
    catalyst = estimator.classify_catalyst(headline, category)
    starting_confidence = CONFIDENCE_BASE + (CONFIDENCE_PRICED_IN_BONUS if expected.priced_in else 0)

    return ImpactRecord(
        symbol=symbol.strip().upper(),
        headline=headline.strip(),
        published_at=published_at,
        category=category,
        url=url,
        ret_pre5=returns.ret_pre5,
        ret_1d=returns.ret_1d,
        ret_5d=returns.ret_5d,
        priced_in=expected.priced_in,
        expected_impact=expected.expected_impact,
        realized_impact=expected.expected_impact,
        score=combine_score(expected.expected_impact, None),
        confidence=starting_confidence,
        technical_context=snapshot.describe(catalyst),
        expected_dir=expected.expected_dir,
    )


def score_news_event(
    event: NewsEvent,
    candles: Optional[CandleSeries],
    *,
    estimator: Optional[SentimentEstimator] = None,
) -> ImpactRecord:
    return score_one_event(
        event.headline,
        candles,
        event.published_at,
        symbol=event.symbol,
        category=event.category,
        url=event.url,
        estimator=estimator,
    )


def measure_record(
    record: ImpactRecord,
    candles: Optional[CandleSeries],
    *,
    now: dt.datetime,
    min_age_hours: float,
    estimator: Optional[SentimentEstimator] = None,
) -> Optional[ImpactRecord]:
    """Measured copy of ``record`` or ``None`` while it cannot be measured yet.

    ``None`` leaves the record provisional so the next pass retries it.
    """

    if record.is_measured:
        return None
    if record.age_hours(now) < min_age_hours:
        return None

    idx = align_event(candles, to_unix(record.published_at))
    if candles is None or idx is None:
        logger.debug("no aligned candle for %s at %s", record.symbol, record.published_at)
        return None

    fresh = compute_returns(candles.closes, idx)
    ret_1d = fresh.ret_1d if fresh.ret_1d is not None else record.ret_1d
    ret_5d = fresh.ret_5d if fresh.ret_5d is not None else record.ret_5d
    ret_pre5 = record.ret_pre5 if record.ret_pre5 is not None else fresh.ret_pre5

    outcome = evaluate_outcome(ret_pre5, ret_1d, ret_5d)
    if outcome is None:
        return None

    estimator = _estimator(estimator)
    snapshot = technicals.analyze(candles, idx, ret_1d=ret_1d, ret_5d=ret_5d)
    catalyst = estimator.classify_catalyst(record.headline, record.category)

    return record.measured(
        now=now,
        ret_pre5=ret_pre5,
        ret_1d=ret_1d,
        ret_5d=ret_5d,
        realized_impact=outcome.realized_impact,
        priced_in=outcome.priced_in if outcome.priced_in is not None else record.priced_in,
        confidence=max(outcome.confidence, record.confidence),
        score=combine_score(record.expected_impact, outcome.realized_impact, outcome.penalty),
        technical_context=snapshot.describe(catalyst),
        realized_dir=outcome.realized_dir,
        bull_trap=snapshot.bull_trap,
    )
