"""Map news timestamps onto daily candles and derive event returns."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import CandleSeries

PRE_EVENT_OFFSET = 5
SHORT_HORIZON = 1
LONG_HORIZON = 5


@dataclass(frozen=True)
class EventReturns:
    ret_pre5: Optional[float] = None
    ret_1d: Optional[float] = None
    ret_5d: Optional[float] = None


def find_last_le(times: Sequence[int], target: float) -> Optional[int]:
    """Index of the last ``times[i] <= target``; ``None`` when target precedes the series.

    A target on a weekend or holiday resolves to the prior trading day.
    """

    idx = bisect.bisect_right(times, target) - 1
    return idx if idx >= 0 else None


def _pct_change(start: float, end: float) -> Optional[float]:
    if start == 0 or not math.isfinite(start) or not math.isfinite(end):
        return None
    return (end - start) / start


def compute_returns(closes: Sequence[float], idx: Optional[int]) -> EventReturns:
    if idx is None or idx < 0 or idx >= len(closes):
        return EventReturns()
    base = closes[idx]
    if base == 0 or not math.isfinite(base):
        return EventReturns()

    ret_1d = _pct_change(base, closes[idx + SHORT_HORIZON]) if idx + SHORT_HORIZON < len(closes) else None
    ret_5d = _pct_change(base, closes[idx + LONG_HORIZON]) if idx + LONG_HORIZON < len(closes) else None
    ret_pre5 = _pct_change(closes[idx - PRE_EVENT_OFFSET], base) if idx - PRE_EVENT_OFFSET >= 0 else None
    return EventReturns(ret_pre5=ret_pre5, ret_1d=ret_1d, ret_5d=ret_5d)


def align_event(candles: Optional[CandleSeries], published_unix: float) -> Optional[int]:
    if candles is None or candles.empty:
        return None
    return find_last_le(candles.times, published_unix)
