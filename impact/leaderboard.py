from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

import pandas as pd

from .models import ImpactRecord, LeaderboardView, Pool, utcnow

DEFAULT_TOP_N = 120

FRAME_COLUMNS = [
    "symbol",
    "score",
    "confidence",
    "expectedImpact",
    "realizedImpact",
    "pricedIn",
    "tooEarly",
    "retPre5",
    "ret1d",
    "ret5d",
    "publishedAt",
    "headline",
    "technicalContext",
    "url",
]


def reduce_leaderboard(
    pool: Pool,
    top_n: int = DEFAULT_TOP_N,
    *,
    as_of: Optional[dt.datetime] = None,
) -> LeaderboardView:
    """Best-scoring record per symbol, highest score first; ties keep first-seen order."""

    best: Dict[str, ImpactRecord] = {}
    for item in pool.items:
        current = best.get(item.symbol)
        if current is None or item.score > current.score:
            best[item.symbol] = item

    ranked: List[ImpactRecord] = sorted(best.values(), key=lambda item: item.score, reverse=True)
    return LeaderboardView(as_of=as_of or utcnow(), items=tuple(ranked[: max(0, top_n)]))


def leaderboard_frame(view: LeaderboardView) -> pd.DataFrame:
    rows = [item.as_dict() for item in view.items]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame.index = pd.RangeIndex(start=1, stop=len(frame) + 1, name="rank")
    return frame
