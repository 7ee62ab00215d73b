from __future__ import annotations

import datetime as dt
from typing import Callable, Optional, Sequence

import pytest

from impact.models import CandleSeries, ImpactRecord, RecordState

DAY = 86400
START_UNIX = 1704067200  # 2024-01-01T00:00:00Z


def build_candles(closes: Sequence[float], volumes: Optional[Sequence[float]] = None, *, start: int = START_UNIX) -> CandleSeries:
    times = tuple(start + i * DAY for i in range(len(closes)))
    return CandleSeries(times=times, closes=tuple(closes), volumes=tuple(volumes) if volumes is not None else None)


def at_day(idx: int, hours: float = 14.0, *, start: int = START_UNIX) -> dt.datetime:
    return dt.datetime.fromtimestamp(start + idx * DAY + int(hours * 3600), tz=dt.timezone.utc)


# Event on day 5: +1% over the prior five sessions, flat next day, +7% five sessions later.
EARNINGS_BEAT_CLOSES = [100.0, 100.0, 100.0, 100.0, 100.0, 101.0, 101.0, 103.0, 104.0, 105.0, 108.07]


@pytest.fixture
def record_factory() -> Callable[..., ImpactRecord]:
    def _make(
        symbol: str = "AAPL",
        headline: str = "Headline",
        *,
        published_at: Optional[dt.datetime] = None,
        score: int = 80,
        expected_dir: int = 0,
        realized_dir: Optional[int] = None,
        measured: bool = False,
        category: Optional[str] = None,
        technical_context: str = "",
        bull_trap: Optional[bool] = None,
    ) -> ImpactRecord:
        published = published_at or at_day(0)
        return ImpactRecord(
            symbol=symbol,
            headline=headline,
            published_at=published,
            category=category,
            url=None,
            ret_pre5=None,
            ret_1d=None,
            ret_5d=None,
            priced_in=None,
            expected_impact=score,
            realized_impact=score,
            score=score,
            confidence=30,
            technical_context=technical_context,
            expected_dir=expected_dir,
            realized_dir=realized_dir,
            bull_trap=bull_trap,
            state=RecordState.MEASURED if measured else RecordState.PROVISIONAL,
            measured_at=published + dt.timedelta(days=6) if measured else None,
        )

    return _make
