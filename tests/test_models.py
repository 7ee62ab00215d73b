from __future__ import annotations

import datetime as dt

import pytest

from conftest import at_day
from impact.exceptions import InvariantViolation
from impact.models import CandleSeries, ImpactRecord, NewsEvent, Pool, RecordState, iso_instant, parse_instant


def test_candle_series_rejects_mismatched_lengths() -> None:
    with pytest.raises(InvariantViolation):
        CandleSeries(times=(1, 2, 3), closes=(1.0, 2.0))
    with pytest.raises(InvariantViolation):
        CandleSeries(times=(1, 2), closes=(1.0, 2.0), volumes=(5.0,))
    with pytest.raises(InvariantViolation):
        CandleSeries(times=(2, 1), closes=(1.0, 2.0))


def test_candle_series_from_provider_shape() -> None:
    series = CandleSeries.from_mapping({"t": [1, 2], "c": [10, 11], "v": [100, 200]})
    assert series.closes == (10.0, 11.0)
    assert series.volumes == (100.0, 200.0)
    assert CandleSeries.from_mapping(series.as_dict()) == series


def test_instant_helpers() -> None:
    ts = dt.datetime(2024, 5, 1, 13, 30, tzinfo=dt.timezone.utc)
    assert iso_instant(ts) == "2024-05-01T13:30:00.000Z"
    assert parse_instant("2024-05-01T13:30:00.000Z") == ts
    assert parse_instant(ts.timestamp()) == ts
    assert parse_instant("not a date") is None
    assert parse_instant(True) is None


def test_news_event_from_provider() -> None:
    event = NewsEvent.from_provider(" aapl ", {"headline": " Apple beats ", "publishedAtUnixSeconds": 1704067200})
    assert event.symbol == "AAPL"
    assert event.headline == "Apple beats"
    assert event.published_at == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert event.category is None


def test_record_document_keys(record_factory) -> None:
    record = record_factory(score=90, measured=True, realized_dir=1)
    doc = record.as_dict()
    assert doc["tooEarly"] is False
    assert doc["publishedAt"].endswith("Z")
    assert {"retPre5", "ret1d", "ret5d", "pricedIn", "expectedImpact", "realizedImpact", "technicalContext"} <= doc.keys()

    restored = ImpactRecord.from_dict(doc)
    assert restored.state is RecordState.MEASURED
    assert restored.score == 90


def test_legacy_document_without_measured_at() -> None:
    restored = ImpactRecord.from_dict(
        {"symbol": "AAPL", "headline": "h", "publishedAt": "2024-01-01T00:00:00.000Z", "expectedImpact": 60, "tooEarly": True}
    )
    assert restored.too_early
    assert restored.realized_impact == 60
    assert restored.score == 60


def test_pool_document_defaults() -> None:
    empty = Pool.from_dict(None)
    assert len(empty) == 0 and empty.revision == 0

    pool = Pool(as_of=at_day(3), revision=4)
    assert Pool.from_dict(pool.as_dict()).revision == 4
