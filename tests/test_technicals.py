from __future__ import annotations

import pytest

from conftest import build_candles
from impact import technicals


def _rising(n: int, step: float = 0.01) -> list:
    return [100.0 * (1 + step) ** i for i in range(n)]


def test_sma_requires_full_window() -> None:
    assert technicals.sma([1.0, 2.0, 3.0], 1, 3) is None
    assert technicals.sma([1.0, 2.0, 3.0], 2, 3) == pytest.approx(2.0)


def test_rsi_bounds() -> None:
    closes = _rising(20)
    assert technicals.rsi(closes, 13) is None
    assert technicals.rsi(closes, 15) == pytest.approx(100.0)

    falling = list(reversed(closes))
    assert technicals.rsi(falling, 15) == pytest.approx(0.0)


def test_classify_trend_falls_back_to_fast_average() -> None:
    assert technicals.classify_trend(10.0, None, None) is None
    assert technicals.classify_trend(10.0, 9.0, None) == "Uptrend"
    assert technicals.classify_trend(8.0, 9.0, None) == "Downtrend"
    assert technicals.classify_trend(10.0, 9.0, 8.0) == "Uptrend"
    assert technicals.classify_trend(7.0, 8.0, 9.0) == "Downtrend"
    assert technicals.classify_trend(8.5, 8.0, 9.0) == "Range"


def test_analyze_rising_series_tags() -> None:
    closes = _rising(60)
    snapshot = technicals.analyze(build_candles(closes), 59)

    assert snapshot.trend == "Uptrend"
    assert snapshot.breakout is True
    assert snapshot.near_resistance is True
    assert snapshot.bull_trap is None
    assert "Uptrend" in snapshot.tags
    assert "20D breakout" in snapshot.tags
    assert any(tag.startswith("Momentum up") for tag in snapshot.tags)
    assert "RSI 100 overbought" in snapshot.tags


def test_bull_trap_needs_outcome_and_breakout() -> None:
    candles = build_candles(_rising(60))
    trapped = technicals.analyze(candles, 59, ret_1d=-0.04)
    assert trapped.bull_trap is True
    assert "Bull trap" in trapped.tags

    held = technicals.analyze(candles, 59, ret_1d=0.01, ret_5d=0.02)
    assert held.bull_trap is False

    flat = build_candles([100.0] * 30)
    assert technicals.analyze(flat, 29, ret_5d=-0.10).bull_trap is False


def test_volume_spike() -> None:
    volumes = [1.0] * 6 + [3.0]
    assert technicals.is_volume_spike(volumes, 6)
    assert not technicals.is_volume_spike(volumes, 5)
    assert not technicals.is_volume_spike(None, 6)


def test_unaligned_event_has_no_tags() -> None:
    snapshot = technicals.analyze(None, None)
    assert snapshot.tags == ()
    assert snapshot.describe("Earnings") == "Catalyst: Earnings"


def test_describe_joins_tags() -> None:
    snapshot = technicals.TechnicalSnapshot(tags=("Uptrend", "Volume spike"))
    assert snapshot.describe() == "Uptrend | Volume spike"
    assert snapshot.describe("Analyst") == "Uptrend | Volume spike | Catalyst: Analyst"


def test_flat_range_prefers_support_tag() -> None:
    snapshot = technicals.analyze(build_candles([100.0] * 20), 19)
    assert snapshot.near_support is True
    assert snapshot.near_resistance is False
    assert "Near support" in snapshot.tags
    assert "Near resistance" not in snapshot.tags


def test_analyze_falling_series_tags() -> None:
    snapshot = technicals.analyze(build_candles(_rising(60, step=-0.01)), 59)

    assert snapshot.trend == "Downtrend"
    assert snapshot.near_support is True
    assert "RSI 0 oversold" in snapshot.tags
    assert "Momentum down (-9.6%)" in snapshot.tags
    assert snapshot.breakout is False


def test_analyze_flags_volume_spike() -> None:
    candles = build_candles([100.0] * 10, volumes=[1.0] * 9 + [5.0])
    snapshot = technicals.analyze(candles, 9)
    assert snapshot.volume_spike is True
    assert "Volume spike" in snapshot.tags

    assert technicals.analyze(candles, 8).volume_spike is False
