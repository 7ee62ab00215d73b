from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import CandleSeries

logger = logging.getLogger(__name__)

SMA_FAST = 50
SMA_SLOW = 200
RANGE_WINDOW = 20
MOMENTUM_WINDOW = 10
RSI_PERIOD = 14
VOLUME_WINDOW = 6

MOMENTUM_THRESHOLD = 0.06
PROXIMITY_BAND = 0.02
RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
BREAKOUT_BUFFER = 1.002
VOLUME_SPIKE_MULTIPLIER = 2.2
BULL_TRAP_1D = -0.03
BULL_TRAP_5D = -0.05

TAG_SEPARATOR = " | "


@dataclass(frozen=True)
class TechnicalSnapshot:
    price: Optional[float] = None
    sma_fast: Optional[float] = None
    sma_slow: Optional[float] = None
    trend: Optional[str] = None
    momentum: Optional[float] = None
    near_support: bool = False
    near_resistance: bool = False
    rsi: Optional[float] = None
    breakout: bool = False
    volume_spike: bool = False
    bull_trap: Optional[bool] = None
    tags: Tuple[str, ...] = ()

    def describe(self, catalyst: Optional[str] = None) -> str:
        parts = list(self.tags)
        if catalyst:
            parts.append(f"Catalyst: {catalyst}")
        return TAG_SEPARATOR.join(parts)


def _closes_array(closes: Sequence[float]) -> np.ndarray:
    return np.asarray(closes, dtype=np.float64)


def sma(closes: Sequence[float], idx: int, period: int) -> Optional[float]:
    """Trailing mean of ``period`` closes ending at ``idx``; no partial windows."""

    if idx < 0 or idx >= len(closes) or idx + 1 < period:
        return None
    window = _closes_array(closes)[idx + 1 - period : idx + 1]
    return float(window.mean())


def rsi(closes: Sequence[float], idx: int, period: int = RSI_PERIOD) -> Optional[float]:
    if idx < period or idx >= len(closes):
        return None
    changes = np.diff(_closes_array(closes)[idx - period : idx + 1])
    avg_gain = float(np.clip(changes, 0.0, None).mean())
    avg_loss = float(np.clip(-changes, 0.0, None).mean())
    if avg_loss == 0.0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def trailing_return(closes: Sequence[float], idx: int, window: int = MOMENTUM_WINDOW) -> Optional[float]:
    if idx < window or idx >= len(closes):
        return None
    start = closes[idx - window]
    if start == 0:
        return None
    return (closes[idx] - start) / start


def classify_trend(price: float, fast: Optional[float], slow: Optional[float]) -> Optional[str]:
    if fast is None:
        return None
    if slow is None:
        return "Uptrend" if price >= fast else "Downtrend"
    if price > fast > slow:
        return "Uptrend"
    if price < fast < slow:
        return "Downtrend"
    return "Range"


def is_breakout(closes: Sequence[float], idx: int, window: int = RANGE_WINDOW) -> bool:
    if idx < window + 1 or idx >= len(closes):
        return False
    prior_high = float(_closes_array(closes)[idx - window : idx].max())
    return closes[idx] > prior_high * BREAKOUT_BUFFER


def is_volume_spike(volumes: Optional[Sequence[float]], idx: int, window: int = VOLUME_WINDOW) -> bool:
    if not volumes or idx < window or idx >= len(volumes):
        return False
    baseline = float(np.asarray(volumes[idx - window : idx], dtype=np.float64).mean())
    if baseline <= 0:
        return False
    return volumes[idx] > baseline * VOLUME_SPIKE_MULTIPLIER


def is_bull_trap(breakout: bool, ret_1d: Optional[float], ret_5d: Optional[float]) -> Optional[bool]:
    """Breakout that reversed afterwards; unknown until an outcome return exists."""

    if ret_1d is None and ret_5d is None:
        return None
    if not breakout:
        return False
    return (ret_1d is not None and ret_1d < BULL_TRAP_1D) or (ret_5d is not None and ret_5d < BULL_TRAP_5D)


def analyze(
    candles: Optional[CandleSeries],
    idx: Optional[int],
    *,
    ret_1d: Optional[float] = None,
    ret_5d: Optional[float] = None,
) -> TechnicalSnapshot:
    """Technical tags at the event's aligned candle.

    Outcome returns are only passed by the measurement pass; they drive the
    bull-trap flag and nothing else.
    """

    if candles is None or idx is None or idx < 0 or idx >= len(candles):
        return TechnicalSnapshot()

    closes = candles.closes
    price = closes[idx]
    tags: List[str] = []

    fast = sma(closes, idx, SMA_FAST)
    slow = sma(closes, idx, SMA_SLOW)
    trend = classify_trend(price, fast, slow)
    if trend:
        tags.append(trend)

    momentum = trailing_return(closes, idx)
    if momentum is not None and abs(momentum) >= MOMENTUM_THRESHOLD:
        direction = "up" if momentum > 0 else "down"
        tags.append(f"Momentum {direction} ({momentum * 100:+.1f}%)")

    near_support = near_resistance = False
    if idx + 1 >= RANGE_WINDOW:
        window = _closes_array(closes)[idx + 1 - RANGE_WINDOW : idx + 1]
        low, high = float(window.min()), float(window.max())
        if price <= low * (1.0 + PROXIMITY_BAND):
            near_support = True
            tags.append("Near support")
        elif price >= high * (1.0 - PROXIMITY_BAND):
            near_resistance = True
            tags.append("Near resistance")

    rsi_value = rsi(closes, idx)
    if rsi_value is not None:
        if rsi_value >= RSI_OVERBOUGHT:
            tags.append(f"RSI {rsi_value:.0f} overbought")
        elif rsi_value <= RSI_OVERSOLD:
            tags.append(f"RSI {rsi_value:.0f} oversold")

    breakout = is_breakout(closes, idx)
    if breakout:
        tags.append("20D breakout")

    volume_spike = is_volume_spike(candles.volumes, idx)
    if volume_spike:
        tags.append("Volume spike")

    bull_trap = is_bull_trap(breakout, ret_1d, ret_5d)
    if bull_trap:
        tags.append("Bull trap")

    logger.debug("technical tags at idx=%s: %s", idx, tags)
    return TechnicalSnapshot(
        price=price,
        sma_fast=fast,
        sma_slow=slow,
        trend=trend,
        momentum=momentum,
        near_support=near_support,
        near_resistance=near_resistance,
        rsi=rsi_value,
        breakout=breakout,
        volume_spike=volume_spike,
        bull_trap=bull_trap,
        tags=tuple(tags),
    )
