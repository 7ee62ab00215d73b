"""Outcome-based impact, priced-in rules, confidence and the final score blend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import clamp

REALIZED_BASE = 50
REALIZED_MAX = 100
POINTS_PER_UNIT_MOVE = 1000
MAX_MOVE_POINTS = 50

PRICED_IN_RATIO = 0.9
PRICED_IN_PENALTY_SCALE = 1200
PRICED_IN_PENALTY_MAX = 25

CONFIDENCE_BASE = 30
CONFIDENCE_1D = 70
CONFIDENCE_5D = 90
CONFIDENCE_PRICED_IN_BONUS = 5

REALIZED_WEIGHT = 0.7
EXPECTED_WEIGHT = 0.3
SCORE_MIN = 40
SCORE_MAX = 100

FLAT_MOVE = 0.005


@dataclass(frozen=True)
class RealizedOutcome:
    realized_impact: int
    priced_in: Optional[bool]
    penalty: int
    confidence: int
    realized_dir: int


def used_return(ret_1d: Optional[float], ret_5d: Optional[float]) -> Optional[float]:
    return ret_5d if ret_5d is not None else ret_1d


def realized_impact(ret_1d: Optional[float], ret_5d: Optional[float]) -> Optional[int]:
    """Each 1% of absolute post-event move adds ~10 points on top of 50."""

    r_used = used_return(ret_1d, ret_5d)
    if r_used is None:
        return None
    move_points = clamp(round(abs(r_used) * POINTS_PER_UNIT_MOVE), 0, MAX_MOVE_POINTS)
    return int(clamp(REALIZED_BASE + move_points, REALIZED_BASE, REALIZED_MAX))


def priced_in_realized(ret_pre5: Optional[float], r_used: Optional[float]) -> Optional[bool]:
    if ret_pre5 is None or r_used is None:
        return None
    return abs(ret_pre5) > abs(r_used) * PRICED_IN_RATIO


def priced_in_penalty(ret_pre5: Optional[float], r_used: Optional[float]) -> int:
    """Non-decreasing in ``abs(ret_pre5)`` for a fixed ``r_used``; zero unless priced in."""

    if not priced_in_realized(ret_pre5, r_used):
        return 0
    assert ret_pre5 is not None and r_used is not None
    return int(clamp(round((abs(ret_pre5) - abs(r_used)) * PRICED_IN_PENALTY_SCALE), 0, PRICED_IN_PENALTY_MAX))


def confidence(ret_1d: Optional[float], ret_5d: Optional[float], priced_in: Optional[bool] = None) -> int:
    value = CONFIDENCE_BASE
    if ret_1d is not None:
        value = CONFIDENCE_1D
    if ret_5d is not None:
        value = CONFIDENCE_5D
    if priced_in:
        value += CONFIDENCE_PRICED_IN_BONUS
    return int(clamp(value, 0, 100))


def move_direction(move: Optional[float], dead_zone: float = FLAT_MOVE) -> int:
    if move is None or abs(move) < dead_zone:
        return 0
    return 1 if move > 0 else -1


def combine_score(expected_impact: int, realized: Optional[int], penalty: int = 0) -> int:
    if realized is None:
        blended = expected_impact
    else:
        blended = round(realized * REALIZED_WEIGHT + expected_impact * EXPECTED_WEIGHT)
    return int(clamp(blended - penalty, SCORE_MIN, SCORE_MAX))


def evaluate_outcome(
    ret_pre5: Optional[float],
    ret_1d: Optional[float],
    ret_5d: Optional[float],
) -> Optional[RealizedOutcome]:
    """Realized-side numbers for a record, or ``None`` without any outcome return."""

    r_used = used_return(ret_1d, ret_5d)
    impact = realized_impact(ret_1d, ret_5d)
    if impact is None:
        return None
    priced_in = priced_in_realized(ret_pre5, r_used)
    return RealizedOutcome(
        realized_impact=impact,
        priced_in=priced_in,
        penalty=priced_in_penalty(ret_pre5, r_used),
        confidence=confidence(ret_1d, ret_5d, priced_in),
        realized_dir=move_direction(r_used),
    )
