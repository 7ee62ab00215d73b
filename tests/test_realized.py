from __future__ import annotations

from impact import realized
from impact.sentiment import SentimentEstimator


def test_realized_impact_scales_with_move() -> None:
    assert realized.realized_impact(None, None) is None
    assert realized.realized_impact(0.02, None) == 70
    assert realized.realized_impact(-0.03, None) == 80
    assert realized.realized_impact(0.01, 0.07) == 100
    assert realized.realized_impact(0.0, None) == 50


def test_priced_in_against_outcome() -> None:
    assert realized.priced_in_realized(None, 0.05) is None
    assert realized.priced_in_realized(0.01, 0.07) is False
    assert realized.priced_in_realized(0.08, 0.02) is True
    assert realized.priced_in_realized(-0.08, 0.02) is True


def test_penalty_capped_and_monotonic() -> None:
    assert realized.priced_in_penalty(0.01, 0.07) == 0
    assert realized.priced_in_penalty(0.08, 0.02) == 25
    assert realized.priced_in_penalty(0.03, 0.025) == 6

    penalties = [realized.priced_in_penalty(pre / 100, 0.02) for pre in range(0, 10)]
    assert penalties == sorted(penalties)


def test_confidence_tracks_available_horizons() -> None:
    assert realized.confidence(None, None) == 30
    assert realized.confidence(0.01, None) == 70
    assert realized.confidence(0.01, 0.02) == 90
    assert realized.confidence(0.01, 0.02, True) == 95
    assert realized.confidence(None, None, True) == 35


def test_combine_score_bounds() -> None:
    assert realized.combine_score(86, 100) == 96
    assert realized.combine_score(45, None) == 45
    assert realized.combine_score(40, 50, penalty=25) == 40
    assert realized.combine_score(94, 100, penalty=0) == 98


def test_move_direction_dead_zone() -> None:
    assert realized.move_direction(0.001) == 0
    assert realized.move_direction(0.02) == 1
    assert realized.move_direction(-0.02) == -1
    assert realized.move_direction(None) == 0


def test_evaluate_outcome() -> None:
    assert realized.evaluate_outcome(0.01, None, None) is None

    outcome = realized.evaluate_outcome(0.01, 0.0, 0.07)
    assert outcome is not None
    assert outcome.realized_impact == 100
    assert outcome.priced_in is False
    assert outcome.penalty == 0
    assert outcome.confidence == 90
    assert outcome.realized_dir == 1


def test_bounds_hold_over_input_grid() -> None:
    estimator = SentimentEstimator()
    headlines = [
        "Company X beats earnings, raises guidance",
        "Company Y misses, shares already fell 8% this week",
        "Record rally after upgrade and buyback",
        "Lawsuit, recall and downgrade hit shares",
        "Company holds annual meeting",
    ]
    moves = [None, -0.4, -0.08, -0.01, 0.0, 0.01, 0.03, 0.08, 0.4]
    for headline in headlines:
        for pre in moves:
            expected = estimator.estimate(headline, pre).expected_impact
            assert 45 <= expected <= 95
            for r1 in moves:
                for r5 in moves:
                    impact = realized.realized_impact(r1, r5)
                    assert impact is None or 50 <= impact <= 100
                    penalty = realized.priced_in_penalty(pre, realized.used_return(r1, r5))
                    assert 40 <= realized.combine_score(expected, impact, penalty) <= 100
                    assert 0 <= realized.confidence(r1, r5, realized.priced_in_realized(pre, r1)) <= 100
