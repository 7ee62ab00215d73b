from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from .lexicon import SentimentLexicon
from .models import clamp

BASELINE_IMPACT = 55
SENTIMENT_WEIGHT = 0.6
SENTIMENT_CAP = 30.0
HEDGE_DAMPING = 0.7
EARNINGS_BONUS = 5

EXPECTED_MIN = 45
EXPECTED_MAX = 95

RUNUP_THRESHOLD = 0.05
SELLOFF_THRESHOLD = -0.05
SURPRISE_CEILING = 0.02
RUNUP_PENALTY = 20
SELLOFF_BONUS = 10
SURPRISE_BONUS = 8


@dataclass(frozen=True)
class HeadlineSentiment:
    score: float
    matched: Tuple[str, ...] = ()
    hedged: bool = False
    mentions_earnings: bool = False

    @property
    def direction(self) -> int:
        if self.score > 0:
            return 1
        if self.score < 0:
            return -1
        return 0


@dataclass(frozen=True)
class ExpectedImpact:
    expected_impact: int
    priced_in: Optional[bool]
    sentiment: HeadlineSentiment

    @property
    def expected_dir(self) -> int:
        return self.sentiment.direction


def _word_pattern(words: Tuple[str, ...]) -> Optional[Pattern[str]]:
    if not words:
        return None
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)


class SentimentEstimator:
    """Pre-measurement impact estimate from headline text and the pre-event run-up.

    Pure: the same headline and ``ret_pre5`` always give the same estimate, and
    outcome returns are never consulted.
    """

    def __init__(
        self,
        lexicon: Optional[SentimentLexicon] = None,
        *,
        baseline: int = BASELINE_IMPACT,
        sentiment_weight: float = SENTIMENT_WEIGHT,
        sentiment_cap: float = SENTIMENT_CAP,
        hedge_damping: float = HEDGE_DAMPING,
        earnings_bonus: int = EARNINGS_BONUS,
    ) -> None:
        self.lexicon = lexicon or SentimentLexicon.default()
        self.baseline = baseline
        self.sentiment_weight = sentiment_weight
        self.sentiment_cap = abs(sentiment_cap)
        self.hedge_damping = hedge_damping
        self.earnings_bonus = earnings_bonus
        self._hedge_re = _word_pattern(self.lexicon.hedge_words)
        self._earnings_re = _word_pattern(self.lexicon.earnings_terms)

    def score_headline(self, headline: str) -> HeadlineSentiment:
        lowered = (headline or "").strip().lower()
        if not lowered:
            return HeadlineSentiment(score=0.0)

        raw = 0.0
        matched: List[str] = []
        for term, weight in self.lexicon.weights.items():
            if term in lowered:
                raw += weight
                matched.append(term)
        score = clamp(raw, -self.sentiment_cap, self.sentiment_cap)

        hedged = bool(self._hedge_re and self._hedge_re.search(lowered))
        if hedged:
            score *= self.hedge_damping

        mentions_earnings = bool(self._earnings_re and self._earnings_re.search(lowered))
        return HeadlineSentiment(
            score=score,
            matched=tuple(matched),
            hedged=hedged,
            mentions_earnings=mentions_earnings,
        )

    def estimate(self, headline: str, ret_pre5: Optional[float]) -> ExpectedImpact:
        sentiment = self.score_headline(headline)
        impact = self.baseline + round(sentiment.score * self.sentiment_weight)
        if sentiment.mentions_earnings:
            impact += self.earnings_bonus
        impact = clamp(impact, EXPECTED_MIN, EXPECTED_MAX)

        priced_in: Optional[bool] = None if ret_pre5 is None else False
        if ret_pre5 is not None:
            if sentiment.score > 0 and ret_pre5 > RUNUP_THRESHOLD:
                # good news the stock already rallied into
                impact -= RUNUP_PENALTY
                priced_in = True
            elif sentiment.score < 0 and ret_pre5 < SELLOFF_THRESHOLD:
                # bad news after a sell-off leaves less room to fall
                impact += SELLOFF_BONUS
                priced_in = True
            elif sentiment.score > 0 and ret_pre5 <= SURPRISE_CEILING:
                impact += SURPRISE_BONUS

        return ExpectedImpact(
            expected_impact=int(clamp(impact, EXPECTED_MIN, EXPECTED_MAX)),
            priced_in=priced_in,
            sentiment=sentiment,
        )

    def classify_catalyst(self, headline: str, category: Optional[str] = None) -> str:
        text = f"{category or ''} {headline or ''}".lower()
        for label, terms in self.lexicon.catalysts.items():
            if label.lower() in text or any(term.lower() in text for term in terms):
                return label
        return "General"
