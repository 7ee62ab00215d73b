"""Headline lexicon used by the expected-impact estimator."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml

from .exceptions import ConfigError

KEYWORD_WEIGHT = 15.0

BULLISH_TERMS: Sequence[str] = (
    "beat",
    "raise",
    "record",
    "upgrade",
    "surge",
    "soar",
    "jump",
    "rally",
    "outperform",
    "strong demand",
    "buyback",
    "approval",
    "approved",
    "wins contract",
    "partnership",
    "expands",
    "tops estimates",
    "all-time high",
)

BEARISH_TERMS: Sequence[str] = (
    "miss",
    "downgrade",
    "cuts",
    "slash",
    "plunge",
    "tumble",
    "fell",
    "falls",
    "drop",
    "sinks",
    "lawsuit",
    "probe",
    "investigation",
    "recall",
    "layoff",
    "weak",
    "warning",
    "bankruptcy",
    "delay",
    "underperform",
)

HEDGE_WORDS: Sequence[str] = ("but", "despite", "however", "although")

EARNINGS_TERMS: Sequence[str] = ("earnings", "guidance", "eps", "quarterly results", "revenue")

CATALYST_KEYWORDS: Mapping[str, Sequence[str]] = {
    "Earnings": ("earnings", "eps", "guidance", "quarter", "revenue", "results"),
    "Analyst": ("upgrade", "downgrade", "price target", "analyst", "initiates", "rating"),
    "M&A": ("acquire", "acquisition", "merger", "buyout", "takeover", "deal to buy"),
    "Regulatory": ("fda", "sec ", "approval", "regulator", "antitrust", "ftc"),
    "Legal": ("lawsuit", "court", "settlement", "probe", "investigation"),
    "Product": ("launch", "unveil", "product", "release", "recall"),
}


@dataclass(frozen=True)
class SentimentLexicon:
    weights: Mapping[str, float]
    hedge_words: Tuple[str, ...] = tuple(HEDGE_WORDS)
    earnings_terms: Tuple[str, ...] = tuple(EARNINGS_TERMS)
    catalysts: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: {name: tuple(terms) for name, terms in CATALYST_KEYWORDS.items()}
    )

    def __post_init__(self) -> None:
        normalized = {str(term).strip().lower(): float(weight) for term, weight in self.weights.items()}
        object.__setattr__(self, "weights", {term: w for term, w in normalized.items() if term})
        object.__setattr__(self, "hedge_words", tuple(w.strip().lower() for w in self.hedge_words))
        object.__setattr__(self, "earnings_terms", tuple(t.strip().lower() for t in self.earnings_terms))

    @classmethod
    def default(cls) -> "SentimentLexicon":
        return cls(weights=build_weights(BULLISH_TERMS, BEARISH_TERMS))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SentimentLexicon":
        """Build from ``{bullish, bearish, keyword_weight, weights, hedge_words, ...}``.

        Missing sections fall back to the built-in tables.
        """

        weight = float(payload.get("keyword_weight", KEYWORD_WEIGHT))
        weights: Dict[str, float] = build_weights(
            payload.get("bullish", BULLISH_TERMS),
            payload.get("bearish", BEARISH_TERMS),
            weight=weight,
        )
        explicit = payload.get("weights") or {}
        if not isinstance(explicit, Mapping):
            raise ConfigError("lexicon 'weights' must be a mapping of term -> weight")
        weights.update({str(k): float(v) for k, v in explicit.items()})

        catalysts = payload.get("catalysts") or CATALYST_KEYWORDS
        if not isinstance(catalysts, Mapping):
            raise ConfigError("lexicon 'catalysts' must be a mapping of label -> terms")
        return cls(
            weights=weights,
            hedge_words=tuple(payload.get("hedge_words", HEDGE_WORDS)),
            earnings_terms=tuple(payload.get("earnings_terms", EARNINGS_TERMS)),
            catalysts={str(label): tuple(terms) for label, terms in catalysts.items()},
        )

    @classmethod
    def load(cls, path: Optional[Path]) -> "SentimentLexicon":
        if path is None:
            return cls.default()
        if not path.exists():
            raise ConfigError(f"lexicon file missing: {path}")
        text = path.read_text(encoding="utf-8")
        try:
            payload = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        except (ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f"lexicon file {path} is not valid: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise ConfigError(f"lexicon file {path} must contain a mapping")
        return cls.from_mapping(payload)


def build_weights(
    bullish: Sequence[str],
    bearish: Sequence[str],
    *,
    weight: float = KEYWORD_WEIGHT,
) -> Dict[str, float]:
    table: Dict[str, float] = {}
    for term in bullish:
        table[term.lower()] = weight
    for term in bearish:
        table[term.lower()] = -weight
    return table
