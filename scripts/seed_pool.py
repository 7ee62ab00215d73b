from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from impact.engine import ImpactEngine  # noqa: E402
from impact.models import CandleSeries, utcnow  # noqa: E402
from impact.settings import load_settings  # noqa: E402
from impact.store import JsonFileStore  # noqa: E402

HEADLINES = [
    "{sym} beats earnings, raises guidance",
    "{sym} misses revenue estimates as demand falls",
    "Analyst upgrade lifts {sym} to buy",
    "{sym} faces antitrust probe in Europe",
    "{sym} announces record buyback",
    "{sym} shares drop despite strong demand",
    "{sym} unveils new product lineup",
]


class SyntheticMarket:
    """Deterministic random-walk candles and canned headlines per symbol."""

    def __init__(self, now: dt.datetime, *, days: int = 320, seed: int = 7) -> None:
        self.now = now
        self.days = days
        self.seed = seed
        self._cache: Dict[str, CandleSeries] = {}

    def _rng(self, symbol: str) -> np.random.Generator:
        return np.random.default_rng(self.seed + sum(ord(ch) for ch in symbol))

    def candles(self, symbol: str, from_unix: int, to_unix: int) -> Optional[CandleSeries]:
        if symbol not in self._cache:
            rng = self._rng(symbol)
            today = self.now.replace(hour=0, minute=0, second=0, microsecond=0)
            start = today - dt.timedelta(days=self.days - 1)
            times = [int((start + dt.timedelta(days=i)).timestamp()) for i in range(self.days)]
            steps = rng.normal(0.0005, 0.02, size=self.days)
            closes = 100.0 * np.exp(np.cumsum(steps))
            volumes = rng.integers(1_000_000, 3_000_000, size=self.days).astype(float)
            self._cache[symbol] = CandleSeries(
                times=tuple(times),
                closes=tuple(float(c) for c in closes),
                volumes=tuple(float(v) for v in volumes),
            )
        series = self._cache[symbol]
        keep = [i for i, t in enumerate(series.times) if from_unix <= t <= to_unix]
        if not keep:
            return None
        return CandleSeries(
            times=tuple(series.times[i] for i in keep),
            closes=tuple(series.closes[i] for i in keep),
            volumes=tuple(series.volumes[i] for i in keep) if series.volumes else None,
        )

    def news(self, symbol: str, from_date: dt.date, to_date: dt.date) -> List[Dict[str, object]]:
        rng = self._rng(symbol)
        picks = rng.choice(len(HEADLINES), size=4, replace=False)
        items: List[Dict[str, object]] = []
        for offset, pick in enumerate(picks, start=1):
            published = self.now - dt.timedelta(days=2 * offset, hours=int(rng.integers(0, 8)))
            if published.date() < from_date:
                continue
            items.append(
                {
                    "headline": HEADLINES[pick].format(sym=symbol),
                    "category": "company",
                    "url": f"https://example.com/{symbol.lower()}/{offset}",
                    "publishedAtUnixSeconds": int(published.timestamp()),
                }
            )
        return items


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed a local store with a synthetic pool.")
    parser.add_argument("--store-dir", type=Path, default=PROJECT_ROOT / ".impact_store")
    parser.add_argument("--config", type=Path, help="Optional YAML settings file.")
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    settings = load_settings(args.config)
    now = utcnow()
    market = SyntheticMarket(now, days=settings.candle_lookback_days, seed=args.seed)
    engine = ImpactEngine(
        store=JsonFileStore(args.store_dir),
        fetch_news=market.news,
        fetch_candles=market.candles,
        settings=settings,
        clock=lambda: now,
    )
    summary = {
        "scan": engine.scan().as_dict(),
        "measure": engine.measure().as_dict(),
        "metrics": engine.metrics().as_dict(),
    }
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
