from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from integrations.finnhub_client import FinnhubClient, FinnhubClientError

from .engine import ImpactEngine
from .exceptions import ImpactEngineError
from .leaderboard import leaderboard_frame
from .settings import EngineSettings, load_settings
from .store import JsonFileStore

logger = logging.getLogger(__name__)


def _resolve_log_level(raw: Optional[str]) -> int:
    level = logging.getLevelName((raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else _resolve_log_level(os.getenv("IMPACT_LOG_LEVEL"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_engine(settings: EngineSettings, *, client: Optional[FinnhubClient] = None) -> ImpactEngine:
    client = client or FinnhubClient.from_env()
    return ImpactEngine(
        store=JsonFileStore(settings.store_dir),
        fetch_news=client.company_news,
        fetch_candles=client.daily_candles,
        settings=settings,
    )


def _emit(payload: Any, pretty: bool) -> None:
    print(json.dumps(payload, indent=2 if pretty else None))


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score how strongly company news moved its stock.")
    parser.add_argument("--config", type=Path, help="YAML settings file.")
    parser.add_argument("--store-dir", type=Path, help="Directory for pool and cache documents.")
    parser.add_argument("--json", action="store_true", help="Pretty-print JSON output.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Fetch news, score it and merge into the pool.")
    scan.add_argument("symbols", nargs="*", help="Tickers to scan; defaults to the configured universe.")

    sub.add_parser("measure", help="Measure realized impact for aged high-score records.")

    board = sub.add_parser("leaderboard", help="Best record per symbol.")
    board.add_argument("--top", type=int, default=None, help="Number of rows.")
    board.add_argument("--csv", type=Path, help="Also write the leaderboard as CSV.")

    sub.add_parser("metrics", help="Direction accuracy over measured records.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(args.config)
        if args.store_dir is not None:
            settings = dataclasses.replace(settings, store_dir=args.store_dir)
        engine = build_engine(settings)

        if args.command == "scan":
            _emit(engine.scan(args.symbols or None).as_dict(), args.json)
        elif args.command == "measure":
            _emit(engine.measure().as_dict(), args.json)
        elif args.command == "leaderboard":
            view = engine.leaderboard(args.top)
            if args.csv:
                leaderboard_frame(view).to_csv(args.csv)
                logger.info("wrote %d rows to %s", len(view), args.csv)
            _emit(view.as_dict(), args.json)
        elif args.command == "metrics":
            _emit(engine.metrics().as_dict(), args.json)
    except (ImpactEngineError, FinnhubClientError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
