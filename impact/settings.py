from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .exceptions import ConfigError

DEFAULT_SYMBOLS: Tuple[str, ...] = ("AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOGL", "TSLA", "AMD")


@dataclass(frozen=True)
class EngineSettings:
    min_age_hours: float = 20.0
    measure_min_score: int = 75
    measure_max_items: int = 25
    max_pool_items: int = 500
    leaderboard_top_n: int = 120
    news_lookback_days: int = 10
    candle_lookback_days: int = 320
    max_news_per_symbol: int = 20
    max_workers: int = 4
    candle_cache_ttl_seconds: float = 1800.0
    pool_key: str = "pool:v1"
    leaderboard_key: str = "leaderboard:v1"
    symbols: Tuple[str, ...] = DEFAULT_SYMBOLS
    store_dir: Path = Path(".impact_store")
    lexicon_path: Optional[Path] = None


_ENV_KEYS: Dict[str, str] = {
    "min_age_hours": "IMPACT_MIN_AGE_HOURS",
    "measure_min_score": "IMPACT_MEASURE_MIN_SCORE",
    "measure_max_items": "IMPACT_MEASURE_MAX_ITEMS",
    "max_pool_items": "IMPACT_MAX_POOL_ITEMS",
    "leaderboard_top_n": "IMPACT_LEADERBOARD_TOP_N",
    "news_lookback_days": "IMPACT_NEWS_LOOKBACK_DAYS",
    "candle_lookback_days": "IMPACT_CANDLE_LOOKBACK_DAYS",
    "max_news_per_symbol": "IMPACT_MAX_NEWS_PER_SYMBOL",
    "max_workers": "IMPACT_MAX_WORKERS",
    "candle_cache_ttl_seconds": "IMPACT_CANDLE_CACHE_TTL",
    "pool_key": "IMPACT_POOL_KEY",
    "leaderboard_key": "IMPACT_LEADERBOARD_KEY",
    "symbols": "IMPACT_SYMBOLS",
    "store_dir": "IMPACT_STORE_DIR",
    "lexicon_path": "IMPACT_LEXICON_PATH",
}


def _resolve_int(raw: Optional[str], default: int, *, minimum: int = 0) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _resolve_float(raw: Optional[str], default: float, *, minimum: float = 0.0) -> float:
    if raw is None or raw.strip() == "":
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        return default


def _resolve_symbols(raw: Any) -> Tuple[str, ...]:
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = [str(part) for part in raw]
    else:
        raise ConfigError(f"symbols must be a list or comma separated string, got {type(raw).__name__}")
    symbols = tuple(dict.fromkeys(part.strip().upper() for part in parts if part.strip()))
    if not symbols:
        raise ConfigError("symbols must name at least one ticker")
    return symbols


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name == "symbols":
        return _resolve_symbols(value)
    if name in {"store_dir", "lexicon_path"}:
        return Path(str(value)) if value not in (None, "") else default
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        return _resolve_int(str(value), default)
    if isinstance(default, float):
        return _resolve_float(str(value), default)
    return str(value)


def _check_yaml_type(name: str, value: Any, default: Any, path: Path) -> None:
    if name == "symbols":
        return
    if name in {"store_dir", "lexicon_path"}:
        ok = value is None or isinstance(value, str)
        expected = "a path string"
    elif isinstance(default, bool):
        ok = isinstance(value, bool)
        expected = "a boolean"
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
        expected = "an integer"
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        expected = "a number"
    else:
        ok = isinstance(value, str)
        expected = "a string"
    if not ok:
        raise ConfigError(f"{name} in {path} must be {expected}, got {value!r}")


def _load_yaml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file missing: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"config file {path} must contain a mapping")
    section = data.get("impact", data)
    if not isinstance(section, Mapping):
        raise ConfigError(f"'impact' section in {path} must be a mapping")
    return section


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineSettings:
    """Defaults, then the YAML file (if any), then ``IMPACT_*`` environment variables."""

    env = os.environ if environ is None else environ
    defaults = EngineSettings()
    values: Dict[str, Any] = {}

    path = config_path or (Path(env["IMPACT_CONFIG_PATH"]) if env.get("IMPACT_CONFIG_PATH") else None)
    if path is not None:
        known = {f.name for f in dataclasses.fields(EngineSettings)}
        section = _load_yaml(path)
        unknown = sorted(set(section) - known)
        if unknown:
            raise ConfigError(f"unknown settings in {path}: {', '.join(unknown)}")
        for name, value in section.items():
            _check_yaml_type(name, value, getattr(defaults, name), path)
            values[name] = _coerce(name, value, getattr(defaults, name))

    for name, env_key in _ENV_KEYS.items():
        raw = env.get(env_key)
        if raw is None or raw.strip() == "":
            continue
        values[name] = _coerce(name, raw, values.get(name, getattr(defaults, name)))

    return dataclasses.replace(defaults, **values)
