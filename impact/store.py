from __future__ import annotations

import abc
import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .data_contracts import validate_payload
from .exceptions import StoreError
from .models import CandleSeries

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
CandleFetcher = Callable[[str, int, int], Optional[CandleSeries]]

SECONDS_PER_DAY = 86400


def make_store_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def force_refresh_from_env() -> bool:
    return os.getenv("IMPACT_CACHE_FORCE_REFRESH", "false").strip().lower() in {"1", "true", "yes", "on"}


def _expiry(clock: Clock, ttl_seconds: Optional[float]) -> Optional[float]:
    if ttl_seconds is None or ttl_seconds <= 0:
        return None
    return clock() + float(ttl_seconds)


class DocumentStore(abc.ABC):
    """Key-value document store: JSON-compatible values, optional TTL per key."""

    @abc.abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value or ``None`` when missing or expired."""

    @abc.abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store ``value`` under ``key``; ``ttl_seconds`` of ``None`` never expires."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""


class MemoryStore(DocumentStore):
    """In-process store; values are copied through JSON like a remote store would."""

    def __init__(self, *, clock: Clock = time.time) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        self._data[key] = (json.dumps(value), _expiry(self._clock, ttl_seconds))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(DocumentStore):
    """One JSON file per key under ``base_dir``; file names are hashed keys."""

    def __init__(self, base_dir: Optional[Path] = None, *, clock: Clock = time.time) -> None:
        self.base_dir = Path(base_dir or os.getenv("IMPACT_STORE_DIR", ".impact_store"))
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _path_for(self, key: str) -> Path:
        return self.base_dir / f"{make_store_key(key)}.json"

    def get(self, key: str) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            envelope = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreError(f"stored document for {key!r} is unreadable: {exc}") from exc
        if not isinstance(envelope, dict) or "value" not in envelope:
            raise StoreError(f"stored document for {key!r} has no value envelope")
        expires_at = envelope.get("expires_at")
        if expires_at is not None and self._clock() >= float(expires_at):
            self.delete(key)
            return None
        return envelope["value"]

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        path = self._path_for(key)
        envelope = {"key": key, "value": value, "expires_at": _expiry(self._clock, ttl_seconds)}
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(envelope), encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)


class CachedCandleSource:
    """Wrap a candle fetcher with a TTL cache in a document store.

    Keys use whole days so repeated passes on the same day share one fetch.
    Missing series are not cached; cached documents that fail the candle
    contract are refetched.
    """

    def __init__(
        self,
        fetch: CandleFetcher,
        store: DocumentStore,
        *,
        ttl_seconds: float = 1800.0,
        force_refresh: Optional[bool] = None,
    ) -> None:
        self.fetch = fetch
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.force_refresh = force_refresh_from_env() if force_refresh is None else force_refresh

    @staticmethod
    def cache_key(symbol: str, from_unix: int, to_unix: int) -> str:
        return f"candles:v1:{symbol.upper()}:{from_unix // SECONDS_PER_DAY}:{to_unix // SECONDS_PER_DAY}"

    def __call__(self, symbol: str, from_unix: int, to_unix: int) -> Optional[CandleSeries]:
        key = self.cache_key(symbol, from_unix, to_unix)
        if not self.force_refresh:
            cached = self.store.get(key)
            if cached is not None:
                ok, msg = validate_payload("candles", cached)
                if ok:
                    logger.debug("candle cache hit for %s", symbol)
                    return CandleSeries.from_mapping(cached)
                logger.warning("discarding cached candles for %s: %s", symbol, msg)
                self.store.delete(key)
        series = self.fetch(symbol, from_unix, to_unix)
        if series is not None:
            self.store.set(key, series.as_dict(), ttl_seconds=self.ttl_seconds)
        return series
