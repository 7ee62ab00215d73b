from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .exceptions import InvalidTransition, InvariantViolation


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_instant(value: Any) -> Optional[dt.datetime]:
    """Coerce datetimes, unix seconds or ISO strings to an aware UTC datetime."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return dt.datetime.fromtimestamp(value, tz=dt.timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parse_instant(parsed)
    return None


def iso_instant(ts: dt.datetime) -> str:
    """Millisecond UTC ISO string, e.g. ``2024-05-01T13:30:00.000Z``."""

    ts = ts.astimezone(dt.timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def to_unix(ts: dt.datetime) -> int:
    return int(math.floor(ts.timestamp()))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


# ---------------------------------------------------------------------- candles


@dataclass(frozen=True)
class CandleSeries:
    """Daily candle closes keyed by day-start unix seconds."""

    times: Tuple[int, ...]
    closes: Tuple[float, ...]
    volumes: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "times", tuple(int(t) for t in self.times))
        object.__setattr__(self, "closes", tuple(float(c) for c in self.closes))
        if self.volumes is not None:
            object.__setattr__(self, "volumes", tuple(float(v) for v in self.volumes))

        if len(self.times) != len(self.closes):
            raise InvariantViolation(
                f"candle series has {len(self.times)} times but {len(self.closes)} closes"
            )
        if self.volumes is not None and len(self.volumes) != len(self.times):
            raise InvariantViolation(
                f"candle series has {len(self.times)} times but {len(self.volumes)} volumes"
            )
        for prev, cur in zip(self.times, self.times[1:]):
            if cur <= prev:
                raise InvariantViolation(f"candle times must be strictly increasing ({prev} -> {cur})")

    def __len__(self) -> int:
        return len(self.times)

    @property
    def empty(self) -> bool:
        return not self.times

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "CandleSeries":
        """Build from ``{times, closes, volumes}`` or the provider's ``{t, c, v}`` shape."""

        times = payload.get("times", payload.get("t")) or []
        closes = payload.get("closes", payload.get("c")) or []
        volumes = payload.get("volumes", payload.get("v"))
        return cls(times=tuple(times), closes=tuple(closes), volumes=tuple(volumes) if volumes else None)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "times": list(self.times),
            "closes": list(self.closes),
            "volumes": list(self.volumes) if self.volumes is not None else None,
        }


# ---------------------------------------------------------------------- news


@dataclass(frozen=True)
class NewsEvent:
    symbol: str
    headline: str
    published_at: dt.datetime
    category: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_provider(cls, symbol: str, item: Mapping[str, Any]) -> "NewsEvent":
        published_at = parse_instant(item.get("publishedAtUnixSeconds"))
        if published_at is None:
            raise ValueError(f"news item for {symbol} has no usable publishedAtUnixSeconds")
        return cls(
            symbol=symbol.strip().upper(),
            headline=str(item.get("headline") or "").strip(),
            published_at=published_at,
            category=item.get("category") or None,
            url=item.get("url") or None,
        )


# ---------------------------------------------------------------------- records


class RecordState(str, enum.Enum):
    PROVISIONAL = "provisional"
    MEASURED = "measured"


@dataclass(frozen=True)
class ImpactRecord:
    symbol: str
    headline: str
    published_at: dt.datetime
    category: Optional[str]
    url: Optional[str]
    ret_pre5: Optional[float]
    ret_1d: Optional[float]
    ret_5d: Optional[float]
    priced_in: Optional[bool]
    expected_impact: int
    realized_impact: int
    score: int
    confidence: int
    technical_context: str = ""
    expected_dir: int = 0
    realized_dir: Optional[int] = None
    bull_trap: Optional[bool] = None
    state: RecordState = RecordState.PROVISIONAL
    measured_at: Optional[dt.datetime] = None

    @property
    def too_early(self) -> bool:
        return not self.is_measured

    @property
    def is_measured(self) -> bool:
        return self.state is RecordState.MEASURED or self.measured_at is not None

    def age_hours(self, now: dt.datetime) -> float:
        return (now - self.published_at).total_seconds() / 3600.0

    def measured(self, *, now: dt.datetime, **changes: Any) -> "ImpactRecord":
        """Return the measured copy of this record; the only allowed transition."""

        if self.is_measured:
            raise InvalidTransition(
                f"{self.symbol} event at {iso_instant(self.published_at)} was already measured"
            )
        return dataclasses.replace(self, state=RecordState.MEASURED, measured_at=now, **changes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "headline": self.headline,
            "type": self.category,
            "publishedAt": iso_instant(self.published_at),
            "url": self.url,
            "retPre5": self.ret_pre5,
            "ret1d": self.ret_1d,
            "ret5d": self.ret_5d,
            "pricedIn": self.priced_in,
            "expectedImpact": self.expected_impact,
            "realizedImpact": self.realized_impact,
            "score": self.score,
            "confidence": self.confidence,
            "tooEarly": self.too_early,
            "measuredAt": iso_instant(self.measured_at) if self.measured_at else None,
            "technicalContext": self.technical_context,
            "expectedDir": self.expected_dir,
            "realizedDir": self.realized_dir,
            "bullTrap": self.bull_trap,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ImpactRecord":
        published_at = parse_instant(payload.get("publishedAt"))
        if published_at is None:
            raise ValueError(f"record is missing a valid publishedAt: {payload.get('publishedAt')!r}")
        measured_at = parse_instant(payload.get("measuredAt"))
        measured = measured_at is not None or payload.get("tooEarly") is False
        expected = int(payload.get("expectedImpact", 0) or 0)
        realized = payload.get("realizedImpact")
        realized_dir = payload.get("realizedDir")
        return cls(
            symbol=str(payload.get("symbol") or ""),
            headline=str(payload.get("headline") or ""),
            published_at=published_at,
            category=payload.get("type"),
            url=payload.get("url"),
            ret_pre5=_optional_float(payload.get("retPre5")),
            ret_1d=_optional_float(payload.get("ret1d")),
            ret_5d=_optional_float(payload.get("ret5d")),
            priced_in=_optional_bool(payload.get("pricedIn")),
            expected_impact=expected,
            realized_impact=int(realized) if realized is not None else expected,
            score=int(payload.get("score", expected) or 0),
            confidence=int(payload.get("confidence", 0) or 0),
            technical_context=str(payload.get("technicalContext") or ""),
            expected_dir=int(payload.get("expectedDir", 0) or 0),
            realized_dir=int(realized_dir) if realized_dir is not None else None,
            bull_trap=_optional_bool(payload.get("bullTrap")),
            state=RecordState.MEASURED if measured else RecordState.PROVISIONAL,
            measured_at=measured_at,
        )


# ---------------------------------------------------------------------- documents


@dataclass(frozen=True)
class Pool:
    as_of: dt.datetime
    items: Tuple[ImpactRecord, ...] = ()
    revision: int = 0

    def __len__(self) -> int:
        return len(self.items)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "asOf": iso_instant(self.as_of),
            "revision": self.revision,
            "items": [item.as_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "Pool":
        if not payload:
            return cls(as_of=utcnow())
        raw_items = payload.get("items")
        items: Sequence[Mapping[str, Any]] = raw_items if isinstance(raw_items, list) else []
        return cls(
            as_of=parse_instant(payload.get("asOf")) or utcnow(),
            items=tuple(ImpactRecord.from_dict(item) for item in items if isinstance(item, Mapping)),
            revision=int(payload.get("revision", 0) or 0),
        )


@dataclass(frozen=True)
class LeaderboardView:
    as_of: dt.datetime
    items: Tuple[ImpactRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "asOf": iso_instant(self.as_of),
            "items": [item.as_dict() for item in self.items],
        }
