from __future__ import annotations

import math
from typing import Any, Callable, Dict, Mapping, Sequence, Tuple


Validator = Callable[[Any], Tuple[bool, str]]


def _require_mapping(payload: Any) -> Tuple[bool, str]:
    if not isinstance(payload, Mapping):
        return False, f"expected mapping, got {type(payload).__name__}"
    return True, ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _optional_str(payload: Mapping[str, Any], key: str) -> Tuple[bool, str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        return False, f"{key} must be a string or null"
    return True, ""


def _validate_news_item(payload: Any) -> Tuple[bool, str]:
    ok, msg = _require_mapping(payload)
    if not ok:
        return ok, msg
    headline = payload.get("headline")
    if not isinstance(headline, str) or not headline.strip():
        return False, "headline must be a non-empty string"
    published = payload.get("publishedAtUnixSeconds")
    if not _is_number(published) or published <= 0:
        return False, "publishedAtUnixSeconds must be a positive number"
    for key in ("category", "url"):
        ok, msg = _optional_str(payload, key)
        if not ok:
            return ok, msg
    return True, ""


def _validate_candles(payload: Any) -> Tuple[bool, str]:
    ok, msg = _require_mapping(payload)
    if not ok:
        return ok, msg
    times = payload.get("times")
    closes = payload.get("closes")
    if not isinstance(times, Sequence) or not isinstance(closes, Sequence):
        return False, "times and closes must be sequences"
    if len(times) != len(closes):
        return False, f"times ({len(times)}) and closes ({len(closes)}) differ in length"
    volumes = payload.get("volumes")
    if volumes is not None:
        if not isinstance(volumes, Sequence) or len(volumes) != len(times):
            return False, "volumes must match times in length"
    for idx, close in enumerate(closes):
        if not _is_number(close):
            return False, f"closes[{idx}] must be numeric"
    return True, ""


def _validate_pool(payload: Any) -> Tuple[bool, str]:
    ok, msg = _require_mapping(payload)
    if not ok:
        return ok, msg
    items = payload.get("items")
    if items is None:
        return True, ""
    if not isinstance(items, list):
        return False, "items must be a list"
    required_fields = {"symbol", "headline", "publishedAt"}
    for idx, item in enumerate(items):
        if not isinstance(item, Mapping):
            return False, f"items[{idx}] must be a mapping"
        missing = required_fields - item.keys()
        if missing:
            return False, f"items[{idx}] missing required fields: {', '.join(sorted(missing))}"
    return True, ""


PAYLOAD_CONTRACTS: Dict[str, Validator] = {
    "news_item": _validate_news_item,
    "candles": _validate_candles,
    "pool": _validate_pool,
}


def validate_payload(kind: str, payload: Any) -> Tuple[bool, str]:
    validator = PAYLOAD_CONTRACTS.get(kind.lower(), _require_mapping)
    return validator(payload)
