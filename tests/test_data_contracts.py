from __future__ import annotations

import pytest

from impact.data_contracts import validate_payload


@pytest.mark.parametrize(
    "item, ok",
    [
        ({"headline": "Apple beats", "publishedAtUnixSeconds": 1704067200}, True),
        ({"headline": "Apple beats", "publishedAtUnixSeconds": 1704067200, "category": "company", "url": None}, True),
        ({"headline": "   ", "publishedAtUnixSeconds": 1704067200}, False),
        ({"headline": "Apple beats", "publishedAtUnixSeconds": 0}, False),
        ({"headline": "Apple beats", "publishedAtUnixSeconds": "1704067200"}, False),
        ({"headline": "Apple beats", "publishedAtUnixSeconds": 1704067200, "url": 5}, False),
        (["not", "a", "mapping"], False),
    ],
)
def test_news_item_contract(item, ok) -> None:
    assert validate_payload("news_item", item)[0] is ok


def test_candles_contract() -> None:
    assert validate_payload("candles", {"times": [1, 2], "closes": [1.0, 2.0]})[0]
    ok, msg = validate_payload("candles", {"times": [1, 2], "closes": [1.0]})
    assert not ok and "differ" in msg
    assert not validate_payload("candles", {"times": [1], "closes": ["x"]})[0]
    assert not validate_payload("candles", {"times": [1], "closes": [1.0], "volumes": []})[0]


def test_pool_contract() -> None:
    assert validate_payload("pool", {"items": []})[0]
    assert validate_payload("pool", {})[0]
    assert not validate_payload("pool", {"items": "nope"})[0]
    ok, msg = validate_payload("POOL", {"items": [{"symbol": "AAPL"}]})
    assert not ok and "publishedAt" in msg


def test_unknown_kind_only_requires_mapping() -> None:
    assert validate_payload("leaderboard", {"items": []})[0]
    assert not validate_payload("leaderboard", [])[0]
