from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

import pytest
import requests

from impact.models import CandleSeries
from integrations.finnhub_client import FinnhubClient, FinnhubClientError


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = "" if payload is None else str(payload)

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _client(responses: List[Any], sleeps: List[float]) -> FinnhubClient:
    return FinnhubClient(
        api_key="test-key",
        base_url="https://finnhub.test/api/v1/",
        session=FakeSession(responses),
        sleep=sleeps.append,
        max_retries=2,
        backoff_seconds=0.5,
    )


def test_company_news_maps_and_filters_items() -> None:
    sleeps: List[float] = []
    payload = [
        {"headline": "Apple beats", "category": "company", "url": "https://x", "datetime": 1704067200},
        {"headline": "", "datetime": 1704067200},
        {"headline": "No timestamp"},
        "garbage",
    ]
    client = _client([FakeResponse(200, payload)], sleeps)
    items = client.company_news("aapl", dt.date(2024, 1, 1), dt.date(2024, 1, 10))

    assert items == [
        {"headline": "Apple beats", "category": "company", "url": "https://x", "publishedAtUnixSeconds": 1704067200}
    ]
    call = client.session.calls[0]
    assert call["url"] == "https://finnhub.test/api/v1/company-news"
    assert call["params"] == {"symbol": "AAPL", "from": "2024-01-01", "to": "2024-01-10"}
    assert call["headers"]["X-Finnhub-Token"] == "test-key"


def test_rate_limit_honours_retry_after() -> None:
    sleeps: List[float] = []
    client = _client([FakeResponse(429, None, {"Retry-After": "2"}), FakeResponse(503), FakeResponse(200, [])], sleeps)
    assert client.company_news("AAPL", dt.date(2024, 1, 1), dt.date(2024, 1, 2)) == []
    assert sleeps == [2.0, 1.0]


def test_retries_exhausted_raise() -> None:
    sleeps: List[float] = []
    client = _client([requests.ConnectionError("down")] * 3, sleeps)
    with pytest.raises(FinnhubClientError, match="Network error"):
        client.daily_candles("AAPL", 0, 1)
    assert sleeps == [0.5, 1.0]


def test_auth_error_is_not_retried() -> None:
    sleeps: List[float] = []
    client = _client([FakeResponse(401, "bad key")], sleeps)
    with pytest.raises(FinnhubClientError, match="auth"):
        client.company_news("AAPL", dt.date(2024, 1, 1), dt.date(2024, 1, 2))
    assert sleeps == []


def test_daily_candles() -> None:
    sleeps: List[float] = []
    ok = {"s": "ok", "t": [1, 2, 3], "c": [10, 11, 12], "v": [5, 6, 7]}
    client = _client([FakeResponse(200, ok), FakeResponse(200, {"s": "no_data"})], sleeps)

    series = client.daily_candles("aapl", 0, 10)
    assert isinstance(series, CandleSeries)
    assert series.closes == (10.0, 11.0, 12.0)
    assert client.session.calls[0]["params"]["resolution"] == "D"
    assert client.daily_candles("AAPL", 0, 10) is None


def test_invalid_json_raises() -> None:
    client = _client([FakeResponse(200, ValueError("no json"))], [])
    with pytest.raises(FinnhubClientError, match="JSON"):
        client.daily_candles("AAPL", 0, 1)


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    with pytest.raises(FinnhubClientError):
        FinnhubClient.from_env()

    monkeypatch.setenv("FINNHUB_API_KEY", "abc")
    monkeypatch.setenv("FINNHUB_BASE_URL", "https://proxy.test/v1")
    client = FinnhubClient.from_env()
    assert client.api_key == "abc"
    assert client.base_url == "https://proxy.test/v1"
