from __future__ import annotations

import datetime as dt
import logging
import os
import time
from typing import Any, Dict, List, Optional

import requests

from impact.data_contracts import validate_payload
from impact.models import CandleSeries

logger = logging.getLogger(__name__)

FINNHUB_DEFAULT_URL = "https://finnhub.io/api/v1"
FINNHUB_USER_AGENT = "news-impact-engine/1.0"


class FinnhubClientError(RuntimeError):
    """Raised when Finnhub keeps failing after retries or rejects the credentials."""


def _respect_rate_limit(resp: requests.Response, fallback: float, *, sleep=time.sleep) -> None:
    retry_after = resp.headers.get("Retry-After")
    wait: Optional[float] = None
    if retry_after:
        try:
            wait = float(retry_after)
        except ValueError:
            wait = None
    if wait is None:
        wait = fallback
    if wait > 0.0:
        sleep(wait)


class FinnhubClient:
    """Company news and daily candles from Finnhub.

    ``company_news`` and ``daily_candles`` match the fetch contracts the engine
    expects, so bound methods can be handed to ``ImpactEngine`` directly.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = FINNHUB_DEFAULT_URL,
        timeout: float = 15.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.8,
        session: Optional[requests.Session] = None,
        sleep=time.sleep,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for FinnhubClient")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.session = session or requests.Session()
        self._sleep = sleep

    @classmethod
    def from_env(cls) -> "FinnhubClient":
        key = os.getenv("FINNHUB_API_KEY")
        if not key:
            raise FinnhubClientError("FINNHUB_API_KEY environment variable is missing.")
        return cls(api_key=key, base_url=os.getenv("FINNHUB_BASE_URL", FINNHUB_DEFAULT_URL))

    # ------------------------------------------------------------------ transport
    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"User-Agent": FINNHUB_USER_AGENT, "X-Finnhub-Token": self.api_key}
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                if attempt > self.max_retries:
                    raise FinnhubClientError(f"Network error calling Finnhub {path}: {exc}") from exc
                logger.warning("finnhub %s network error (attempt %d): %s", path, attempt, exc)
                self._sleep(self.backoff_seconds * attempt)
                continue

            if resp.status_code in (401, 403):
                raise FinnhubClientError(f"Finnhub auth error {resp.status_code}: {resp.text[:200]}")
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt > self.max_retries:
                    raise FinnhubClientError(f"Finnhub {path} returned HTTP {resp.status_code} after {attempt} attempts")
                logger.warning("finnhub %s HTTP %d, retrying (attempt %d)", path, resp.status_code, attempt)
                _respect_rate_limit(resp, self.backoff_seconds * attempt, sleep=self._sleep)
                continue
            if resp.status_code != 200:
                raise FinnhubClientError(f"Finnhub {path} returned HTTP {resp.status_code}: {resp.text[:200]}")
            try:
                return resp.json()
            except ValueError as exc:
                raise FinnhubClientError(f"Finnhub {path} response was not valid JSON.") from exc

    # ------------------------------------------------------------------ public API
    def company_news(self, symbol: str, from_date: dt.date, to_date: dt.date) -> List[Dict[str, Any]]:
        payload = self._get(
            "company-news",
            {"symbol": symbol.upper(), "from": from_date.isoformat(), "to": to_date.isoformat()},
        )
        if not isinstance(payload, list):
            return []

        items: List[Dict[str, Any]] = []
        for raw in payload:
            if not isinstance(raw, dict):
                continue
            item = {
                "headline": raw.get("headline"),
                "category": raw.get("category") or None,
                "url": raw.get("url") or None,
                "publishedAtUnixSeconds": raw.get("datetime"),
            }
            ok, msg = validate_payload("news_item", item)
            if not ok:
                logger.debug("skipping %s news item: %s", symbol, msg)
                continue
            items.append(item)
        return items

    def daily_candles(self, symbol: str, from_unix: int, to_unix: int) -> Optional[CandleSeries]:
        payload = self._get(
            "stock/candle",
            {"symbol": symbol.upper(), "resolution": "D", "from": int(from_unix), "to": int(to_unix)},
        )
        if not isinstance(payload, dict) or payload.get("s") != "ok":
            return None
        times, closes = payload.get("t"), payload.get("c")
        if not isinstance(times, list) or not isinstance(closes, list) or not times:
            return None
        volumes = payload.get("v") if isinstance(payload.get("v"), list) else None
        return CandleSeries(times=tuple(times), closes=tuple(closes), volumes=tuple(volumes) if volumes else None)
