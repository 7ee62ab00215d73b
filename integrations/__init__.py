from .finnhub_client import FinnhubClient, FinnhubClientError

__all__ = ["FinnhubClient", "FinnhubClientError"]
