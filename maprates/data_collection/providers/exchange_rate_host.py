"""ExchangeRate.host time-series provider."""
from __future__ import annotations

import os
from datetime import date, timedelta
from typing import List, Optional

import httpx

from maprates.data_collection.providers.base import RateSource
from maprates.state.models import TimeSeriesPoint
from maprates.utils.decorators import retry, log_execution
from maprates.utils.errors import DataProviderError, DataNotFoundError, RateLimitError
from maprates.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.exchangerate.host"


class ExchangeRateHostClient(RateSource):
    NAME = "exchange_rate_host"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0,
                 api_key: Optional[str] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.api_key: str = api_key if api_key is not None else os.getenv("EXCHANGE_RATE_HOST_API_KEY", "")

    @classmethod
    def from_config(cls, config) -> "ExchangeRateHostClient":
        return cls(
            base_url=config.get("api.exchange_rate_host.base_url", DEFAULT_BASE_URL),
            timeout=float(config.get("api.exchange_rate_host.timeout", 10)),
        )

    @retry(max_attempts=3, delay=1.0, exceptions=(httpx.HTTPError,))
    async def _get(self, url: str, params: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(url, params=params)
            if resp.status_code == 429:
                raise RateLimitError("Rate limit exceeded")
            resp.raise_for_status()
            return resp.json() or {}

    @log_execution(log_args=False, log_result=False)
    async def fetch_series(self, base: str, quote: str, range_in_days: int,
                           end: Optional[date] = None) -> List[TimeSeriesPoint]:
        self.validate_request(base, quote, range_in_days)

        end_date = end or date.today()
        start_date = end_date - timedelta(days=range_in_days - 1)
        params = {
            "source": base,
            "currencies": quote,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
        if self.api_key:
            params["access_key"] = self.api_key

        try:
            data = await self._get(f"{self.base_url}/timeframe", params)
        except DataProviderError:
            raise
        except Exception as e:
            logger.error(f"ExchangeRate.host request failed: {e}")
            raise DataProviderError(str(e))

        return self._parse_series(data, base, quote)

    def _parse_series(self, data: dict, base: str, quote: str) -> List[TimeSeriesPoint]:
        if not data.get("success", True):
            error_info = data.get("error") or {}
            if isinstance(error_info, dict):
                error_msg = f"{error_info.get('type', 'unknown')} - {error_info.get('info', 'no details')}"
            else:
                error_msg = str(error_info)
            logger.error(f"ExchangeRate.host API error: {error_msg}")
            raise DataProviderError(f"API error: {error_msg}")

        # Format: {"quotes": {"2024-01-01": {"USDEUR": 0.91}, ...}}
        quotes = data.get("quotes")
        if not isinstance(quotes, dict):
            raise DataProviderError("Invalid response from ExchangeRate.host: missing quotes")

        quote_key = f"{base}{quote}"
        points: List[TimeSeriesPoint] = []
        try:
            for day, day_quotes in quotes.items():
                value = (day_quotes or {}).get(quote_key)
                if value is None:
                    continue
                points.append(TimeSeriesPoint.from_raw({"date": day, "rate": value}))
        except Exception as e:
            logger.error(f"Failed to parse ExchangeRate.host response: {e}")
            raise DataProviderError("Invalid response from ExchangeRate.host")

        if not points:
            raise DataNotFoundError(f"No rates found for {quote_key} in response")

        points.sort(key=lambda p: p.date)
        return points

    async def health_check(self) -> bool:
        try:
            await self.fetch_series("USD", "EUR", 2)
            return True
        except Exception:
            return False
