"""Rate source contract consumed by the chart session."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from maprates.state.models import TimeSeriesPoint
from maprates.utils.validation import validate_currency_pair, validate_range_days


class RateSource(ABC):
    """Supplies historical `{date, rate}` series for a currency pair.

    Implementations raise DataProviderError on network or format failures;
    the caller treats any failure as "no series available".
    """

    NAME: str = "base"

    @abstractmethod
    async def fetch_series(self, base: str, quote: str, range_in_days: int) -> List[TimeSeriesPoint]:
        """Fetch a date-ascending series of rates for base -> quote."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the upstream service looks reachable/healthy."""

    @staticmethod
    def validate_request(base: str, quote: str, range_in_days: int) -> None:
        validate_currency_pair(base, quote)
        validate_range_days(range_in_days)
