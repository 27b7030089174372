"""Converting an amount of the home currency into each destination currency."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from maprates.data_collection.currencies import CountryCurrencyResolver, Currency
from maprates.state.models import Country
from maprates.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Conversion:
    country: str
    currency: Currency
    rate: float
    amount: float


def convert_amount(amount: float, rate: float) -> float:
    """`amount` in the home currency expressed in the quote currency, to cents."""
    return round(amount * rate, 2)


def calculate_conversions(destinations: Sequence[Country], home_currency: Optional[str],
                          latest_rates: Mapping[str, float],
                          resolver: CountryCurrencyResolver,
                          amount: float = 1.0) -> List[Conversion]:
    """
    One Conversion per destination, in destination order.

    A destination sharing the home currency converts at 1. Destinations
    without a usable rate in `latest_rates` are skipped with a warning.
    """
    conversions: List[Conversion] = []
    if not home_currency:
        return conversions

    for dest in destinations:
        currency = resolver.resolve(dest.name)
        if currency is None:
            continue

        if currency.code == home_currency:
            rate: Optional[float] = 1.0
        else:
            rate = latest_rates.get(currency.code)

        if rate is None or not math.isfinite(rate) or rate <= 0:
            logger.warning(f"No rate available for {dest.name} ({currency.code})")
            continue

        conversions.append(Conversion(
            country=dest.name,
            currency=currency,
            rate=float(rate),
            amount=convert_amount(amount, rate),
        ))
    return conversions
