from maprates.data_collection.providers.base import RateSource
from maprates.data_collection.providers.exchange_rate_host import ExchangeRateHostClient

__all__ = ["RateSource", "ExchangeRateHostClient"]
