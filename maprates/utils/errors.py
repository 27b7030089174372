"""Custom exception classes for MapRates."""


class MapRatesError(Exception):
    """Base exception for all MapRates errors."""
    pass


class ConfigurationError(MapRatesError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(MapRatesError):
    """Raised when input validation fails."""
    pass


class DataProviderError(MapRatesError):
    """Raised when a rate source fails (network or response format)."""
    pass


class RateLimitError(DataProviderError):
    """Raised when API rate limit is exceeded."""
    pass


class DataNotFoundError(DataProviderError):
    """Raised when requested series is not available."""
    pass


class PersistenceError(MapRatesError):
    """Raised when the preference store cannot be read or written."""
    pass
