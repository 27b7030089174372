"""Input validation utilities."""
from maprates.utils.errors import ValidationError


def validate_currency_code(code: str) -> str:
    """
    Validate a 3-letter ISO currency code.

    Args:
        code: Currency code, must already be uppercase (e.g., "EUR")

    Returns:
        The validated code

    Raises:
        ValidationError: If the code is malformed
    """
    if not code or len(code) != 3 or not code.isalpha() or code != code.upper():
        raise ValidationError(
            f"Invalid currency code: {code}. Expect 3-letter uppercase ISO code."
        )
    return code


def validate_currency_pair(base: str, quote: str) -> tuple[str, str]:
    """Validate base/quote are distinct valid ISO codes."""
    validate_currency_code(base)
    validate_currency_code(quote)
    if base == quote:
        raise ValidationError("Base and quote currencies cannot be the same")
    return base, quote


def validate_range_days(days: int) -> int:
    """Validate a history range in days."""
    if days < 1:
        raise ValidationError(f"Range must be at least 1 day, got: {days}")
    if days > 3650:
        raise ValidationError(f"Range too large: {days} days")
    return days


def is_valid_currency_code(code: str) -> bool:
    """Return True when `code` passes validate_currency_code."""
    try:
        validate_currency_code(code)
    except ValidationError:
        return False
    return True
