"""Country to currency resolution."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from maprates.utils.logging import get_logger
from maprates.utils.validation import is_valid_currency_code

logger = get_logger(__name__)

NO_CURRENCY = "No currency system"


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str = ""


CURRENCY_INFO: Dict[str, Currency] = {
    "USD": Currency("USD", "US Dollar", "$"),
    "EUR": Currency("EUR", "Euro", "€"),
    "GBP": Currency("GBP", "British Pound", "£"),
    "JPY": Currency("JPY", "Japanese Yen", "¥"),
    "CHF": Currency("CHF", "Swiss Franc", "CHF"),
    "CAD": Currency("CAD", "Canadian Dollar", "C$"),
    "AUD": Currency("AUD", "Australian Dollar", "A$"),
    "NZD": Currency("NZD", "New Zealand Dollar", "NZ$"),
    "CNY": Currency("CNY", "Chinese Yuan", "¥"),
    "HKD": Currency("HKD", "Hong Kong Dollar", "HK$"),
    "SGD": Currency("SGD", "Singapore Dollar", "S$"),
    "INR": Currency("INR", "Indian Rupee", "₹"),
    "SEK": Currency("SEK", "Swedish Krona", "kr"),
    "NOK": Currency("NOK", "Norwegian Krone", "kr"),
    "DKK": Currency("DKK", "Danish Krone", "kr"),
    "PLN": Currency("PLN", "Polish Zloty", "zł"),
    "CZK": Currency("CZK", "Czech Koruna", "Kč"),
    "HUF": Currency("HUF", "Hungarian Forint", "Ft"),
    "TRY": Currency("TRY", "Turkish Lira", "₺"),
    "MXN": Currency("MXN", "Mexican Peso", "$"),
    "BRL": Currency("BRL", "Brazilian Real", "R$"),
    "ARS": Currency("ARS", "Argentine Peso", "$"),
    "ZAR": Currency("ZAR", "South African Rand", "R"),
    "AED": Currency("AED", "UAE Dirham", "د.إ"),
    "THB": Currency("THB", "Thai Baht", "฿"),
    "KRW": Currency("KRW", "South Korean Won", "₩"),
    "ISK": Currency("ISK", "Icelandic Krona", "kr"),
}

COUNTRY_TO_CURRENCY: Dict[str, str] = {
    "United States of America": "USD",
    "United States": "USD",
    "Ecuador": "USD",
    "France": "EUR",
    "Germany": "EUR",
    "Italy": "EUR",
    "Spain": "EUR",
    "Portugal": "EUR",
    "Netherlands": "EUR",
    "Belgium": "EUR",
    "Austria": "EUR",
    "Ireland": "EUR",
    "Finland": "EUR",
    "Greece": "EUR",
    "Croatia": "EUR",
    "United Kingdom": "GBP",
    "Japan": "JPY",
    "Switzerland": "CHF",
    "Canada": "CAD",
    "Australia": "AUD",
    "New Zealand": "NZD",
    "China": "CNY",
    "Hong Kong": "HKD",
    "Singapore": "SGD",
    "India": "INR",
    "Sweden": "SEK",
    "Norway": "NOK",
    "Denmark": "DKK",
    "Poland": "PLN",
    "Czechia": "CZK",
    "Czech Republic": "CZK",
    "Hungary": "HUF",
    "Turkey": "TRY",
    "Mexico": "MXN",
    "Brazil": "BRL",
    "Argentina": "ARS",
    "South Africa": "ZAR",
    "United Arab Emirates": "AED",
    "Thailand": "THB",
    "South Korea": "KRW",
    "Iceland": "ISK",
    "Trinidad and Tobago": "TTD",
    "Bosnia and Herzegovina": "BAM",
    "Antigua and Barbuda": "XCD",
}


class CountryCurrencyResolver:
    """Resolves map country names to currencies.

    Lookups are case-insensitive and accept "and"/"&" spelling variants.
    Unknown countries and regions without a currency resolve to None.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None,
                 currency_info: Optional[Mapping[str, Currency]] = None):
        self._by_name: Dict[str, str] = {}
        self._display: Dict[str, str] = {}
        self._info: Dict[str, Currency] = dict(CURRENCY_INFO)
        if currency_info:
            self._info.update(currency_info)
        for name, code in (mapping if mapping is not None else COUNTRY_TO_CURRENCY).items():
            self.register(name, code)

    def register(self, country: str, code: str) -> None:
        if not is_valid_currency_code(code):
            logger.warning(f"Ignoring malformed currency code {code!r} for {country}")
            return
        key = self._key(country)
        self._by_name[key] = code
        self._display.setdefault(key, country)

    def resolve(self, country: Optional[str]) -> Optional[Currency]:
        if not country or country == NO_CURRENCY:
            return None

        code = self._by_name.get(self._key(country))
        if code is None:
            return None
        return self._info.get(code, Currency(code, code))

    def resolve_code(self, country: Optional[str]) -> Optional[str]:
        currency = self.resolve(country)
        return currency.code if currency else None

    def countries(self) -> List[str]:
        """Known country names in their registered spelling."""
        return sorted(self._display.values())

    def countries_sharing(self, code: str) -> int:
        return sum(1 for c in self._by_name.values() if c == code)

    @staticmethod
    def _key(name: str) -> str:
        return " ".join(name.replace("&", "and").split()).casefold()
