"""Tests for country to currency resolution."""
from maprates.data_collection.currencies import NO_CURRENCY, CountryCurrencyResolver


def test_resolves_known_countries(resolver):
    assert resolver.resolve_code("France") == "EUR"
    assert resolver.resolve_code("United States") == "USD"
    assert resolver.resolve("Japan").symbol == "¥"


def test_lookup_is_forgiving(resolver):
    assert resolver.resolve_code("  united   kingdom ") == "GBP"
    assert resolver.resolve_code("Trinidad & Tobago") == "TTD"


def test_unknown_and_no_currency(resolver):
    assert resolver.resolve("Atlantis") is None
    assert resolver.resolve_code(NO_CURRENCY) is None
    assert resolver.resolve_code("") is None
    assert resolver.resolve_code(None) is None


def test_unknown_currency_info_falls_back_to_code(resolver):
    currency = resolver.resolve("Bosnia and Herzegovina")
    assert currency.code == "BAM"
    assert currency.name == "BAM"


def test_register_and_custom_mapping():
    resolver = CountryCurrencyResolver(mapping={"Ruritania": "RUR"})
    resolver.register("Bad Place", "rur1")

    assert resolver.countries() == ["Ruritania"]
    assert resolver.resolve_code("Bad Place") is None


def test_countries_sharing(resolver):
    assert resolver.countries_sharing("EUR") >= 4
    assert resolver.countries_sharing("XYZ") == 0
