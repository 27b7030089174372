"""Tests for multi-destination amount conversion."""
import math

import pytest

from maprates.analysis.conversions import calculate_conversions, convert_amount
from maprates.state.models import Country


@pytest.mark.parametrize("amount, rate, expected", [
    (100, 1.25, 125.0),
    (2, 0.333333, 0.67),
    (0, 1.5, 0.0),
    (250.5, 0.5, 125.25),
])
def test_convert_amount(amount, rate, expected):
    assert convert_amount(amount, rate) == expected


def test_conversions_follow_destination_order(resolver):
    destinations = [Country("Japan"), Country("United Kingdom"), Country("Canada")]
    rates = {"GBP": 0.79, "JPY": 150.0, "CAD": 1.35}

    conversions = calculate_conversions(destinations, "USD", rates, resolver, amount=20)

    assert [c.country for c in conversions] == ["Japan", "United Kingdom", "Canada"]
    assert [c.amount for c in conversions] == [3000.0, 15.8, 27.0]
    assert conversions[0].currency.name == "Japanese Yen"


def test_same_currency_destination_converts_at_one(resolver):
    conversions = calculate_conversions([Country("Germany")], "EUR", {}, resolver, amount=42)

    assert len(conversions) == 1
    assert conversions[0].rate == 1.0
    assert conversions[0].amount == 42.0


@pytest.mark.parametrize("rates", [{}, {"JPY": 0.0}, {"JPY": -3.0}, {"JPY": math.nan}])
def test_unusable_rates_are_skipped(resolver, rates):
    rates = dict(rates, CAD=1.35)
    conversions = calculate_conversions(
        [Country("Japan"), Country("Canada")], "USD", rates, resolver
    )

    assert [c.currency.code for c in conversions] == ["CAD"]


def test_unresolvable_destination_is_skipped(resolver):
    conversions = calculate_conversions([Country("Atlantis")], "USD", {"XXX": 1.0}, resolver)
    assert conversions == []


def test_no_home_currency(resolver):
    assert calculate_conversions([Country("Japan")], None, {"JPY": 150.0}, resolver) == []
