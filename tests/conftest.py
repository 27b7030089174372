"""Pytest configuration and fixtures."""
from datetime import date, timedelta
from pathlib import Path
import tempfile
from types import SimpleNamespace

import pytest
import yaml

from maprates.data_collection.currencies import CountryCurrencyResolver
from maprates.data_collection.providers.base import RateSource
from maprates.events import EventEmitter
from maprates.overlays.overlay_set import OverlaySet
from maprates.selection.entitlements import PremiumStatus
from maprates.selection.machine import SelectionMachine
from maprates.state.models import TimeSeriesPoint
from maprates.state.store import StateStore
from maprates.utils.errors import DataProviderError


def make_series(rates, start=date(2024, 1, 1)):
    return [TimeSeriesPoint(start + timedelta(days=i), float(r)) for i, r in enumerate(rates)]


class FakeRateSource(RateSource):
    """
    In-memory rate source.

    Quotes listed in `failing` raise, `gates` hold a fetch open and `raw`
    maps a quote to the unparsed `{date, rate}` payload to return.
    """

    NAME = "fake"

    def __init__(self, rates=None, failing=(), start=date(2024, 1, 1)):
        self.rates = rates or {}
        self.failing = set(failing)
        self.start = start
        self.gates = {}
        self.raw = {}
        self.calls = []

    async def fetch_series(self, base, quote, range_in_days):
        self.calls.append((base, quote, range_in_days))
        gate = self.gates.get(quote)
        if gate is not None:
            await gate.wait()
        if quote in self.failing:
            raise DataProviderError(f"{base}/{quote} unavailable")
        if quote in self.raw:
            return list(self.raw[quote])
        rates = self.rates.get(quote) or [1.0 + i * 0.01 for i in range(range_in_days)]
        return make_series(rates, self.start)

    async def health_check(self):
        return True


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing."""
    config_data = {
        'app': {
            'name': 'Test App',
            'version': '0.1.0',
            'debug': True
        },
        'preferences': {
            'path': 'data/test_preferences.json'
        },
        'api': {
            'exchange_rate_host': {
                'base_url': 'https://example.test',
                'timeout': 5
            }
        },
        'chart': {
            'max_overlays_visible': 2,
            'bollinger_width': 2.0,
            'indicators': {
                'rsi': {'period': 10}
            },
            'timeframes': {'7D': 7, '1M': 30}
        },
        'logging': {
            'level': 'DEBUG',
            'format': 'text'
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(config_data, f)
        config_path = f.name

    yield config_path

    Path(config_path).unlink()


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def resolver():
    return CountryCurrencyResolver()


@pytest.fixture
def fake_source():
    return FakeRateSource()


@pytest.fixture
def make_machine():
    """Build a SelectionMachine with its collaborators for a given tier."""

    def _make(premium=False):
        store = StateStore()
        events = EventEmitter()
        overlays = OverlaySet(store)
        entitlements = PremiumStatus(store=store, is_premium=premium)
        machine = SelectionMachine(store, events, CountryCurrencyResolver(), entitlements, overlays)
        recorded = []
        for name in ("selection_changed", "map_locked", "map_unlocked", "refresh_requested",
                     "rate_hidden", "unresolvable_country"):
            events.on(name, lambda *args, _n=name: recorded.append((_n, args)))
        return SimpleNamespace(
            store=store, events=events, overlays=overlays, entitlements=entitlements,
            machine=machine, recorded=recorded,
        )

    return _make


@pytest.fixture
def series():
    """Factory: list of rates -> daily TimeSeriesPoints starting 2024-01-01."""
    return make_series
