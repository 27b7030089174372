"""Explicit construction of the component graph.

Each MapRatesApp owns one store and one instance of every component; there
are no module-level singletons for state or selection.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from maprates.analysis.conversions import Conversion, calculate_conversions
from maprates.analysis.indicators import IndicatorEngine
from maprates.chart.config import ChartConfig
from maprates.chart.export import ChartExporter
from maprates.chart.session import ChartSession
from maprates.data_collection.currencies import CountryCurrencyResolver
from maprates.data_collection.providers.base import RateSource
from maprates.data_collection.providers.exchange_rate_host import ExchangeRateHostClient
from maprates.events import EventEmitter
from maprates.overlays.overlay_set import OverlaySet
from maprates.persistence import PreferenceStore
from maprates.selection.entitlements import PremiumStatus
from maprates.selection.machine import SelectionMachine
from maprates.state.store import StateStore


@dataclass
class MapRatesApp:
    store: StateStore
    events: EventEmitter
    resolver: CountryCurrencyResolver
    entitlements: PremiumStatus
    overlays: OverlaySet
    indicators: IndicatorEngine
    selection: SelectionMachine
    session: ChartSession
    preferences: PreferenceStore

    def save_preferences(self) -> bool:
        return self.session.save_preferences(self.preferences)

    def conversions(self, amount: float = 1.0) -> List[Conversion]:
        """Convert `amount` of the charted home currency into every destination currency."""
        snapshot = self.session.primary_snapshot
        if snapshot is None:
            return []
        return calculate_conversions(
            self.selection.destinations,
            snapshot.home_currency,
            self.session.latest_rates(),
            self.resolver,
            amount,
        )

    def export_chart(self, fmt: str = "csv",
                     path: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Export the current dataset; None without a dataset or without the export feature."""
        if self.session.dataset is None:
            return None
        return ChartExporter(self.entitlements).export(self.session.dataset, fmt, path)


def build_app(rate_source: Optional[RateSource] = None,
              chart_config: Optional[ChartConfig] = None,
              preferences: Optional[PreferenceStore] = None,
              resolver: Optional[CountryCurrencyResolver] = None,
              is_premium: bool = False) -> MapRatesApp:
    """Wire the components together; preferences are restored before returning."""
    chart_config = chart_config or ChartConfig()
    preferences = preferences or PreferenceStore()
    resolver = resolver or CountryCurrencyResolver()
    rate_source = rate_source or ExchangeRateHostClient()

    store = StateStore({"current_timeframe": chart_config.default_timeframe})
    events = EventEmitter()
    entitlements = PremiumStatus(
        store=store,
        preferences=preferences,
        is_premium=is_premium,
        caps=chart_config.max_destinations,
    )
    overlays = OverlaySet(store, chart_config.overlay_colors, chart_config.max_overlays_visible)
    indicators = IndicatorEngine(store, chart_config.indicators, chart_config.bollinger_width)
    selection = SelectionMachine(store, events, resolver, entitlements, overlays)
    session = ChartSession(store, events, rate_source, overlays, indicators, chart_config)
    session.restore_preferences(preferences)

    return MapRatesApp(
        store=store,
        events=events,
        resolver=resolver,
        entitlements=entitlements,
        overlays=overlays,
        indicators=indicators,
        selection=selection,
        session=session,
        preferences=preferences,
    )
