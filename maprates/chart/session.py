"""
Rate refresh coordination between selection, overlays and indicators.

Refreshes are requested by the selection layer as `refresh_requested`
events carrying the SelectionSnapshot they were issued for. Fetches are
never cancelled: a result is rendered only if the store still matches its
snapshot when the fetch completes, otherwise it is dropped.
"""
from __future__ import annotations

import asyncio
from datetime import date, timedelta
from dataclasses import replace
from typing import Dict, List, Optional, Set

from maprates import events as ev
from maprates.analysis.indicators import IndicatorEngine
from maprates.chart.config import ChartConfig
from maprates.chart.dataset import ChartDataset, build_dataset
from maprates.data_collection.providers.base import RateSource
from maprates.events import EventEmitter
from maprates.overlays.overlay_set import OverlaySet
from maprates.state.models import SelectionSnapshot, TimeSeriesPoint, to_series
from maprates.state.store import StateStore
from maprates.utils.errors import DataProviderError, ValidationError
from maprates.utils.logging import get_logger
from maprates.utils.validation import is_valid_currency_code

logger = get_logger(__name__)

PREFERENCES_KEY = "chart_preferences"


class ChartSession:
    def __init__(self, store: StateStore, events: EventEmitter, rate_source: RateSource,
                 overlays: OverlaySet, indicators: IndicatorEngine,
                 config: Optional[ChartConfig] = None):
        self.store = store
        self.events = events
        self.rate_source = rate_source
        self.overlays = overlays
        self.indicators = indicators
        self.config = config or ChartConfig()

        self.pending_snapshot: Optional[SelectionSnapshot] = None
        self.primary_series: Optional[tuple] = None
        self.primary_snapshot: Optional[SelectionSnapshot] = None
        self.dataset: Optional[ChartDataset] = None
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribers = [
            events.on(ev.REFRESH_REQUESTED, self._on_refresh_requested),
            events.on(ev.RATE_HIDDEN, self.clear),
        ]

    def current_snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot.from_state(self.store.get(), self.config.default_timeframe)

    def is_current(self, snapshot: SelectionSnapshot) -> bool:
        return snapshot == self.current_snapshot()

    def _on_refresh_requested(self, snapshot: SelectionSnapshot) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the caller awaits refresh() itself
            self.pending_snapshot = snapshot
            return

        task = loop.create_task(self._refresh_in_background(snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh_in_background(self, snapshot: SelectionSnapshot) -> None:
        try:
            await self.refresh(snapshot)
        except DataProviderError as e:
            logger.error(f"Refresh for {snapshot.pair} failed: {e}")
            self.events.emit(ev.REFRESH_FAILED, snapshot, e)
        except Exception as e:
            logger.exception(f"Unexpected error refreshing {snapshot.pair}")
            self.events.emit(ev.REFRESH_FAILED, snapshot, e)

    async def wait_idle(self) -> None:
        """Wait for every scheduled background refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fetch(self, base: str, quote: str, days: int) -> List[TimeSeriesPoint]:
        if base == quote:
            # Countries sharing a currency: the pair is flat at 1.0
            today = date.today()
            return [TimeSeriesPoint(today - timedelta(days=i), 1.0) for i in range(days - 1, -1, -1)]
        return await self.rate_source.fetch_series(base, quote, days)

    async def refresh(self, snapshot: Optional[SelectionSnapshot] = None,
                      days: Optional[int] = None) -> Optional[ChartDataset]:
        """
        Fetch the primary pair and visible overlays, then rebuild the dataset.

        Returns None when the selection is incomplete or changed while the
        fetch was in flight. Raises DataProviderError when the primary series
        cannot be fetched; nothing is updated in that case.
        """
        snapshot = snapshot or self.pending_snapshot or self.current_snapshot()
        self.pending_snapshot = None
        if not snapshot.is_complete:
            return None

        days = days or self.config.timeframe_days(snapshot.timeframe)
        base = snapshot.home_currency
        overlay_codes = [o.currency for o in self.overlays.visible() if o.currency != base]

        logger.info(f"Refreshing {snapshot.pair} over {days} days with {len(overlay_codes)} overlays")
        results = await asyncio.gather(
            self._fetch(base, snapshot.destination_currency, days),
            *(self._fetch(base, code, days) for code in overlay_codes),
            return_exceptions=True,
        )

        primary = results[0]
        if isinstance(primary, DataProviderError):
            raise primary
        if isinstance(primary, Exception):
            raise DataProviderError(f"Rate source failed for {snapshot.pair}: {primary}") from primary
        if isinstance(primary, BaseException):
            raise primary
        try:
            primary_series = to_series(primary)
        except ValidationError as e:
            raise DataProviderError(f"Malformed series for {snapshot.pair}: {e}") from e

        if not self.is_current(snapshot):
            logger.debug(f"Discarding stale series for {snapshot.pair}")
            return None

        overlay_series = {}
        for code, result in zip(overlay_codes, results[1:]):
            if isinstance(result, BaseException):
                logger.warning(f"Overlay {code} fetch failed: {result}")
                continue
            try:
                overlay_series[code] = to_series(result)
            except ValidationError as e:
                logger.warning(f"Overlay {code} returned a malformed series: {e}")

        # Build before committing anything so a failure leaves the session as it was
        candidates = tuple(
            replace(o, data=overlay_series[o.currency]) if o.currency in overlay_series else o
            for o in self.overlays.visible()
        )
        dataset = self._build(primary_series, snapshot, candidates)

        for code, points in overlay_series.items():
            self.overlays.update_data(code, points)
        self.primary_series = primary_series
        self.primary_snapshot = snapshot
        self.dataset = dataset
        self.events.emit(ev.DATASET_READY, dataset)
        return dataset

    def _build(self, primary_series, snapshot: SelectionSnapshot, overlays) -> ChartDataset:
        return build_dataset(
            primary_series,
            snapshot.home_currency,
            snapshot.destination_currency,
            overlays,
            self.indicators,
            self.config,
        )

    def rebuild(self) -> Optional[ChartDataset]:
        """Recompute the dataset from the last primary series, e.g. after an indicator toggle."""
        if self.primary_series is None or self.primary_snapshot is None:
            return None

        self.dataset = self._build(self.primary_series, self.primary_snapshot, self.overlays.visible())
        self.events.emit(ev.DATASET_READY, self.dataset)
        return self.dataset

    def latest_rates(self) -> Dict[str, float]:
        """Last rendered rate per quote currency: the primary pair and overlays with data."""
        rates: Dict[str, float] = {}
        for overlay in self.overlays.overlays():
            if overlay.data:
                rates[overlay.currency] = overlay.data[-1].rate
        if self.primary_series and self.primary_snapshot is not None:
            rates[self.primary_snapshot.destination_currency] = self.primary_series[-1].rate
        return rates

    def toggle_indicator(self, key: str) -> bool:
        active = self.indicators.toggle(key)
        self.rebuild()
        return active

    def set_timeframe(self, label: str) -> bool:
        if label not in self.config.timeframes:
            logger.warning(f"Unknown timeframe {label!r}")
            return False
        self.store.set({"current_timeframe": label})
        snapshot = self.current_snapshot()
        if snapshot.is_complete:
            self.events.emit(ev.REFRESH_REQUESTED, snapshot)
        return True

    def clear(self) -> None:
        """Forget the rendered series, e.g. when the rate display is hidden."""
        self.primary_series = None
        self.primary_snapshot = None
        self.dataset = None

    def save_preferences(self, preferences) -> bool:
        return preferences.set(PREFERENCES_KEY, {
            "indicators": self.indicators.export_preferences(),
            "overlays": [o.currency for o in self.overlays.visible()],
            "timeframe": self.store.get("current_timeframe"),
        })

    def restore_preferences(self, preferences) -> None:
        saved = preferences.get(PREFERENCES_KEY)
        if not isinstance(saved, dict):
            return

        self.indicators.load_preferences(saved.get("indicators"))

        codes = saved.get("overlays")
        if isinstance(codes, list):
            for code in codes:
                if isinstance(code, str) and is_valid_currency_code(code):
                    self.overlays.add(code)

        timeframe = saved.get("timeframe")
        if isinstance(timeframe, str) and timeframe in self.config.timeframes:
            self.store.set({"current_timeframe": timeframe})

    def detach(self) -> None:
        for off in self._unsubscribers:
            off()
        self._unsubscribers = []
