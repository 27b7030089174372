"""
Technical indicator calculations for currency rate series.

Every calculator returns a list with the same length as its input. Leading
entries that lack enough history (the warmup period) are None, and a series
shorter than the required window yields all None instead of an error.
Callers choose the period; nothing here clamps it to the data length.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from maprates.state.models import IndicatorConfig, TimeSeriesPoint

logger = logging.getLogger(__name__)

Values = List[Optional[float]]
SeriesLike = Union[pd.Series, np.ndarray, Iterable[float]]

SMA = "sma"
BOLLINGER = "bollinger"
RSI = "rsi"

DEFAULT_PERIODS = {SMA: 20, BOLLINGER: 20, RSI: 14}
DEFAULT_COLORS = {SMA: "#ff6b35", BOLLINGER: "#9c27b0", RSI: "#ea4335"}
FALLBACK_PERIOD = 20
FALLBACK_COLOR = "#5f6368"
DEFAULT_BAND_WIDTH = 0.5


@dataclass
class VolatilityBands:
    upper: Values
    middle: Values
    lower: Values


def _as_array(data: SeriesLike) -> np.ndarray:
    if isinstance(data, pd.Series):
        return data.to_numpy(dtype=float)
    if isinstance(data, np.ndarray):
        return data.astype(float)
    values = list(data)
    if values and isinstance(values[0], TimeSeriesPoint):
        values = [p.rate for p in values]
    return np.asarray(values, dtype=float)


def _pad(values: np.ndarray, warmup: int) -> Values:
    return [None] * warmup + [float(v) for v in values]


def calculate_sma(data: SeriesLike, period: int) -> Values:
    """Simple moving average over a trailing window of `period` values."""
    values = _as_array(data)
    n = len(values)
    if period < 1 or n < period:
        return [None] * n

    means = sliding_window_view(values, period).mean(axis=1)
    return _pad(means, period - 1)


def calculate_volatility_bands(data: SeriesLike, period: int,
                               width: float = DEFAULT_BAND_WIDTH) -> VolatilityBands:
    """
    Bands at `width` population standard deviations around the SMA.

    Args:
        data: Rate values
        period: Trailing window length
        width: Standard deviation multiplier (default 0.5)

    Returns:
        VolatilityBands with upper/middle/lower lists of len(data)
    """
    values = _as_array(data)
    n = len(values)
    if period < 1 or n < period:
        empty = [None] * n
        return VolatilityBands(upper=list(empty), middle=list(empty), lower=list(empty))

    windows = sliding_window_view(values, period)
    mean = windows.mean(axis=1)
    std = windows.std(axis=1)  # ddof=0: population standard deviation

    warmup = period - 1
    return VolatilityBands(
        upper=_pad(mean + width * std, warmup),
        middle=_pad(mean, warmup),
        lower=_pad(mean - width * std, warmup),
    )


def calculate_momentum(data: SeriesLike, period: int) -> Values:
    """
    RSI-style momentum oscillator bounded to [0, 100].

    Gains and losses are simple averages over the last `period` differences
    (no exponential smoothing). A window without losses scores exactly 100.
    The warmup is `period` entries because the first value has no
    predecessor to difference against.
    """
    values = _as_array(data)
    n = len(values)
    if period < 1 or n < period + 1:
        return [None] * n

    deltas = np.diff(values)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = sliding_window_view(gains, period).mean(axis=1)
    avg_loss = sliding_window_view(losses, period).mean(axis=1)

    rsi = np.full(avg_gain.shape, 100.0)
    has_loss = avg_loss > 0
    rs = avg_gain[has_loss] / avg_loss[has_loss]
    rsi[has_loss] = 100.0 - 100.0 / (1.0 + rs)
    return _pad(rsi, period)


class IndicatorEngine:
    """
    Indicator activation bookkeeping plus dispatch to the calculators.

    Activation flags and periods live here; when a StateStore is given, every
    change is published under `active_indicators`.
    """

    def __init__(self, store=None, defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
                 band_width: float = DEFAULT_BAND_WIDTH):
        self.store = store
        self.band_width = band_width
        self._configs: Dict[str, IndicatorConfig] = {}

        settings = defaults if defaults is not None else {
            key: {"period": DEFAULT_PERIODS[key], "color": DEFAULT_COLORS[key]}
            for key in DEFAULT_PERIODS
        }
        for key, values in settings.items():
            self._configs[key] = IndicatorConfig(
                active=False,
                period=int(values.get("period", self.default_period(key))),
                color=values.get("color", DEFAULT_COLORS.get(key, FALLBACK_COLOR)),
            )
        self._publish()

    @staticmethod
    def default_period(key: str) -> int:
        return DEFAULT_PERIODS.get(key, FALLBACK_PERIOD)

    def toggle(self, key: str) -> bool:
        """Flip activation for `key`, creating it with defaults if unknown."""
        config = self._configs.get(key)
        if config is None:
            config = IndicatorConfig(
                active=False,
                period=self.default_period(key),
                color=DEFAULT_COLORS.get(key, FALLBACK_COLOR),
            )

        config = IndicatorConfig(active=not config.active, period=config.period, color=config.color)
        self._configs[key] = config
        logger.info(f"Indicator {key} is now {'active' if config.active else 'inactive'}")
        self._publish()
        return config.active

    def is_active(self, key: str) -> bool:
        config = self._configs.get(key)
        return bool(config and config.active)

    def active_keys(self) -> List[str]:
        return [key for key, config in self._configs.items() if config.active]

    def get(self, key: str) -> Optional[IndicatorConfig]:
        return self._configs.get(key)

    def configs(self) -> Dict[str, IndicatorConfig]:
        return dict(self._configs)

    def update_settings(self, key: str, **settings: Any) -> bool:
        """Update period/color/active of a known indicator. Returns False if rejected."""
        config = self._configs.get(key)
        if config is None:
            return False

        period = settings.get("period", config.period)
        if isinstance(period, bool) or not isinstance(period, int) or period < 1:
            logger.warning(f"Rejected period {period!r} for indicator {key}")
            return False

        self._configs[key] = IndicatorConfig(
            active=bool(settings.get("active", config.active)),
            period=period,
            color=str(settings.get("color", config.color)),
        )
        self._publish()
        return True

    def compute(self, key: str, data: SeriesLike, period: Optional[int] = None) -> Dict[str, Values]:
        """
        Run the calculator for `key`.

        Returns a mapping of output name to values: `sma`, or `upper`/`middle`/
        `lower`, or `rsi`. Keys without a calculator return an empty mapping.
        """
        config = self._configs.get(key)
        if period is None:
            period = config.period if config else self.default_period(key)

        if key == SMA:
            return {"sma": calculate_sma(data, period)}
        if key == BOLLINGER:
            bands = calculate_volatility_bands(data, period, self.band_width)
            return {"upper": bands.upper, "middle": bands.middle, "lower": bands.lower}
        if key == RSI:
            return {"rsi": calculate_momentum(data, period)}

        logger.warning(f"No calculator for indicator {key}")
        return {}

    def export_preferences(self) -> Dict[str, Dict[str, Any]]:
        return {key: {"active": c.active, "period": c.period} for key, c in self._configs.items()}

    def load_preferences(self, prefs: Any) -> int:
        """Apply persisted `{key: {active, period}}` settings; malformed entries are skipped."""
        if not isinstance(prefs, dict):
            return 0

        applied = 0
        for key, values in prefs.items():
            if key not in self._configs or not isinstance(values, dict):
                continue
            settings = {}
            if isinstance(values.get("active"), bool):
                settings["active"] = values["active"]
            if "period" in values:
                settings["period"] = values["period"]
            if settings and self.update_settings(key, **settings):
                applied += 1
        return applied

    def _publish(self) -> None:
        if self.store is not None:
            self.store.set({
                "active_indicators": {key: c.to_dict() for key, c in self._configs.items()}
            })
