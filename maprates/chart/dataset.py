"""Finalized datasets handed to the chart renderer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from maprates.analysis.indicators import BOLLINGER, RSI, SMA, IndicatorEngine
from maprates.chart.config import ChartConfig
from maprates.state.models import Overlay, TimeSeriesPoint, series_to_dataframe

PRIMARY_COLOR = "#1a73e8"
INDICATOR_ORDER = (SMA, BOLLINGER, RSI)


@dataclass(frozen=True)
class ChartSeries:
    name: str
    color: str
    values: Tuple[Optional[float], ...]
    kind: str = "primary"  # primary | overlay | indicator
    axis: str = "y"  # RSI uses the 0-100 axis "y2"


@dataclass(frozen=True)
class ChartDataset:
    labels: Tuple[str, ...]
    series: Tuple[ChartSeries, ...] = field(default_factory=tuple)

    def get(self, name: str) -> Optional[ChartSeries]:
        return next((s for s in self.series if s.name == name), None)

    def names(self) -> List[str]:
        return [s.name for s in self.series]

    def of_kind(self, kind: str) -> List[ChartSeries]:
        return [s for s in self.series if s.kind == kind]

    def to_dict(self) -> Dict:
        return {
            "labels": list(self.labels),
            "series": [
                {"name": s.name, "color": s.color, "values": list(s.values), "kind": s.kind, "axis": s.axis}
                for s in self.series
            ],
        }

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(
            {s.name: [np.nan if v is None else v for v in s.values] for s in self.series},
            index=pd.Index(self.labels, name="date"),
        )
        return df


def effective_period(configured: int, data_length: int, divisor: int) -> int:
    """The period actually rendered: the configured one, capped to a share of the data."""
    return max(1, min(configured, data_length // max(divisor, 1)))


def _to_optional(values) -> Tuple[Optional[float], ...]:
    return tuple(None if pd.isna(v) else float(v) for v in values)


def align_overlay(primary: Sequence[TimeSeriesPoint], overlay: Sequence[TimeSeriesPoint],
                  normalize: bool = True) -> Optional[Tuple[Optional[float], ...]]:
    """
    Reindex an overlay series onto the primary series' dates.

    With `normalize`, values are scaled so the first aligned overlay value
    equals the primary series' first value. Returns None when the overlay
    shares no dates with the primary series.
    """
    primary_df = series_to_dataframe(primary)
    aligned = series_to_dataframe(overlay)["rate"].reindex(primary_df.index)
    valid = aligned.dropna()
    if valid.empty:
        return None

    if normalize:
        aligned = aligned * (primary_df["rate"].iloc[0] / valid.iloc[0])
    return _to_optional(aligned.to_numpy())


def indicator_series(engine: IndicatorEngine, config: ChartConfig,
                     rates: Sequence[float]) -> List[ChartSeries]:
    """Series for every active indicator, computed with the clamped period."""
    n = len(rates)
    keys = [k for k in INDICATOR_ORDER if engine.is_active(k)]
    keys += [k for k in engine.active_keys() if k not in INDICATOR_ORDER]

    result: List[ChartSeries] = []
    for key in keys:
        cfg = engine.get(key)
        divisor = config.period_divisors.get(key, 2)
        period = effective_period(cfg.period, n, divisor)
        outputs = engine.compute(key, rates, period)

        if key == SMA:
            result.append(ChartSeries(
                f"SMA ({period}) - {period - 1} day warmup", cfg.color,
                tuple(outputs["sma"]), kind="indicator",
            ))
        elif key == BOLLINGER:
            for band in ("upper", "middle", "lower"):
                result.append(ChartSeries(
                    f"Bollinger {band.capitalize()} ({period}) - {period - 1} day warmup",
                    cfg.color, tuple(outputs[band]), kind="indicator",
                ))
        elif key == RSI:
            result.append(ChartSeries(
                f"RSI ({period}) - {period} day warmup", cfg.color,
                tuple(outputs["rsi"]), kind="indicator", axis="y2",
            ))
        else:
            for name, values in outputs.items():
                result.append(ChartSeries(f"{key} {name} ({period})", cfg.color, tuple(values), kind="indicator"))
    return result


def build_dataset(primary: Sequence[TimeSeriesPoint], base: str, quote: str,
                  overlays: Sequence[Overlay], engine: IndicatorEngine,
                  config: Optional[ChartConfig] = None) -> ChartDataset:
    """Primary pair, then visible overlays with data, then active indicators."""
    config = config or ChartConfig()
    labels = tuple(p.date.isoformat() for p in primary)
    rates = [p.rate for p in primary]

    series: List[ChartSeries] = [
        ChartSeries(f"{base} to {quote}", PRIMARY_COLOR, tuple(rates), kind="primary")
    ]

    for overlay in overlays:
        if not overlay.visible or not overlay.data or not primary:
            continue
        values = align_overlay(primary, overlay.data, config.normalize_overlays)
        if values is None:
            continue
        suffix = " (normalized)" if config.normalize_overlays else ""
        series.append(ChartSeries(
            f"{base} to {overlay.currency}{suffix}", overlay.color, values, kind="overlay"
        ))

    if rates:
        series.extend(indicator_series(engine, config, rates))

    return ChartDataset(labels=labels, series=tuple(series))
