"""Value types shared by the store, selection, overlay and indicator layers.

All types are frozen: a mutation produces a new instance that replaces the
old one in the StateStore.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import pandas as pd

from maprates.utils.errors import ValidationError


class MapMode(str, Enum):
    """How map clicks are interpreted."""

    INTERACTIVE = "interactive"
    ADDING = "adding"
    LOCKED = "locked"


class SelectionPhase(str, Enum):
    EMPTY = "empty"
    HOME_SELECTED = "home_selected"
    BOTH_SELECTED = "both_selected"


@dataclass(frozen=True)
class Country:
    """A selectable country; identity is the display name."""

    name: str
    geometry: Optional[Any] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: date
    rate: float

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "TimeSeriesPoint":
        """Build a point from a `{date: ISO string, rate: number}` mapping."""
        try:
            raw_date = raw["date"]
            rate = float(raw["rate"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed series point {raw!r}: {e}")

        if isinstance(raw_date, datetime):
            point_date = raw_date.date()
        elif isinstance(raw_date, date):
            point_date = raw_date
        else:
            try:
                point_date = date.fromisoformat(str(raw_date)[:10])
            except ValueError as e:
                raise ValidationError(f"Malformed series date {raw_date!r}: {e}")

        if rate <= 0:
            raise ValidationError(f"Invalid rate: {rate}")
        return cls(date=point_date, rate=rate)


Series = Tuple[TimeSeriesPoint, ...]


@dataclass(frozen=True)
class Overlay:
    """A secondary currency series drawn alongside the primary pair."""

    currency: str
    country: Optional[str]
    color: str
    visible: bool = True
    data: Optional[Series] = field(default=None, repr=False)
    is_from_destinations: bool = False


@dataclass(frozen=True)
class IndicatorConfig:
    active: bool = False
    period: int = 20
    color: str = "#5f6368"

    def to_dict(self) -> dict:
        return {"active": self.active, "period": self.period, "color": self.color}


@dataclass(frozen=True)
class SelectionSnapshot:
    """The home/destination pair a refresh request was issued for.

    Results of a refresh are only rendered while the store still matches
    the snapshot they were requested with.
    """

    home: Optional[str]
    destination: Optional[str]
    home_currency: Optional[str]
    destination_currency: Optional[str]
    timeframe: str = "7D"

    @classmethod
    def from_state(cls, state: Mapping[str, Any], default_timeframe: str = "7D") -> "SelectionSnapshot":
        home = state.get("home_country")
        dest = state.get("destination_country")
        return cls(
            home=home.name if home else None,
            destination=dest.name if dest else None,
            home_currency=state.get("home_currency"),
            destination_currency=state.get("destination_currency"),
            timeframe=state.get("current_timeframe") or default_timeframe,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.home_currency and self.destination_currency)

    @property
    def pair(self) -> str:
        return f"{self.home_currency}/{self.destination_currency}"


def to_series(points: Iterable[Any]) -> Series:
    """Normalize raw points or TimeSeriesPoints into a date-sorted tuple.

    A date seen more than once keeps its last value.
    """
    by_date: Dict[date, TimeSeriesPoint] = {}
    for point in points:
        if not isinstance(point, TimeSeriesPoint):
            point = TimeSeriesPoint.from_raw(point)
        by_date[point.date] = point
    return tuple(sorted(by_date.values(), key=lambda p: p.date))


def series_to_dataframe(points: Sequence[TimeSeriesPoint]) -> pd.DataFrame:
    """Convert a series to a DataFrame indexed by date with a `rate` column."""
    if not points:
        return pd.DataFrame(columns=["rate"])

    df = pd.DataFrame(
        {"rate": [p.rate for p in points]},
        index=pd.DatetimeIndex([pd.Timestamp(p.date) for p in points], name="date"),
    )
    df = df[~df.index.duplicated(keep="last")]
    return df.sort_index()
