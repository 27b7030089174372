"""Tests for shared value types."""
from datetime import date, datetime

import pytest

from maprates.state.models import (
    Country,
    SelectionSnapshot,
    TimeSeriesPoint,
    series_to_dataframe,
    to_series,
)
from maprates.utils.errors import ValidationError


def test_country_identity_ignores_geometry():
    assert Country("France", geometry={"type": "Polygon"}) == Country("France")


@pytest.mark.parametrize("raw_date", ["2024-03-01", "2024-03-01T12:00:00", date(2024, 3, 1),
                                      datetime(2024, 3, 1, 8, 30)])
def test_point_from_raw_dates(raw_date):
    point = TimeSeriesPoint.from_raw({"date": raw_date, "rate": "1.25"})
    assert point == TimeSeriesPoint(date(2024, 3, 1), 1.25)


@pytest.mark.parametrize("raw", [
    {"date": "2024-03-01"},
    {"date": "yesterday", "rate": 1.0},
    {"date": "2024-03-01", "rate": "abc"},
    {"date": "2024-03-01", "rate": 0},
    {"date": "2024-03-01", "rate": -1.5},
])
def test_point_from_raw_rejects_malformed(raw):
    with pytest.raises(ValidationError):
        TimeSeriesPoint.from_raw(raw)


def test_to_series_sorts_by_date(series):
    points = series([1.0, 2.0, 3.0])
    assert to_series(reversed(points)) == tuple(points)


def test_series_to_dataframe(series):
    df = series_to_dataframe(series([1.0, 2.0]))
    assert list(df["rate"]) == [1.0, 2.0]
    assert df.index.name == "date"


def test_snapshot_from_state():
    snapshot = SelectionSnapshot.from_state({
        "home_country": Country("France"),
        "destination_country": Country("Japan"),
        "home_currency": "EUR",
        "destination_currency": "JPY",
        "current_timeframe": None,
    }, default_timeframe="1M")

    assert snapshot.is_complete
    assert snapshot.pair == "EUR/JPY"
    assert snapshot.timeframe == "1M"
    assert not SelectionSnapshot.from_state({}).is_complete


def test_to_series_keeps_last_duplicate():
    points = to_series([
        {"date": "2024-03-02", "rate": 1.2},
        {"date": "2024-03-01", "rate": 1.0},
        {"date": "2024-03-01", "rate": 1.1},
    ])

    assert points == (TimeSeriesPoint(date(2024, 3, 1), 1.1), TimeSeriesPoint(date(2024, 3, 2), 1.2))


def test_series_to_dataframe_drops_duplicate_dates():
    df = series_to_dataframe([
        TimeSeriesPoint(date(2024, 3, 1), 1.0),
        TimeSeriesPoint(date(2024, 3, 1), 1.5),
        TimeSeriesPoint(date(2024, 3, 2), 2.0),
    ])

    assert list(df["rate"]) == [1.5, 2.0]
    assert df.index.is_unique
