"""Observable application state and its value types."""
from maprates.state.models import (
    Country,
    IndicatorConfig,
    MapMode,
    Overlay,
    SelectionPhase,
    SelectionSnapshot,
    TimeSeriesPoint,
)
from maprates.state.store import StateStore, initial_state, WILDCARD

__all__ = [
    "Country",
    "IndicatorConfig",
    "MapMode",
    "Overlay",
    "SelectionPhase",
    "SelectionSnapshot",
    "TimeSeriesPoint",
    "StateStore",
    "initial_state",
    "WILDCARD",
]
