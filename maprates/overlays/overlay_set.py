"""Bookkeeping for secondary currency series shown next to the primary pair."""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, Optional, Sequence, Tuple

from maprates.state.models import Country, Overlay, to_series
from maprates.state.store import StateStore
from maprates.utils.logging import get_logger
from maprates.utils.validation import is_valid_currency_code

logger = get_logger(__name__)

DEFAULT_OVERLAY_COLORS = ["#34a853", "#ea4335", "#fbbc04", "#9c27b0", "#ff6b35"]
MAX_OVERLAYS_VISIBLE = 3

CurrencyResolver = Callable[[str], Optional[str]]


class OverlaySet:
    """
    Overlays are kept in the store under `active_overlays`.

    At most `max_visible` overlays are visible and currency codes are
    unique. Colors come from a cycling palette indexed by a counter that
    only `clear()` resets, so removing an overlay never frees its color for
    the next one.
    """

    def __init__(self, store: StateStore, colors: Optional[Sequence[str]] = None,
                 max_visible: int = MAX_OVERLAYS_VISIBLE):
        self.store = store
        self.colors = list(colors or DEFAULT_OVERLAY_COLORS)
        self.max_visible = max_visible
        self._color_counter = 0

    def overlays(self) -> Tuple[Overlay, ...]:
        return tuple(self.store.get("active_overlays") or ())

    def visible(self) -> Tuple[Overlay, ...]:
        return tuple(o for o in self.overlays() if o.visible)

    def get(self, currency_code: str) -> Optional[Overlay]:
        return next((o for o in self.overlays() if o.currency == currency_code), None)

    def can_add(self) -> bool:
        return len(self.visible()) < self.max_visible

    def add(self, currency_code: str, country: Optional[str] = None,
            from_destinations: bool = False) -> bool:
        if not is_valid_currency_code(currency_code):
            logger.warning(f"Rejected overlay with malformed currency code {currency_code!r}")
            return False

        overlays = self.overlays()
        if any(o.currency == currency_code for o in overlays):
            logger.warning(f"Overlay {currency_code} already exists")
            return False

        if len([o for o in overlays if o.visible]) >= self.max_visible:
            logger.warning(f"Maximum {self.max_visible} overlays allowed")
            return False

        color = self.colors[self._color_counter % len(self.colors)]
        self._color_counter += 1

        overlay = Overlay(
            currency=currency_code,
            country=country,
            color=color,
            visible=True,
            data=None,
            is_from_destinations=from_destinations,
        )
        self._write(overlays + (overlay,))
        logger.info(f"Added overlay {currency_code} with color {color}")
        return True

    def remove(self, currency_code: str) -> bool:
        overlays = self.overlays()
        remaining = tuple(o for o in overlays if o.currency != currency_code)
        if len(remaining) == len(overlays):
            return False
        self._write(remaining)
        logger.info(f"Removed overlay {currency_code}")
        return True

    def remove_for_country(self, country: str) -> int:
        """Drop overlays that were added for destination `country`."""
        overlays = self.overlays()
        remaining = tuple(
            o for o in overlays if not (o.is_from_destinations and o.country == country)
        )
        removed = len(overlays) - len(remaining)
        if removed:
            self._write(remaining)
        return removed

    def toggle(self, currency_code: str) -> bool:
        overlays = self.overlays()
        overlay = next((o for o in overlays if o.currency == currency_code), None)
        if overlay is None:
            logger.warning(f"Overlay {currency_code} not found")
            return False

        if not overlay.visible and len([o for o in overlays if o.visible]) >= self.max_visible:
            logger.warning(
                f"Maximum {self.max_visible} overlays active; disable another overlay first"
            )
            return False

        toggled = replace(overlay, visible=not overlay.visible)
        self._write(tuple(toggled if o.currency == currency_code else o for o in overlays))
        logger.info(f"Toggled overlay {currency_code}: {'ON' if toggled.visible else 'OFF'}")
        return True

    def clear(self) -> None:
        self._color_counter = 0
        self._write(())
        logger.info("Cleared all overlays")

    def update_data(self, currency_code: str, series: Iterable) -> bool:
        """Attach a fetched series; data for an overlay that no longer exists is dropped."""
        overlays = self.overlays()
        if not any(o.currency == currency_code for o in overlays):
            logger.debug(f"Discarding late data for removed overlay {currency_code}")
            return False

        data = to_series(series)
        self._write(tuple(
            replace(o, data=data) if o.currency == currency_code else o for o in overlays
        ))
        return True

    def populate_from_destinations(self, destinations: Sequence[Country],
                                   home_country: Optional[Country],
                                   primary_destination: Optional[Country],
                                   currency_resolver: CurrencyResolver) -> int:
        """
        Replace the overlays with one per secondary destination.

        Skips the primary destination and any destination whose currency is
        the home currency. Returns how many overlays were added.
        """
        self.clear()

        home_currency = currency_resolver(home_country.name) if home_country else None
        added = 0
        for dest in destinations:
            if added >= self.max_visible:
                break
            if primary_destination is not None and dest.name == primary_destination.name:
                continue
            code = currency_resolver(dest.name)
            if code is None:
                continue
            if home_currency and code == home_currency:
                continue
            if self.add(code, dest.name, from_destinations=True):
                added += 1

        logger.info(f"Pre-populated {added} overlays from destinations")
        return added

    def _write(self, overlays: Tuple[Overlay, ...]) -> None:
        self.store.set({"active_overlays": overlays})
