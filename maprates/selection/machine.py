"""
Home/destination selection driven by map clicks and explicit choices.

Free two-click flow: the first click picks home, the second picks the
destination, and any third click clears everything and starts over with
the clicked country as home. Orthogonally, the map mode decides
how a click is read: `interactive` follows the two-click flow, `adding`
appends a destination and then locks the map, `locked` ignores clicks until
`clear_all()` or removing the last destination unlocks it.

Every mutation is written to the StateStore before any event is emitted, so
subscribers always see the state a refresh request was issued for.
"""
from __future__ import annotations

from typing import Any, Optional, Tuple

from maprates import events as ev
from maprates.data_collection.currencies import CountryCurrencyResolver, NO_CURRENCY
from maprates.events import EventEmitter
from maprates.overlays.overlay_set import OverlaySet
from maprates.selection.entitlements import EntitlementSource
from maprates.state.models import Country, MapMode, SelectionPhase, SelectionSnapshot
from maprates.state.store import StateStore
from maprates.utils.logging import get_logger

logger = get_logger(__name__)

HOME = "home"
DESTINATION = "destination"


class SelectionMachine:
    def __init__(self, store: StateStore, events: EventEmitter,
                 resolver: CountryCurrencyResolver, entitlements: EntitlementSource,
                 overlays: OverlaySet):
        self.store = store
        self.events = events
        self.resolver = resolver
        self.entitlements = entitlements
        self.overlays = overlays
        self._populated_for: Tuple[str, ...] = ()
        self._unsubscribe = store.subscribe("is_premium_user", self._on_tier_changed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def home(self) -> Optional[Country]:
        return self.store.get("home_country")

    @property
    def destination(self) -> Optional[Country]:
        return self.store.get("destination_country")

    @property
    def destinations(self) -> Tuple[Country, ...]:
        return tuple(self.store.get("destination_countries") or ())

    @property
    def map_mode(self) -> MapMode:
        return MapMode(self.store.get("map_mode") or MapMode.INTERACTIVE)

    @property
    def cap(self) -> int:
        return self.entitlements.max_destinations()

    @property
    def phase(self) -> SelectionPhase:
        if self.home is None:
            return SelectionPhase.EMPTY
        if self.destination is None:
            return SelectionPhase.HOME_SELECTED
        return SelectionPhase.BOTH_SELECTED

    def snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot.from_state(self.store.get())

    # ------------------------------------------------------------------
    # Map clicks
    # ------------------------------------------------------------------

    def select_by_click(self, country_name: str, geometry: Any = None) -> bool:
        """Interpret a map click according to the current map mode."""
        if not country_name or country_name == NO_CURRENCY:
            return self._reject_unresolvable(country_name)

        mode = self.map_mode
        if mode == MapMode.LOCKED:
            logger.info("Map is locked - use clear_all() or add a destination")
            return False

        if mode == MapMode.ADDING:
            added = self.add_destination(country_name, geometry)
            if self.destinations:
                self._set_mode(MapMode.LOCKED)
            else:
                self._set_mode(MapMode.INTERACTIVE)
            return added

        home = self.home
        destination = self.destination
        if home is None:
            return self.select_by_name(country_name, HOME, geometry)
        if destination is None:
            return self.select_by_name(country_name, DESTINATION, geometry)

        logger.info("Starting over - clearing selections")
        self.clear_all()
        return self.select_by_name(country_name, HOME, geometry)

    # ------------------------------------------------------------------
    # Explicit selection
    # ------------------------------------------------------------------

    def select_by_name(self, country_name: str, kind: str, geometry: Any = None) -> bool:
        """Assign home or destination directly, bypassing click sequencing."""
        if kind not in (HOME, DESTINATION):
            raise ValueError(f"Unknown selection kind: {kind}")

        code = self._resolve(country_name)
        if code is None:
            return False

        country = Country(country_name, geometry)
        home = self.home
        destinations = self.destinations

        if kind == HOME:
            if home is not None and home.name == country_name:
                return False
            if any(d.name == country_name for d in destinations):
                logger.warning(f"{country_name} is already a destination")
                return False
            self.store.set({"home_country": country, "home_currency": code})
            logger.info(f"Set home country to {country_name} ({code})")
        else:
            if home is not None and home.name == country_name:
                logger.warning(f"{country_name} is already the home country")
                return False
            if len(destinations) == 0 or (
                len(destinations) == 1 and destinations[0].name != country_name
            ):
                updated = (country,)
            elif any(d.name == country_name for d in destinations):
                return False
            elif len(destinations) >= self.cap:
                logger.info(f"Destination cap of {self.cap} reached")
                return False
            else:
                updated = destinations + (country,)

            self.store.set({
                "destination_countries": updated,
                "destination_country": updated[0],
                "destination_currency": self.resolver.resolve_code(updated[0].name),
            })
            logger.info(f"Set destination country to {country_name} ({code})")

        self._publish_selection()
        self._request_refresh()
        return True

    def add_destination(self, country_name: str, geometry: Any = None) -> bool:
        """Append a destination within the tier cap and lock the map."""
        destinations = self.destinations
        if len(destinations) >= self.cap:
            logger.info(f"Destination cap of {self.cap} reached")
            return False

        code = self._resolve(country_name)
        if code is None:
            return False

        home = self.home
        if home is not None and home.name == country_name:
            return False
        if any(d.name == country_name for d in destinations):
            return False

        updated = destinations + (Country(country_name, geometry),)
        changes = {"destination_countries": updated}
        if self.destination is None:
            changes["destination_country"] = updated[0]
            changes["destination_currency"] = code
        self.store.set(changes)
        logger.info(f"Added destination {country_name} ({len(updated)}/{self.cap})")

        self._set_mode(MapMode.LOCKED)
        self._publish_selection()
        if home is not None:
            self._request_refresh()
        return True

    def remove_destination(self, country_name: str) -> bool:
        destinations = self.destinations
        if not any(d.name == country_name for d in destinations):
            return False

        remaining = tuple(d for d in destinations if d.name != country_name)
        changes = {"destination_countries": remaining}
        primary = self.destination
        if primary is not None and primary.name == country_name:
            new_primary = remaining[0] if remaining else None
            changes["destination_country"] = new_primary
            changes["destination_currency"] = (
                self.resolver.resolve_code(new_primary.name) if new_primary else None
            )
        self.store.set(changes)
        self.overlays.remove_for_country(country_name)
        logger.info(f"Removed destination {country_name}; {len(remaining)} remaining")

        if not remaining:
            self._populated_for = ()
            self._set_mode(MapMode.INTERACTIVE)
            self._publish_selection()
            self.events.emit(ev.RATE_HIDDEN)
        else:
            self._publish_selection()
            self._request_refresh()
        return True

    def swap(self) -> bool:
        """Exchange home and primary destination, keeping list order and length."""
        home = self.home
        primary = self.destination
        if home is None or primary is None:
            logger.info("Cannot swap: both countries must be selected")
            return False

        updated = tuple(home if d.name == primary.name else d for d in self.destinations)
        state = self.store.get()
        self.store.set({
            "home_country": primary,
            "home_currency": state.get("destination_currency"),
            "destination_countries": updated,
            "destination_country": updated[0],
            "destination_currency": self.resolver.resolve_code(updated[0].name),
        })
        logger.info(f"Swapped countries: {primary.name} -> {updated[0].name}")

        self._publish_selection()
        self._request_refresh()
        return True

    def clear_all(self) -> None:
        self.store.set({
            "home_country": None,
            "home_currency": None,
            "destination_country": None,
            "destination_currency": None,
            "destination_countries": (),
        })
        self.overlays.clear()
        self._populated_for = ()
        self._set_mode(MapMode.INTERACTIVE)
        self._publish_selection()
        self.events.emit(ev.RATE_HIDDEN)
        logger.info("Cleared all - back to initial state")

    # ------------------------------------------------------------------
    # Map modes
    # ------------------------------------------------------------------

    def enter_adding_mode(self) -> bool:
        mode = self.map_mode
        if mode == MapMode.LOCKED:
            logger.info("Cannot add destinations while the map is locked")
            return False
        if len(self.destinations) >= self.cap:
            logger.info(f"Destination cap of {self.cap} reached")
            return False
        self._set_mode(MapMode.ADDING)
        return True

    def exit_adding_mode(self) -> bool:
        if self.map_mode != MapMode.ADDING:
            return False
        self._set_mode(MapMode.INTERACTIVE)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, country_name: str) -> Optional[str]:
        code = self.resolver.resolve_code(country_name)
        if code is None:
            self._reject_unresolvable(country_name)
        return code

    def _reject_unresolvable(self, country_name: Optional[str]) -> bool:
        logger.warning(f"No currency found for country: {country_name!r}")
        self.events.emit(ev.UNRESOLVABLE_COUNTRY, country_name)
        return False

    def _set_mode(self, mode: MapMode) -> None:
        previous = self.map_mode
        if previous == mode:
            return
        self.store.set({"map_mode": mode})
        if mode == MapMode.LOCKED:
            self.events.emit(ev.MAP_LOCKED)
        elif previous == MapMode.LOCKED:
            self.events.emit(ev.MAP_UNLOCKED)

    def _publish_selection(self) -> None:
        self.events.emit(ev.SELECTION_CHANGED, self.home, list(self.destinations))

    def _request_refresh(self) -> None:
        home = self.home
        destinations = self.destinations
        if home is None or not destinations:
            return

        names = tuple(d.name for d in destinations)
        if names != self._populated_for:
            # Only a changed destination list resets the overlays
            self._populated_for = names
            if len(destinations) > 1:
                self.overlays.populate_from_destinations(
                    destinations, home, self.destination, self.resolver.resolve_code
                )
            else:
                self.overlays.remove_for_country(destinations[0].name)
        self.events.emit(ev.REFRESH_REQUESTED, self.snapshot())

    def _on_tier_changed(self, is_premium: Any, was_premium: Any) -> None:
        destinations = self.destinations
        cap = self.cap
        if len(destinations) <= cap:
            return

        kept = destinations[:cap]
        logger.info(f"Tier changed; trimming destinations to {cap}")
        self.store.set({"destination_countries": kept})
        for dropped in destinations[cap:]:
            self.overlays.remove_for_country(dropped.name)
        self._publish_selection()
        self._request_refresh()

    def detach(self) -> None:
        self._unsubscribe()
