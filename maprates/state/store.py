"""Observable key/value application state.

One StateStore instance is constructed by the application and handed to
every component that reads or writes shared state.

Notification contract:

- ``set(updates)`` merges shallowly, then for each key in ``updates`` calls
  that key's listeners with ``(new_value, old_value)``, then calls the
  wildcard listeners with ``(new_state, old_state)``.
- The listener list for a key is copied before it is iterated. A callback
  unsubscribed during a cycle still fires for that cycle if it was already
  queued; a callback subscribed during a cycle first fires on the next one.
- Listeners receive deep copies, as ``get`` returns, so mutating an
  argument never changes the stored value.
- A listener may call ``set`` again. The nested call notifies completely
  before the outer cycle resumes, so the outer cycle keeps delivering the
  values captured when it started. Listeners that need the latest state
  should read it with ``get`` rather than trust their arguments.
"""
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Mapping, Optional

from maprates.state.models import MapMode
from maprates.utils.logging import get_logger

logger = get_logger(__name__)

WILDCARD = "*"

Listener = Callable[[Any, Any], None]


def initial_state() -> Dict[str, Any]:
    """The Empty state: nothing selected, map interactive."""
    return {
        # Selection
        "home_country": None,
        "home_currency": None,
        "destination_country": None,
        "destination_currency": None,
        "destination_countries": (),
        # Chart features
        "active_overlays": (),
        "active_indicators": {},
        "current_timeframe": "7D",
        # Entitlement and map
        "is_premium_user": False,
        "map_mode": MapMode.INTERACTIVE,
    }


class StateStore:
    """Single observable container for ApplicationState."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._state: Dict[str, Any] = initial_state()
        if initial:
            self._state.update(initial)
        self._listeners: Dict[str, List[Listener]] = {}

    def get(self, key: Optional[str] = None) -> Any:
        """Return a copy of one value, or of the whole state when key is None.

        Unknown keys return None.
        """
        if key is None:
            return copy.deepcopy(self._state)
        return copy.deepcopy(self._state.get(key))

    def set(self, updates: Mapping[str, Any]) -> None:
        """Merge ``updates`` into the state and notify listeners."""
        if not updates:
            return

        old_state = self._state
        self._state = {**self._state, **copy.deepcopy(dict(updates))}
        new_state = self._state

        # Listeners receive copies; mutating them never reaches the store
        for key in updates:
            for callback in list(self._listeners.get(key, ())):
                self._invoke(callback, key, copy.deepcopy(new_state.get(key)),
                             copy.deepcopy(old_state.get(key)))

        for callback in list(self._listeners.get(WILDCARD, ())):
            self._invoke(callback, WILDCARD, copy.deepcopy(new_state), copy.deepcopy(old_state))

    def subscribe(self, key: str, callback: Listener) -> Callable[[], None]:
        """Register ``callback`` for ``key`` (or WILDCARD); returns an unsubscribe function."""
        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._listeners.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def listener_count(self, key: str) -> int:
        return len(self._listeners.get(key, ()))

    @staticmethod
    def _invoke(callback: Listener, key: str, new: Any, old: Any) -> None:
        try:
            callback(new, old)
        except Exception:
            # set() itself never fails; remaining listeners still run
            logger.exception(f"State listener for '{key}' raised")
