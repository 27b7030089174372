"""Explicit observer interface between the core and the presentation layer.

The core emits named events; map and chart renderers subscribe to the ones
they care about. Nothing in the core calls presentation code by name.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List

from maprates.utils.logging import get_logger

logger = get_logger(__name__)

SELECTION_CHANGED = "selection_changed"
MAP_LOCKED = "map_locked"
MAP_UNLOCKED = "map_unlocked"
REFRESH_REQUESTED = "refresh_requested"
RATE_HIDDEN = "rate_hidden"
UNRESOLVABLE_COUNTRY = "unresolvable_country"
DATASET_READY = "dataset_ready"
REFRESH_FAILED = "refresh_failed"


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Callable[..., Any]]] = {}

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe ``handler`` to ``event``; returns an unsubscribe function."""
        self._handlers.setdefault(event, []).append(handler)

        def off() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return off

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Handler for event '{event}' raised")

    def has_handlers(self, event: str) -> bool:
        return bool(self._handlers.get(event))


class MapRendererBridge:
    """Forwards selection events to a map renderer object.

    The renderer needs ``update_country_selection(home, destinations)``,
    ``lock_map()`` and ``unlock_map()``.
    """

    def __init__(self, events: EventEmitter, renderer: Any):
        self.renderer = renderer
        self._unsubscribers = [
            events.on(SELECTION_CHANGED, renderer.update_country_selection),
            events.on(MAP_LOCKED, renderer.lock_map),
            events.on(MAP_UNLOCKED, renderer.unlock_map),
        ]

    def detach(self) -> None:
        for off in self._unsubscribers:
            off()
        self._unsubscribers = []
