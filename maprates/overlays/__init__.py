from maprates.overlays.overlay_set import OverlaySet, DEFAULT_OVERLAY_COLORS

__all__ = ["OverlaySet", "DEFAULT_OVERLAY_COLORS"]
