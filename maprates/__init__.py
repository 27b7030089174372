"""MapRates: map-driven currency selection, overlays and technical indicators."""

__version__ = "0.1.0"
