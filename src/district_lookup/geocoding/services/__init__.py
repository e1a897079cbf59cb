"""Geocoding provider implementations."""

# Providers auto-register on import
from . import census  # noqa: F401
from . import google_maps  # noqa: F401
from . import smarty  # noqa: F401
from . import usps  # noqa: F401

__all__ = ["census", "google_maps", "smarty", "usps"]
