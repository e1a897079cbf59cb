"""Geocoding providers for District Lookup.

Each provider adapts one external address API to the common GeocodeResult
shape. Importing this package registers all of them.
"""

from .base import (
    Coordinates,
    GeocodeProvider,
    GeocodeResult,
    StandardizedAddress,
)
from .registry import GeocodeProviderRegistry
from . import services  # noqa: F401

__all__ = [
    "Coordinates",
    "GeocodeProvider",
    "GeocodeResult",
    "StandardizedAddress",
    "GeocodeProviderRegistry",
]
