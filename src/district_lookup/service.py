"""Wiring from Settings to a ready-to-use ReconciliationEngine."""

from pathlib import Path
from typing import Optional

import httpx
from loguru import logger

from district_lookup.config import Settings
from district_lookup.database import get_engine
from district_lookup.exceptions import SpatialLookupFailure
from district_lookup.geocoding import GeocodeProviderRegistry
from district_lookup.geometry import FileGeometryStore, GeometryStore, PostGISGeometryStore
from district_lookup.reconciliation import ReconciliationEngine
from district_lookup.spatial import SpatialResolver


def build_geometry_store(settings: Settings) -> GeometryStore:
    """Create the geometry store selected by ``settings.geometry_backend``.

    Raises:
        SpatialLookupFailure: If the file backend is selected without a boundaries file
    """
    if settings.geometry_backend == "file":
        if not settings.boundaries_file:
            raise SpatialLookupFailure("boundaries_file must be set for the file geometry backend")
        logger.info("Using file geometry store: {}", settings.boundaries_file)
        return FileGeometryStore.from_files(
            Path(settings.boundaries_file),
            Path(settings.counties_file) if settings.counties_file else None,
        )

    logger.info("Using PostGIS geometry store")
    return PostGISGeometryStore(get_engine(settings))


def build_reconciler(
    settings: Settings,
    store: Optional[GeometryStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ReconciliationEngine:
    """Instantiate every registered provider around one spatial resolver."""
    providers = GeocodeProviderRegistry.create_all(settings)
    configured = [name for name, p in providers.items() if p.is_configured()]
    logger.info("Geocoding providers configured: {}", ", ".join(configured) or "none")
    return ReconciliationEngine(
        providers=providers,
        resolver=SpatialResolver(store or build_geometry_store(settings)),
        provider_timeout=settings.provider_timeout,
        transport=transport,
    )
