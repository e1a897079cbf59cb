"""FastAPI application factory."""

from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from district_lookup import __version__
from district_lookup.api.errors import register_exception_handlers
from district_lookup.api.routers import districts, health, validation
from district_lookup.config import Settings, get_settings
from district_lookup.geometry import GeometryStore
from district_lookup.service import build_geometry_store, build_reconciler


def create_app(
    settings: Optional[Settings] = None,
    geometry_store: Optional[GeometryStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create the District Lookup API.

    Args:
        settings: Application settings; read from the environment when omitted
        geometry_store: Geometry store to use instead of the configured backend
        transport: httpx transport for provider calls (tests pass a MockTransport)
    """
    settings = settings or get_settings()
    store = geometry_store or build_geometry_store(settings)
    reconciler = build_reconciler(settings, store=store, transport=transport)

    app = FastAPI(
        title="District Lookup API",
        description="Congressional district lookup with multi-provider address validation",
        version=__version__,
    )

    app.state.settings = settings
    app.state.geometry_store = store
    app.state.resolver = reconciler.resolver
    app.state.reconciler = reconciler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(validation.router, prefix="/api")
    app.include_router(districts.router, prefix="/api")
    return app
