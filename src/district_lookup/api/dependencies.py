"""FastAPI dependencies.

Long-lived collaborators are created once by ``create_app`` and kept on
``app.state``; tests replace them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from district_lookup.config import Settings
from district_lookup.geometry import GeometryStore
from district_lookup.reconciliation import ReconciliationEngine
from district_lookup.spatial import SpatialResolver


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_geometry_store(request: Request) -> GeometryStore:
    return request.app.state.geometry_store


def get_resolver(request: Request) -> SpatialResolver:
    return request.app.state.resolver


def get_reconciler(request: Request) -> ReconciliationEngine:
    return request.app.state.reconciler


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
GeometryStoreDep = Annotated[GeometryStore, Depends(get_geometry_store)]
ResolverDep = Annotated[SpatialResolver, Depends(get_resolver)]
ReconcilerDep = Annotated[ReconciliationEngine, Depends(get_reconciler)]
