"""Health check endpoints."""

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from district_lookup.api.dependencies import GeometryStoreDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(store: GeometryStoreDep) -> dict[str, str]:
    """Basic health check, including whether the geometry store answers."""
    store_ok = await run_in_threadpool(store.ping)
    return {
        "status": "healthy" if store_ok else "degraded",
        "geometryStore": "ok" if store_ok else "unavailable",
    }
