"""District lookup endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Query

from district_lookup.api.dependencies import ResolverDep
from district_lookup.api.schemas import ClosestBoundaryRequest
from district_lookup.exceptions import DistrictNotFound
from district_lookup.geocoding import Coordinates
from district_lookup.spatial import distance_from_meters

router = APIRouter(tags=["districts"])


@router.get("/find-district")
def find_district(
    resolver: ResolverDep,
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
) -> dict[str, Any]:
    """Resolve a coordinate to its congressional district."""
    coordinates = Coordinates(lat=lat, lon=lon)
    match = resolver.resolve_district(coordinates)
    return {"success": True, "coordinates": coordinates.as_dict(), **match.as_dict()}


@router.post("/closest-boundary-point")
def closest_boundary_point(body: ClosestBoundaryRequest, resolver: ResolverDep) -> dict[str, Any]:
    """Closest point on a district's boundary to the given coordinate."""
    hit = resolver.closest_boundary_point(
        Coordinates(lat=body.lat, lon=body.lon), body.state, body.district
    )
    if hit is None:
        raise DistrictNotFound(f"District {body.state}-{body.district} not found")

    return {
        "success": True,
        "state": hit.state,
        "district": hit.district,
        "closestPoint": hit.closest_point_geojson(),
        "distance": distance_from_meters(hit.distance_meters).as_dict(),
    }
