"""Resolve coordinates to congressional districts."""

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from district_lookup.exceptions import SpatialLookupFailure
from district_lookup.geocoding import Coordinates
from district_lookup.geometry import BoundaryHit, GeometryStore, MemberSummary

METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084


@dataclass(frozen=True)
class Distance:
    meters: float
    kilometers: float
    miles: float
    feet: float

    def as_dict(self) -> dict[str, float]:
        return {
            "meters": self.meters,
            "kilometers": self.kilometers,
            "miles": self.miles,
            "feet": self.feet,
        }


def distance_from_meters(meters: float) -> Distance:
    """Express a distance in meters in every unit the API reports."""
    return Distance(
        meters=meters,
        kilometers=meters / 1000,
        miles=meters * METERS_TO_MILES,
        feet=meters * METERS_TO_FEET,
    )


@dataclass
class DistrictMatch:
    """Outcome of resolving one point.

    When ``found`` is false the point lies outside every district and the
    state/district describe the nearest one, with ``distance_to_boundary``
    and ``closest_boundary_point`` set.
    """

    state: Optional[str]
    district: Optional[int]
    is_at_large: bool = False
    found: bool = False
    member: Optional[MemberSummary] = None
    county_fips: Optional[str] = None
    distance_to_boundary: Optional[Distance] = None
    closest_boundary_point: Optional[dict[str, Any]] = None

    @property
    def key(self) -> Optional[tuple[str, int]]:
        """(state, district) used to compare results across providers."""
        if self.state is None or self.district is None:
            return None
        return (self.state, self.district)

    @property
    def label(self) -> str:
        if self.key is None:
            return "unknown"
        return f"{self.state}-{'AL' if self.is_at_large else self.district}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "district": self.district,
            "isAtLarge": self.is_at_large,
            "found": self.found,
            "member": self.member.as_dict() if self.member else None,
            "countyFips": self.county_fips,
            "distanceToBoundary": (
                self.distance_to_boundary.as_dict() if self.distance_to_boundary else None
            ),
            "closestBoundaryPoint": self.closest_boundary_point,
        }


class SpatialResolver:
    """Point-in-polygon district resolution with nearest-boundary fallback."""

    def __init__(self, store: GeometryStore):
        self.store = store

    def resolve_district(self, coordinates: Coordinates) -> DistrictMatch:
        """Resolve a coordinate to a DistrictMatch.

        Raises:
            SpatialLookupFailure: If the geometry store cannot be queried
        """
        lon, lat = coordinates.lon, coordinates.lat
        try:
            hits = self.store.contains_point(lon, lat)
            if hits:
                hits = sorted(hits, key=lambda h: (h.area_sq_meters, h.state, h.district))
                if len(hits) > 1:
                    logger.warning(
                        "Point ({}, {}) is inside {} districts: {}; using smallest {}-{}",
                        lat,
                        lon,
                        len(hits),
                        ", ".join(f"{h.state}-{h.district}" for h in hits),
                        hits[0].state,
                        hits[0].district,
                    )
                best = hits[0]
                return DistrictMatch(
                    state=best.state,
                    district=best.district,
                    is_at_large=best.is_at_large,
                    found=True,
                    member=best.member,
                    county_fips=best.county_fips,
                )

            nearest = self.store.nearest_boundary(lon, lat)
            county = self.store.find_county(lon, lat) if nearest else None
        except SpatialLookupFailure:
            raise
        except Exception as e:
            logger.error("Spatial lookup failed for ({}, {}): {}", lat, lon, e)
            raise SpatialLookupFailure(f"Spatial lookup failed: {e}") from e

        if nearest is None:
            logger.warning("No district geometries loaded; cannot resolve ({}, {})", lat, lon)
            return DistrictMatch(state=None, district=None)

        logger.info(
            "Point ({}, {}) is outside all districts; nearest is {}-{} at {:.1f} m",
            lat,
            lon,
            nearest.state,
            nearest.district,
            nearest.distance_meters,
        )
        return self._outside_match(nearest, county.geoid if county else None)

    @staticmethod
    def _outside_match(nearest: BoundaryHit, county_fips: Optional[str]) -> DistrictMatch:
        return DistrictMatch(
            state=nearest.state,
            district=nearest.district,
            is_at_large=nearest.is_at_large,
            found=False,
            county_fips=county_fips,
            distance_to_boundary=distance_from_meters(nearest.distance_meters),
            closest_boundary_point=nearest.closest_point_geojson(),
        )

    def closest_boundary_point(
        self, coordinates: Coordinates, state: str, district: int
    ) -> Optional[BoundaryHit]:
        """Closest point on a named district's boundary, or None if it is unknown."""
        try:
            return self.store.closest_boundary_point(
                coordinates.lon, coordinates.lat, state, district
            )
        except SpatialLookupFailure:
            raise
        except Exception as e:
            logger.error("Closest boundary lookup failed for {}-{}: {}", state, district, e)
            raise SpatialLookupFailure(f"Spatial lookup failed: {e}") from e
