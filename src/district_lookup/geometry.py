"""District and county geometry stores.

Two backends answer the same point queries:

- PostGISGeometryStore reads the ``districts``/``members``/``counties``
  tables through SQLAlchemy and lets PostGIS do containment and geodesic
  distance.
- FileGeometryStore loads GeoJSON FeatureCollections into shapely and
  answers in-process, which is enough to run without a database.
"""

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from shapely import STRtree
from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import nearest_points
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError

from district_lookup.exceptions import SpatialLookupFailure

EARTH_RADIUS_METERS = 6_371_000
METERS_PER_DEGREE = 111_320.0

# Candidate property names, in priority order, for boundary files from
# different sources (Census cartographic files, hand-made GeoJSON, KML exports)
STATE_PROPERTIES = ("state", "STATE", "state_code", "STUSPS", "STATE_ABBR")
DISTRICT_PROPERTIES = (
    "district",
    "DISTRICT",
    "district_number",
    "CD119FP",
    "CD118FP",
    "CD116FP",
    "CDFP",
)
AT_LARGE_CODES = {"00", "0", "98", "AL", "ZZ"}

# Census files identify states by FIPS code only
STATE_FIPS = {
    "01": "AL", "02": "AK", "04": "AZ", "05": "AR", "06": "CA", "08": "CO", "09": "CT",
    "10": "DE", "11": "DC", "12": "FL", "13": "GA", "15": "HI", "16": "ID", "17": "IL",
    "18": "IN", "19": "IA", "20": "KS", "21": "KY", "22": "LA", "23": "ME", "24": "MD",
    "25": "MA", "26": "MI", "27": "MN", "28": "MS", "29": "MO", "30": "MT", "31": "NE",
    "32": "NV", "33": "NH", "34": "NJ", "35": "NM", "36": "NY", "37": "NC", "38": "ND",
    "39": "OH", "40": "OK", "41": "OR", "42": "PA", "44": "RI", "45": "SC", "46": "SD",
    "47": "TN", "48": "TX", "49": "UT", "50": "VT", "51": "VA", "53": "WA", "54": "WV",
    "55": "WI", "56": "WY", "60": "AS", "66": "GU", "69": "MP", "72": "PR", "78": "VI",
}  # fmt: skip


@dataclass
class MemberSummary:
    """House member shown alongside a resolved district."""

    name: str
    party: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    contact_form: Optional[str] = None
    photo: Optional[str] = None
    office: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[dict[str, Any]]) -> Optional["MemberSummary"]:
        if not data or not data.get("name"):
            return None
        return cls(
            name=data["name"],
            party=data.get("party"),
            phone=data.get("phone"),
            website=data.get("website"),
            contact_form=data.get("contact_form") or data.get("contactForm"),
            photo=data.get("photo"),
            office=data.get("office"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "party": self.party,
            "phone": self.phone,
            "website": self.website,
            "contactForm": self.contact_form,
            "photo": self.photo,
            "office": self.office,
        }


@dataclass
class DistrictHit:
    """A district whose polygon contains the queried point."""

    state: str
    district: int
    is_at_large: bool
    member: Optional[MemberSummary] = None
    county_fips: Optional[str] = None
    area_sq_meters: float = 0.0


@dataclass
class BoundaryHit:
    """Nearest point on a district's boundary to the queried point."""

    state: str
    district: int
    is_at_large: bool
    distance_meters: float
    closest_lon: float
    closest_lat: float

    def closest_point_geojson(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.closest_lon, self.closest_lat]}


@dataclass
class CountyHit:
    geoid: str
    name: str
    state: Optional[str] = None


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points, in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, a)))


def parse_district_number(value: Any) -> tuple[int, bool]:
    """Parse a district code into (number, is_at_large).

    At-large codes ("00", "98", "AL", ...) map to district 0.
    """
    code = str(value).strip().upper()
    if code in AT_LARGE_CODES:
        return 0, True
    number = int(code)
    return number, number == 0


def district_properties(properties: dict[str, Any]) -> tuple[str, int, bool]:
    """Detect (state, district, is_at_large) from a boundary feature's properties.

    Raises:
        ValueError: If no state or district property is recognised
    """
    state = next((properties[k] for k in STATE_PROPERTIES if properties.get(k)), None)
    if not state and properties.get("STATEFP"):
        state = STATE_FIPS.get(str(properties["STATEFP"]).zfill(2))
    raw_district = next(
        (properties[k] for k in DISTRICT_PROPERTIES if properties.get(k) not in (None, "")),
        None,
    )
    if not state or raw_district is None:
        raise ValueError(f"Cannot detect state/district from properties: {sorted(properties)}")

    district, is_at_large = parse_district_number(raw_district)
    if "is_at_large" in properties:
        is_at_large = bool(properties["is_at_large"])
    return str(state).strip().upper(), district, is_at_large


def approximate_area_sq_meters(geom: BaseGeometry) -> float:
    """Equirectangular area estimate, good enough to rank nested polygons."""
    lat = geom.centroid.y
    return geom.area * METERS_PER_DEGREE**2 * math.cos(math.radians(lat))


def read_feature_collection(file_path: Path) -> list[dict[str, Any]]:
    """Read features from a GeoJSON FeatureCollection.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a FeatureCollection or has no features
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    with open(file_path) as f:
        geojson_data = json.load(f)

    if geojson_data.get("type") != "FeatureCollection":
        raise ValueError(
            f"Invalid GeoJSON: expected FeatureCollection, got {geojson_data.get('type')}"
        )
    features = geojson_data.get("features", [])
    if not features:
        raise ValueError(f"No features found in {file_path.name}")
    logger.info("Read {} features from {}", len(features), file_path.name)
    return features


class GeometryStore(ABC):
    """Read-only point queries against district and county geometries."""

    @abstractmethod
    def contains_point(self, lon: float, lat: float) -> list[DistrictHit]:
        """Districts containing the point, smallest area first."""
        pass

    @abstractmethod
    def nearest_boundary(self, lon: float, lat: float) -> Optional[BoundaryHit]:
        """Closest district boundary to the point, or None if there are no districts."""
        pass

    @abstractmethod
    def closest_boundary_point(
        self, lon: float, lat: float, state: str, district: int
    ) -> Optional[BoundaryHit]:
        """Closest point on one district's boundary, or None if the district is unknown."""
        pass

    @abstractmethod
    def find_county(self, lon: float, lat: float) -> Optional[CountyHit]:
        pass

    def ping(self) -> bool:
        """Whether the store can currently answer queries."""
        return True


CONTAINS_SQL = """
    WITH pt AS (SELECT ST_SetSRID(ST_MakePoint(:lon, :lat), 4326) AS geom)
    SELECT
        d.state_code,
        d.district_number,
        d.is_at_large,
        ST_Area(d.geom::geography) AS area_sq_meters,
        (
            SELECT c.geoid FROM counties c
            WHERE ST_Contains(c.geom, pt.geom)
            LIMIT 1
        ) AS county_fips,
        m.full_name,
        m.party,
        m.phone,
        m.website,
        m.contact_form_url,
        m.photo_url,
        NULLIF(CONCAT_WS(' ', m.office_room, m.office_building), '') AS office
    FROM districts d
    CROSS JOIN pt
    LEFT JOIN LATERAL (
        SELECT * FROM members mm
        WHERE mm.state_code = d.state_code AND mm.district_number = d.district_number
        ORDER BY mm.id
        LIMIT 1
    ) m ON TRUE
    WHERE ST_Contains(d.geom, pt.geom)
    ORDER BY area_sq_meters ASC, d.state_code, d.district_number
"""

# KNN on the planar index narrows to a handful of candidates; the geodesic
# distance then picks the true nearest among them.
NEAREST_SQL = """
    WITH pt AS (SELECT ST_SetSRID(ST_MakePoint(:lon, :lat), 4326) AS geom),
    candidates AS (
        SELECT d.state_code, d.district_number, d.is_at_large, d.geom
        FROM districts d, pt
        {where}
        ORDER BY d.geom <-> pt.geom
        LIMIT :candidates
    )
    SELECT
        c.state_code,
        c.district_number,
        c.is_at_large,
        ST_Distance(ST_Boundary(c.geom)::geography, pt.geom::geography) AS distance_meters,
        ST_X(ST_ClosestPoint(ST_Boundary(c.geom), pt.geom)) AS closest_lon,
        ST_Y(ST_ClosestPoint(ST_Boundary(c.geom), pt.geom)) AS closest_lat
    FROM candidates c, pt
    ORDER BY distance_meters ASC
    LIMIT 1
"""

COUNTY_SQL = """
    SELECT geoid, name, state_abbr
    FROM counties
    WHERE ST_Contains(geom, ST_SetSRID(ST_MakePoint(:lon, :lat), 4326))
    LIMIT 1
"""


class PostGISGeometryStore(GeometryStore):
    """Geometry store backed by PostGIS tables."""

    def __init__(self, engine: Engine, knn_candidates: int = 10):
        self.engine = engine
        self.knn_candidates = knn_candidates

    def _query(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                return [dict(row) for row in conn.execute(text(sql), params).mappings().all()]
        except DBAPIError as e:
            logger.error("Geometry store query failed: {}", e)
            raise SpatialLookupFailure("District geometry store is unavailable") from e

    def contains_point(self, lon: float, lat: float) -> list[DistrictHit]:
        rows = self._query(CONTAINS_SQL, {"lon": lon, "lat": lat})
        return [
            DistrictHit(
                state=row["state_code"],
                district=int(row["district_number"]),
                is_at_large=bool(row["is_at_large"]),
                member=MemberSummary.from_mapping(
                    {
                        "name": row["full_name"],
                        "party": row["party"],
                        "phone": row["phone"],
                        "website": row["website"],
                        "contact_form": row["contact_form_url"],
                        "photo": row["photo_url"],
                        "office": row["office"],
                    }
                ),
                county_fips=row["county_fips"],
                area_sq_meters=float(row["area_sq_meters"]),
            )
            for row in rows
        ]

    def _nearest(self, lon: float, lat: float, where: str, extra: dict[str, Any]) -> Optional[BoundaryHit]:
        params = {"lon": lon, "lat": lat, "candidates": self.knn_candidates, **extra}
        rows = self._query(NEAREST_SQL.format(where=where), params)
        if not rows:
            return None
        row = rows[0]
        return BoundaryHit(
            state=row["state_code"],
            district=int(row["district_number"]),
            is_at_large=bool(row["is_at_large"]),
            distance_meters=float(row["distance_meters"]),
            closest_lon=float(row["closest_lon"]),
            closest_lat=float(row["closest_lat"]),
        )

    def nearest_boundary(self, lon: float, lat: float) -> Optional[BoundaryHit]:
        return self._nearest(lon, lat, "", {})

    def closest_boundary_point(
        self, lon: float, lat: float, state: str, district: int
    ) -> Optional[BoundaryHit]:
        return self._nearest(
            lon,
            lat,
            "WHERE d.state_code = :state AND d.district_number = :district",
            {"state": state.upper(), "district": district},
        )

    def find_county(self, lon: float, lat: float) -> Optional[CountyHit]:
        rows = self._query(COUNTY_SQL, {"lon": lon, "lat": lat})
        if not rows:
            return None
        return CountyHit(geoid=rows[0]["geoid"], name=rows[0]["name"], state=rows[0]["state_abbr"])

    def ping(self) -> bool:
        try:
            self._query("SELECT 1 AS ok", {})
        except SpatialLookupFailure:
            return False
        return True


@dataclass
class _DistrictShape:
    state: str
    district: int
    is_at_large: bool
    geom: BaseGeometry
    member: Optional[MemberSummary]
    area_sq_meters: float


@dataclass
class _CountyShape:
    geoid: str
    name: str
    state: Optional[str]
    geom: BaseGeometry


class FileGeometryStore(GeometryStore):
    """In-process geometry store built from GeoJSON features."""

    def __init__(
        self,
        district_features: list[dict[str, Any]],
        county_features: Optional[list[dict[str, Any]]] = None,
    ):
        self._districts: list[_DistrictShape] = []
        for feature in district_features:
            properties = feature.get("properties") or {}
            try:
                state, district, is_at_large = district_properties(properties)
            except ValueError as e:
                logger.warning("Skipping district feature: {}", e)
                continue
            geom = shape(feature["geometry"])
            self._districts.append(
                _DistrictShape(
                    state=state,
                    district=district,
                    is_at_large=is_at_large,
                    geom=geom,
                    member=MemberSummary.from_mapping(properties.get("member")),
                    area_sq_meters=approximate_area_sq_meters(geom),
                )
            )

        self._counties: list[_CountyShape] = []
        for feature in county_features or []:
            properties = feature.get("properties") or {}
            geoid = properties.get("GEOID") or properties.get("geoid")
            if not geoid:
                logger.warning("Skipping county feature without GEOID")
                continue
            self._counties.append(
                _CountyShape(
                    geoid=str(geoid),
                    name=properties.get("NAME") or properties.get("name") or "",
                    state=properties.get("STUSPS") or STATE_FIPS.get(str(geoid)[:2]),
                    geom=shape(feature["geometry"]),
                )
            )

        self._district_tree = STRtree([d.geom for d in self._districts])
        self._county_tree = STRtree([c.geom for c in self._counties])
        logger.info(
            "Loaded {} districts and {} counties into memory",
            len(self._districts),
            len(self._counties),
        )

    @classmethod
    def from_files(cls, boundaries_file: Path, counties_file: Optional[Path] = None) -> "FileGeometryStore":
        try:
            districts = read_feature_collection(boundaries_file)
            counties = read_feature_collection(counties_file) if counties_file else []
        except (OSError, ValueError) as e:
            raise SpatialLookupFailure(f"Cannot load boundary files: {e}") from e
        return cls(districts, counties)

    def contains_point(self, lon: float, lat: float) -> list[DistrictHit]:
        point = Point(lon, lat)
        candidates = self._district_tree.query(point)
        county = self.find_county(lon, lat)
        hits = [
            DistrictHit(
                state=d.state,
                district=d.district,
                is_at_large=d.is_at_large,
                member=d.member,
                county_fips=county.geoid if county else None,
                area_sq_meters=d.area_sq_meters,
            )
            for d in (self._districts[i] for i in candidates)
            if d.geom.contains(point)
        ]
        hits.sort(key=lambda h: (h.area_sq_meters, h.state, h.district))
        return hits

    def _boundary_hit(self, d: _DistrictShape, point: Point) -> BoundaryHit:
        closest, _ = nearest_points(d.geom.boundary, point)
        return BoundaryHit(
            state=d.state,
            district=d.district,
            is_at_large=d.is_at_large,
            distance_meters=haversine_meters(point.y, point.x, closest.y, closest.x),
            closest_lon=closest.x,
            closest_lat=closest.y,
        )

    def nearest_boundary(self, lon: float, lat: float) -> Optional[BoundaryHit]:
        if not self._districts:
            return None
        point = Point(lon, lat)
        return min(
            (self._boundary_hit(d, point) for d in self._districts),
            key=lambda hit: hit.distance_meters,
        )

    def closest_boundary_point(
        self, lon: float, lat: float, state: str, district: int
    ) -> Optional[BoundaryHit]:
        point = Point(lon, lat)
        for d in self._districts:
            if d.state == state.upper() and d.district == district:
                return self._boundary_hit(d, point)
        return None

    def find_county(self, lon: float, lat: float) -> Optional[CountyHit]:
        point = Point(lon, lat)
        for i in self._county_tree.query(point):
            county = self._counties[i]
            if county.geom.contains(point):
                return CountyHit(geoid=county.geoid, name=county.name, state=county.state)
        return None
