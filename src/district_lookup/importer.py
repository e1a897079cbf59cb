"""Load district and county boundaries into PostGIS.

Operator tooling used by the ``import-districts`` and ``import-counties``
commands; the request path only reads what these functions write.
"""

import json
import zipfile
from pathlib import Path
from typing import Any

from geoalchemy2 import WKTElement
from loguru import logger
from shapely.geometry import shape
from sqlalchemy.orm import Session

from district_lookup.geometry import STATE_FIPS, district_properties, read_feature_collection
from district_lookup.models import County, District, Member


def read_boundary_features(file_path: Path) -> list[dict[str, Any]]:
    """Read boundary features from GeoJSON, shapefile, or zip archive.

    Supports:
    - .geojson / .json files (GeoJSON FeatureCollection)
    - .shp files (ESRI Shapefile)
    - .zip files containing shapefiles (auto-detects .shp inside)

    Shapefiles are reprojected to EPSG:4326 when needed. All formats come
    back as GeoJSON-style feature dicts with ``properties`` and ``geometry``.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format is unsupported or contains no features
    """
    suffix = file_path.suffix.lower()
    if suffix in (".geojson", ".json"):
        return read_feature_collection(file_path)

    import geopandas as gpd

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if suffix == ".zip":
        gdf = gpd.read_file(f"zip://{file_path}!{_find_shapefile(file_path)}")
    elif suffix == ".shp":
        logger.info("Reading shapefile: {}", file_path)
        gdf = gpd.read_file(file_path)
    else:
        raise ValueError(
            f"Unsupported file format '{suffix}'. Supported: .geojson, .json, .shp, .zip"
        )

    if gdf.empty:
        raise ValueError("No features found in file")

    if gdf.crs and gdf.crs.to_epsg() != 4326:
        logger.info("Reprojecting from {} to EPSG:4326", gdf.crs)
        gdf = gdf.to_crs(epsg=4326)

    features = json.loads(gdf.to_json()).get("features", [])
    logger.info("Read {} features from {} file", len(features), suffix)
    return features


def _find_shapefile(zip_path: Path) -> str:
    """Name of the first .shp member of a zip archive."""
    with zipfile.ZipFile(zip_path) as zf:
        shp_names = [n for n in zf.namelist() if n.lower().endswith(".shp")]
    if not shp_names:
        raise ValueError(f"No .shp file found inside {zip_path.name}")
    logger.info("Found shapefile in zip: {}", shp_names[0])
    return shp_names[0]


def _log_detected_properties(features: list[dict[str, Any]]) -> None:
    if features:
        props = features[0].get("properties", {})
        logger.info("Available properties: {}", list(props.keys()))
        for k, v in props.items():
            logger.debug("  {} = {!r}", k, v)


def _member_from_properties(state: str, district: int, props: dict[str, Any]) -> Member | None:
    member = props.get("member")
    if not isinstance(member, dict) or not member.get("name"):
        return None
    return Member(
        bioguide_id=member.get("bioguide_id") or member.get("bioguideId"),
        state_code=state,
        district_number=district,
        full_name=member["name"],
        party=member.get("party"),
        phone=member.get("phone"),
        website=member.get("website"),
        contact_form_url=member.get("contact_form") or member.get("contactForm"),
        photo_url=member.get("photo"),
        office_room=member.get("office_room"),
        office_building=member.get("office_building"),
    )


def import_districts(
    session: Session, file_path: Path, clear_existing: bool = False
) -> dict[str, int]:
    """Import congressional district boundaries (and embedded members).

    Features whose (state, district) already exists are skipped.

    Returns:
        Dictionary with statistics: total, success, failed, skipped, members
    """
    logger.info("Importing congressional districts from {}", file_path)

    if clear_existing:
        members = session.query(Member).delete()
        count = session.query(District).delete()
        session.commit()
        logger.info("Cleared {} existing districts and {} members", count, members)

    features = read_boundary_features(file_path)
    _log_detected_properties(features)

    stats = {"total": len(features), "success": 0, "failed": 0, "skipped": 0, "members": 0}
    existing = {
        (row.state_code, row.district_number)
        for row in session.query(District.state_code, District.district_number).all()
    }

    for idx, feature in enumerate(features, 1):
        props = feature.get("properties") or {}
        geometry = feature.get("geometry")
        if not geometry:
            logger.warning("Feature {}: Missing geometry, skipping", idx)
            stats["skipped"] += 1
            continue

        try:
            state, district, is_at_large = district_properties(props)
            geom = WKTElement(shape(geometry).wkt, srid=4326)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Feature {}: Failed to import - {}", idx, e)
            stats["failed"] += 1
            continue

        if (state, district) in existing:
            logger.debug("District {}-{} already exists, skipping", state, district)
            stats["skipped"] += 1
            continue

        session.add(
            District(
                state_code=state,
                district_number=district,
                is_at_large=is_at_large,
                name=props.get("NAMELSAD") or props.get("name") or f"{state}-{district}",
                source_file=file_path.name,
                geom=geom,
            )
        )
        existing.add((state, district))
        stats["success"] += 1

        member = _member_from_properties(state, district, props)
        if member is not None:
            session.add(member)
            stats["members"] += 1

        if stats["success"] % 100 == 0:
            logger.info("Progress: {}/{} districts imported...", stats["success"], len(features))

    session.commit()
    logger.info(
        "Import complete: {} imported, {} skipped, {} failed, {} members",
        stats["success"],
        stats["skipped"],
        stats["failed"],
        stats["members"],
    )
    return stats


def import_counties(
    session: Session, file_path: Path, clear_existing: bool = False
) -> dict[str, int]:
    """Import county boundaries from a Census cartographic boundary file.

    Returns:
        Dictionary with statistics: total, success, failed, skipped
    """
    logger.info("Importing counties from {}", file_path)

    if clear_existing:
        count = session.query(County).delete()
        session.commit()
        logger.info("Cleared {} existing counties", count)

    features = read_boundary_features(file_path)
    _log_detected_properties(features)

    stats = {"total": len(features), "success": 0, "failed": 0, "skipped": 0}
    existing = {row.geoid for row in session.query(County.geoid).all()}

    for idx, feature in enumerate(features, 1):
        props = feature.get("properties") or {}
        geometry = feature.get("geometry")
        geoid = str(props.get("GEOID") or props.get("geoid") or "")

        if not geometry or len(geoid) != 5:
            logger.warning("Feature {}: Missing geometry or GEOID, skipping", idx)
            stats["skipped"] += 1
            continue
        if geoid in existing:
            stats["skipped"] += 1
            continue

        try:
            geom = WKTElement(shape(geometry).wkt, srid=4326)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Feature {}: Failed to import - {}", idx, e)
            stats["failed"] += 1
            continue

        session.add(
            County(
                geoid=geoid,
                statefp=geoid[:2],
                countyfp=geoid[2:],
                name=props.get("NAME") or props.get("name") or geoid,
                state_abbr=props.get("STUSPS") or STATE_FIPS.get(geoid[:2]),
                geom=geom,
            )
        )
        existing.add(geoid)
        stats["success"] += 1

    session.commit()
    logger.info(
        "Import complete: {} imported, {} skipped, {} failed",
        stats["success"],
        stats["skipped"],
        stats["failed"],
    )
    return stats
