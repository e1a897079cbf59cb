"""Command-line interface for District Lookup using Typer."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from district_lookup.config import get_settings
from district_lookup.database import boundary_counts, get_engine, get_session, init_database
from district_lookup.exceptions import DistrictLookupError
from district_lookup.geocoding import Coordinates
from district_lookup.logging import setup_logging
from district_lookup.reconciliation import ReconciliationReport

app = typer.Typer(
    name="district-lookup",
    help="District Lookup: resolve addresses to congressional districts",
    add_completion=True,
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging (DEBUG level)",
    ),
) -> None:
    """
    District Lookup CLI - congressional district lookup and address validation.
    """
    setup_logging(get_settings(), level="DEBUG" if verbose else None)


def _fail(action: str, error: Exception) -> None:
    logger.error("{} failed: {}", action, error)
    typer.secho(f"✗ {action} failed: {error}", fg=typer.colors.RED, bold=True)
    raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    logger.info("Starting API on {}:{}", host, port)

    uvicorn.run(
        "district_lookup.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        log_config=None,  # uvicorn records are forwarded to loguru
    )


@app.command()
def init_db(
    drop: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating new ones",
    ),
) -> None:
    """Initialize the PostGIS database schema."""
    logger.info("init-db command called with drop={}", drop)

    settings = get_settings()

    if drop:
        typer.secho(
            "WARNING: This will drop all existing tables!",
            fg=typer.colors.RED,
            bold=True,
        )
        if not typer.confirm("Are you sure you want to continue?"):
            typer.secho("Operation cancelled", fg=typer.colors.YELLOW)
            raise typer.Abort()

    try:
        init_database(drop_tables=drop, settings=settings)
    except Exception as e:
        _fail("Database initialization", e)

    typer.secho("✓ Database initialized successfully", fg=typer.colors.GREEN, bold=True)


@app.command()
def db_upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
) -> None:
    """Apply database migrations."""
    from district_lookup.migrations import upgrade_database

    try:
        upgrade_database(revision)
    except Exception as e:
        _fail("Migration", e)

    typer.secho(f"✓ Database upgraded to {revision}", fg=typer.colors.GREEN, bold=True)


@app.command()
def db_current() -> None:
    """Show the current migration revision and boundary row counts."""
    from district_lookup.migrations import show_current_revision

    settings = get_settings()
    engine = get_engine(settings)
    try:
        current = show_current_revision()
        counts = boundary_counts(engine) if current else {}
    except Exception as e:
        _fail("Revision check", e)
    finally:
        engine.dispose()

    typer.echo(f"Current revision: {current or '(none)'}")
    for table, count in counts.items():
        typer.echo(f"  {table}: {count:,} rows")


@app.command()
def db_history() -> None:
    """List the available migrations, newest first."""
    from district_lookup.migrations import show_history

    try:
        history = show_history()
    except Exception as e:
        _fail("History lookup", e)

    table = Table(title="Migrations", show_header=True, header_style="bold magenta")
    table.add_column("Revision", style="cyan")
    table.add_column("Description")
    for revision, description in history:
        table.add_row(revision, description)
    console.print(table)


def _run_import(kind: str, file: Path, clear: bool) -> None:
    from district_lookup import importer

    settings = get_settings()
    engine = get_engine(settings)
    session = get_session(engine)
    import_fn = importer.import_districts if kind == "districts" else importer.import_counties

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(f"Importing {kind}...", total=None)
            stats = import_fn(session, file, clear_existing=clear)
    except Exception as e:
        session.rollback()
        _fail(f"Import of {kind}", e)
    finally:
        session.close()
        engine.dispose()

    table = Table(title=f"Imported {kind}", show_header=True, header_style="bold magenta")
    table.add_column("Result", style="cyan")
    table.add_column("Count", justify="right", style="green")
    for key, value in stats.items():
        table.add_row(key.capitalize(), f"{value:,}")
    console.print(table)


@app.command()
def import_districts(
    file: Path = typer.Argument(..., help="District boundaries (.geojson, .shp or .zip)"),
    clear: bool = typer.Option(False, "--clear", help="Delete existing districts first"),
) -> None:
    """Import congressional district boundaries into PostGIS."""
    _run_import("districts", file, clear)


@app.command()
def import_counties(
    file: Path = typer.Argument(..., help="County boundaries (.geojson, .shp or .zip)"),
    clear: bool = typer.Option(False, "--clear", help="Delete existing counties first"),
) -> None:
    """Import county boundaries into PostGIS."""
    _run_import("counties", file, clear)


def _print_report(report: ReconciliationReport) -> None:
    table = Table(title="Validation Results", show_header=True, header_style="bold magenta")
    table.add_column("Method", style="cyan")
    table.add_column("Status")
    table.add_column("Standardized Address")
    table.add_column("Coordinates", justify="right")
    table.add_column("District", style="green")
    table.add_column("Notes", style="yellow")

    for result in report.per_provider_results:
        match = report.per_provider_districts.get(result.provider_name)
        coords = result.coordinates
        notes = result.raw_error or ""
        if match is not None and not match.found and match.distance_to_boundary:
            notes = f"outside districts, {match.distance_to_boundary.miles:.2f} mi from boundary"
        table.add_row(
            result.provider_name,
            "[green]ok[/green]" if result.success else "[red]failed[/red]",
            result.standardized_address.one_line() if result.standardized_address else "",
            f"{coords.lat:.6f}, {coords.lon:.6f}" if coords else "",
            match.label if match else "",
            notes,
        )
    console.print(table)

    consensus = report.consensus_district.label if report.consensus_district else "none"
    color = typer.colors.GREEN if report.agreement else typer.colors.YELLOW
    typer.secho(
        f"Agreement: {report.agreement}  Confidence: {report.confidence_percent}%  "
        f"Consensus district: {consensus}",
        fg=color,
        bold=True,
    )
    for issue in report.analysis.issues:
        typer.secho(f"  ! {issue}", fg=typer.colors.YELLOW)


@app.command()
def validate(
    address: str = typer.Argument(..., help='Address, e.g. "123 Main St, City, ST 12345"'),
    methods: Optional[list[str]] = typer.Option(
        None,
        "--method",
        "-m",
        help="Validation method (census, usps, google, smarty); repeatable",
    ),
) -> None:
    """Validate an address with one or more providers and compare districts."""
    from district_lookup.service import build_reconciler

    settings = get_settings()
    enabled = methods or settings.default_methods
    logger.info("validate command called with methods={}", enabled)

    try:
        reconciler = build_reconciler(settings)
        report = asyncio.run(reconciler.reconcile(address, enabled))
    except (DistrictLookupError, ValueError) as e:
        _fail("Validation", e)

    _print_report(report)


@app.command()
def find_district(
    lat: float = typer.Argument(..., help="Latitude"),
    lon: float = typer.Argument(..., help="Longitude (use -- before negative values)"),
) -> None:
    """Resolve a coordinate to its congressional district."""
    from district_lookup.service import build_geometry_store
    from district_lookup.spatial import SpatialResolver

    settings = get_settings()
    try:
        resolver = SpatialResolver(build_geometry_store(settings))
        match = resolver.resolve_district(Coordinates(lat=lat, lon=lon))
    except DistrictLookupError as e:
        _fail("District lookup", e)

    if match.key is None:
        typer.secho("No district geometries loaded", fg=typer.colors.YELLOW)
        return

    if match.found:
        typer.secho(f"✓ {match.label}", fg=typer.colors.GREEN, bold=True)
    else:
        typer.secho(
            f"Outside all districts; nearest is {match.label}, "
            f"{match.distance_to_boundary.meters:,.0f} m "
            f"({match.distance_to_boundary.miles:.2f} mi) away",
            fg=typer.colors.YELLOW,
        )
    if match.member:
        typer.echo(f"  Member: {match.member.name} ({match.member.party or 'unknown party'})")
    if match.county_fips:
        typer.echo(f"  County FIPS: {match.county_fips}")


if __name__ == "__main__":
    app()
