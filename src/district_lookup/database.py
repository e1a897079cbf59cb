"""Engine, sessions and schema setup for the PostGIS geometry store."""

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session
from loguru import logger

from district_lookup.config import Settings
from district_lookup.models import Base, County, District, Member

BOUNDARY_MODELS = (Member, District, County)


def get_engine(settings: Settings) -> Engine:
    """SQLAlchemy engine for ``settings.database_url``; connections are pinged before use."""
    return create_engine(settings.database_url, echo=False, pool_pre_ping=True)


def get_session(engine: Engine) -> Session:
    return Session(engine)


def ensure_postgis(conn: Connection) -> None:
    version = conn.execute(
        text("SELECT extversion FROM pg_extension WHERE extname = 'postgis'")
    ).scalar()
    if version:
        logger.debug("PostGIS {} already installed", version)
        return
    logger.info("Installing PostGIS extension")
    conn.execute(text("CREATE EXTENSION postgis"))


def drop_boundary_tables(conn: Connection) -> None:
    """Drop the district, member and county tables and the migration marker."""
    for model in BOUNDARY_MODELS:
        logger.warning("Dropping table {}", model.__tablename__)
        conn.execute(text(f"DROP TABLE IF EXISTS {model.__tablename__} CASCADE"))
    conn.execute(text("DROP TABLE IF EXISTS alembic_version"))


def boundary_counts(engine: Engine) -> dict[str, int]:
    """Row count per boundary table, e.g. ``{"districts": 435, ...}``."""
    with engine.connect() as conn:
        return {
            model.__tablename__: conn.execute(select(func.count()).select_from(model)).scalar_one()
            for model in BOUNDARY_MODELS
        }


def init_database(drop_tables: bool, settings: Settings, run_migrations: bool = True) -> None:
    """
    Prepare an empty database for boundary imports.

    Installs PostGIS, optionally drops the boundary tables, then builds the
    schema through Alembic (or ``create_all`` when ``run_migrations`` is
    False, which leaves no migration history behind).

    Args:
        drop_tables: Drop districts, members, counties and alembic_version first
        settings: Application settings containing the database URL
        run_migrations: Build the schema with Alembic migrations
    """
    engine = get_engine(settings)
    try:
        with engine.begin() as conn:
            ensure_postgis(conn)
            if drop_tables:
                drop_boundary_tables(conn)

        if run_migrations:
            from district_lookup.migrations import upgrade_database

            upgrade_database("head")
        else:
            Base.metadata.create_all(engine, tables=[m.__table__ for m in BOUNDARY_MODELS])
            logger.info("Boundary tables created without migration history")
    finally:
        engine.dispose()
