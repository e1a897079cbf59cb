"""Database migration utilities using Alembic."""

from pathlib import Path
from typing import Optional

from alembic import command as alembic_command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from loguru import logger
from sqlalchemy import create_engine

from district_lookup.config import get_settings


def get_alembic_config() -> Config:
    """
    Get Alembic configuration object.

    Returns:
        Configured Alembic Config object

    Raises:
        FileNotFoundError: If alembic.ini is not found
    """
    # alembic.ini lives in the project root, three levels above src/district_lookup/
    project_root = Path(__file__).parent.parent.parent
    alembic_ini = project_root / "alembic.ini"

    if not alembic_ini.exists():
        raise FileNotFoundError(f"Alembic config not found: {alembic_ini}")

    logger.debug("Loading Alembic config from: {}", alembic_ini)
    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(project_root / "alembic"))
    return config


def upgrade_database(revision: str = "head") -> None:
    """
    Upgrade the geometry store schema.

    Args:
        revision: Target revision (default: "head" for latest)
    """
    logger.info("Upgrading database to revision: {}", revision)
    config = get_alembic_config()

    try:
        alembic_command.upgrade(config, revision)
    except Exception as e:
        logger.error("Failed to upgrade database: {}", e)
        raise
    logger.info("Database upgraded to: {}", revision)


def show_current_revision() -> Optional[str]:
    """
    Get the current database migration revision.

    Returns:
        Current revision string or None if no migrations applied
    """
    settings = get_settings()
    engine = create_engine(settings.database_url, echo=False)

    try:
        with engine.connect() as connection:
            current_rev = MigrationContext.configure(connection).get_current_revision()
            logger.debug("Current revision: {}", current_rev)
            return current_rev
    except Exception as e:
        logger.error("Failed to get current revision: {}", e)
        raise
    finally:
        engine.dispose()


def show_history() -> list[tuple[str, str]]:
    """List (revision, description) for every migration, newest first."""
    script = ScriptDirectory.from_config(get_alembic_config())
    return [
        (revision.revision, revision.doc or "(no description)")
        for revision in script.walk_revisions()
    ]
