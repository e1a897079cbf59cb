"""Alembic environment configuration for District Lookup."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from district_lookup.config import get_settings
from district_lookup.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

settings = get_settings()
config.set_main_option("sqlalchemy.url", settings.database_url)

# Tables owned by PostGIS itself
POSTGIS_TABLES = {"spatial_ref_sys", "topology", "layer"}


def include_object(_object, name, type_, _reflected, _compare_to):
    """Only compare tables defined in District Lookup models."""
    if type_ == "table" and (name in POSTGIS_TABLES or name == "alembic_version"):
        return False
    return True


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
