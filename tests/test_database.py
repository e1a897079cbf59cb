"""Tests for schema setup against mocked SQLAlchemy connections."""

from unittest.mock import MagicMock, patch

from district_lookup.database import boundary_counts, drop_boundary_tables, ensure_postgis, init_database


def executed_sql(conn: MagicMock) -> list[str]:
    return [str(c.args[0]) for c in conn.execute.call_args_list]


class TestEnsurePostgis:
    def test_installs_when_missing(self):
        conn = MagicMock()
        conn.execute.return_value.scalar.return_value = None

        ensure_postgis(conn)

        assert executed_sql(conn)[-1] == "CREATE EXTENSION postgis"

    def test_skips_when_installed(self):
        conn = MagicMock()
        conn.execute.return_value.scalar.return_value = "3.4.2"

        ensure_postgis(conn)

        assert conn.execute.call_count == 1


class TestDropBoundaryTables:
    def test_drops_boundary_tables_and_migration_marker(self):
        conn = MagicMock()

        drop_boundary_tables(conn)

        assert executed_sql(conn) == [
            "DROP TABLE IF EXISTS members CASCADE",
            "DROP TABLE IF EXISTS districts CASCADE",
            "DROP TABLE IF EXISTS counties CASCADE",
            "DROP TABLE IF EXISTS alembic_version",
        ]


class TestBoundaryCounts:
    def test_counts_each_table(self):
        engine = MagicMock()
        conn = engine.connect.return_value.__enter__.return_value
        conn.execute.return_value.scalar_one.side_effect = [3, 437, 3144]

        assert boundary_counts(engine) == {"members": 3, "districts": 437, "counties": 3144}


class TestInitDatabase:
    def test_drop_then_migrate(self, test_settings):
        engine = MagicMock()
        conn = engine.begin.return_value.__enter__.return_value
        conn.execute.return_value.scalar.return_value = "3.4.2"

        with patch("district_lookup.database.get_engine", return_value=engine), patch(
            "district_lookup.migrations.upgrade_database"
        ) as mock_upgrade:
            init_database(drop_tables=True, settings=test_settings)

        assert "DROP TABLE IF EXISTS districts CASCADE" in executed_sql(conn)
        mock_upgrade.assert_called_once_with("head")
        engine.dispose.assert_called_once()

    def test_create_all_without_migrations(self, test_settings):
        engine = MagicMock()
        engine.begin.return_value.__enter__.return_value.execute.return_value.scalar.return_value = "3.4.2"

        with patch("district_lookup.database.get_engine", return_value=engine), patch(
            "district_lookup.database.Base.metadata.create_all"
        ) as mock_create_all, patch("district_lookup.migrations.upgrade_database") as mock_upgrade:
            init_database(drop_tables=False, settings=test_settings, run_migrations=False)

        mock_upgrade.assert_not_called()
        tables = [t.name for t in mock_create_all.call_args.kwargs["tables"]]
        assert tables == ["members", "districts", "counties"]
