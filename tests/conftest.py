"""
Pytest configuration and fixtures for validator tests.

Provides a SQLite-backed dialect so the resolver, extractor, fingerprinter and
engine can be driven end to end against real database files.
"""

import sqlite3
from pathlib import Path
from typing import Any

import pytest

from reconciliation.config import DatabaseSettings, ValidatorConfig
from reconciliation.extract.dialects import Dialect, register_dialect
from reconciliation.tables import TableReference
from reconciliation.validator import DatabaseSide


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: tests that drive real SQLite databases")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class SqliteDialect(Dialect):
    """Test dialect: SQLite files addressed through the ``main`` schema."""

    name = "sqlite"

    def primary_key_query(self, table: TableReference) -> tuple[str, Any]:
        return (
            "SELECT name FROM pragma_table_info(?, ?) WHERE pk > 0 ORDER BY pk",
            (table.name, table.schema),
        )

    def list_tables_query(self, schema: str) -> tuple[str, Any]:
        return (
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name",
            (),
        )

    def connect(self, settings: Any) -> Any:
        return sqlite3.connect(settings.database)


register_dialect("sqlite", SqliteDialect)


@pytest.fixture
def make_sqlite_db(tmp_path: Path):
    """
    Factory creating a SQLite file with one or more tables.

    Usage:
        path = make_sqlite_db("source", {
            "CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT)": [(1, "a")],
        })
    """

    def _make(name: str, tables: dict[str, list[tuple]]) -> str:
        path = tmp_path / f"{name}.db"
        connection = sqlite3.connect(path)
        try:
            for ddl, rows in tables.items():
                connection.execute(ddl)
                if rows:
                    placeholders = ", ".join("?" for _ in rows[0])
                    table_name = ddl.split()[2]
                    connection.executemany(
                        f"INSERT INTO {table_name} VALUES ({placeholders})", rows
                    )
            connection.commit()
        finally:
            connection.close()
        return str(path)

    return _make


@pytest.fixture
def sqlite_settings():
    """Build DatabaseSettings for a SQLite file."""

    def _settings(path: str, skip_columns: tuple[str, ...] = ()) -> DatabaseSettings:
        return DatabaseSettings(
            engine="sqlite",
            database=path,
            schema="main",
            password="unused",
            skip_columns=skip_columns,
        )

    return _settings


@pytest.fixture
def sqlite_config(tmp_path: Path, sqlite_settings):
    """Build a ValidatorConfig for a pair of SQLite files."""

    def _config(source_path: str, target_path: str, **overrides) -> ValidatorConfig:
        source_skip = overrides.pop("source_skip_columns", ())
        target_skip = overrides.pop("target_skip_columns", ())
        overrides.setdefault("reports_dir", str(tmp_path / "reports"))
        overrides.setdefault("save_hashes_to_csv", False)
        return ValidatorConfig(
            source=sqlite_settings(source_path, source_skip),
            target=sqlite_settings(target_path, target_skip),
            **overrides,
        )

    return _config


@pytest.fixture
def sqlite_side():
    """Build a DatabaseSide for SQLite settings."""

    def _side(label: str, settings: DatabaseSettings) -> DatabaseSide:
        return DatabaseSide(label=label, settings=settings, dialect=SqliteDialect())

    return _side
