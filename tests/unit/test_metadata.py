"""
Unit tests for table metadata resolution.

Tests column exclusion, key resolution and the keyless fallback using mocked
DB-API cursors.
"""

import logging
from unittest.mock import MagicMock, Mock

import pytest

from reconciliation.errors import ExtractionError
from reconciliation.extract import KeySource, PostgresDialect, TableMetadataResolver
from reconciliation.tables import TableReference

TABLE = TableReference("public", "orders")


def _description(*names):
    return [(name, None, None, None, None, None, None) for name in names]


def _connection(description, primary_key=None, pk_error=None, describe_error=None):
    """
    Build a mock connection whose first cursor describes the table and
    second cursor answers the primary-key catalog query.
    """
    describe_cursor = MagicMock()
    describe_cursor.description = description
    if describe_error is not None:
        describe_cursor.execute.side_effect = describe_error

    pk_cursor = MagicMock()
    pk_cursor.fetchall.return_value = [(c,) for c in (primary_key or [])]
    if pk_error is not None:
        pk_cursor.execute.side_effect = pk_error

    connection = Mock()
    connection.cursor.side_effect = [describe_cursor, pk_cursor]
    return connection, describe_cursor, pk_cursor


class TestTableMetadataResolver:
    """Test TableMetadataResolver.resolve."""

    def test_resolves_columns_and_primary_key(self):
        """Columns come from the description, the key from the catalog."""
        connection, describe_cursor, pk_cursor = _connection(
            _description("id", "customer", "amount"), primary_key=["id"]
        )
        resolver = TableMetadataResolver(connection, PostgresDialect())

        metadata = resolver.resolve(TABLE)

        assert metadata.column_names == ["id", "customer", "amount"]
        assert metadata.key_columns == ("id",)
        assert metadata.key_source == KeySource.CATALOG
        assert metadata.has_primary_key
        assert [c.is_key for c in metadata.columns] == [True, False, False]
        describe_cursor.execute.assert_called_once_with('SELECT * FROM "public"."orders" WHERE 1=0')
        pk_cursor.execute.assert_called_once()
        assert pk_cursor.execute.call_args[0][1] == ("public", "orders")

    def test_skip_columns_are_excluded_case_insensitively(self):
        """Configured skip columns never appear in the projection."""
        connection, _, _ = _connection(
            _description("id", "name", "updated_at", "etl_batch"), primary_key=["id"]
        )
        resolver = TableMetadataResolver(connection, PostgresDialect(), skip_columns=["UPDATED_AT", "Etl_Batch"])

        metadata = resolver.resolve(TABLE)

        assert metadata.column_names == ["id", "name"]
        assert metadata.excluded_columns == ("updated_at", "etl_batch")
        assert [c.position for c in metadata.columns] == [1, 2]

    def test_composite_key_keeps_constraint_order(self):
        """Composite keys keep catalog order."""
        connection, _, _ = _connection(
            _description("line_no", "order_id", "qty"), primary_key=["order_id", "line_no"]
        )

        metadata = TableMetadataResolver(connection, PostgresDialect()).resolve(TABLE)

        assert metadata.key_columns == ("order_id", "line_no")

    def test_excluded_key_column_is_dropped_from_key(self):
        """A key column that is also a skip column is removed from the key."""
        connection, _, _ = _connection(
            _description("order_id", "line_no", "qty"), primary_key=["order_id", "line_no"]
        )
        resolver = TableMetadataResolver(connection, PostgresDialect(), skip_columns=["line_no"])

        metadata = resolver.resolve(TABLE)

        assert metadata.key_columns == ("order_id",)
        assert metadata.key_source == KeySource.CATALOG

    def test_keyless_table_orders_by_all_columns(self, caplog):
        """Without a primary key every kept column is the ordering key."""
        connection, _, _ = _connection(_description("a", "b"), primary_key=[])

        with caplog.at_level(logging.WARNING):
            metadata = TableMetadataResolver(connection, PostgresDialect()).resolve(TABLE)

        assert metadata.key_columns == ("a", "b")
        assert metadata.key_source == KeySource.ALL_COLUMNS
        assert not metadata.has_primary_key
        assert "No primary key found" in caplog.text

    def test_catalog_failure_falls_back_with_warning(self, caplog):
        """A failing catalog query is a warning, not an error."""
        connection, _, pk_cursor = _connection(
            _description("a", "b"), pk_error=Exception("permission denied for pg_index")
        )

        with caplog.at_level(logging.WARNING):
            metadata = TableMetadataResolver(connection, PostgresDialect()).resolve(TABLE)

        assert metadata.key_source == KeySource.ALL_COLUMNS
        assert metadata.key_columns == ("a", "b")
        assert "Primary key lookup failed" in caplog.text
        assert "permission denied" in caplog.text
        pk_cursor.close.assert_called_once()

    def test_driver_key_flags_take_precedence(self):
        """Key columns flagged by the driver skip the catalog query."""
        class FlaggingDialect(PostgresDialect):
            def read_key_flags(self, description):
                return ["ID"]

        describe_cursor = MagicMock()
        describe_cursor.description = _description("id", "name")
        connection = Mock()
        connection.cursor.return_value = describe_cursor

        metadata = TableMetadataResolver(connection, FlaggingDialect()).resolve(TABLE)

        assert metadata.key_columns == ("id",)
        assert metadata.key_source == KeySource.DRIVER
        assert connection.cursor.call_count == 1

    def test_all_columns_excluded(self, caplog):
        """Excluding every column leaves no projection and no key."""
        connection, _, _ = _connection(_description("a"), primary_key=["a"])

        with caplog.at_level(logging.WARNING):
            metadata = TableMetadataResolver(connection, PostgresDialect(), skip_columns=["a"]).resolve(TABLE)

        assert metadata.column_names == []
        assert metadata.key_columns == ()
        assert metadata.key_source == KeySource.NONE
        assert "not deterministic" in caplog.text

    def test_describe_failure_raises_extraction_error(self):
        """A table that cannot be described is an extraction error."""
        connection, describe_cursor, _ = _connection(None, describe_error=Exception("relation does not exist"))

        with pytest.raises(ExtractionError) as exc_info:
            TableMetadataResolver(connection, PostgresDialect()).resolve(TABLE)

        assert exc_info.value.table == "public.orders"
        assert "relation does not exist" in str(exc_info.value)
        describe_cursor.close.assert_called_once()

    def test_empty_description_raises_extraction_error(self):
        """A query with no description is an extraction error."""
        connection, _, _ = _connection(None)

        with pytest.raises(ExtractionError, match="no column metadata"):
            TableMetadataResolver(connection, PostgresDialect()).resolve(TABLE)

    def test_to_dict(self):
        """Metadata serializes to plain types."""
        connection, _, _ = _connection(_description("id", "v"), primary_key=["id"])

        data = TableMetadataResolver(connection, PostgresDialect(), ["v"]).resolve(TABLE).to_dict()

        assert data == {
            "table": "public.orders",
            "columns": ["id"],
            "key_columns": ["id"],
            "key_source": "catalog",
            "excluded_columns": ["v"],
        }
