"""
Unit tests for deterministic row extraction.

Tests query construction, batching, the row cap and error wrapping using an
in-memory DB-API cursor stand-in.
"""

import logging
from unittest.mock import MagicMock, Mock

import pytest

from reconciliation.errors import ExtractionError
from reconciliation.extract import (
    DeterministicExtractor,
    Dialect,
    KeySource,
    OracleDialect,
    SqlServerDialect,
    TableMetadata,
)
from reconciliation.extract.metadata import ColumnDescriptor
from reconciliation.tables import TableReference


class FakeCursor:
    """Serves a fixed list of rows through fetchmany()."""

    def __init__(self, rows, fail_after=None):
        self.rows = list(rows)
        self.fail_after = fail_after
        self.position = 0
        self.executed = []
        self.fetch_sizes = []
        self.arraysize = 1
        self.closed = False

    def execute(self, query, params=None):
        self.executed.append(query)

    def fetchmany(self, size):
        if self.fail_after is not None and self.position >= self.fail_after:
            raise RuntimeError("connection reset by peer")
        self.fetch_sizes.append(size)
        batch = self.rows[self.position:self.position + size]
        self.position += len(batch)
        return batch

    def close(self):
        self.closed = True


def _metadata(columns=("id", "name"), key=("id",), schema="public", name="items"):
    return TableMetadata(
        table=TableReference(schema, name),
        columns=tuple(ColumnDescriptor(c, i) for i, c in enumerate(columns, start=1)),
        key_columns=tuple(key),
        key_source=KeySource.CATALOG if key else KeySource.NONE,
    )


def _connection(cursor):
    connection = Mock()
    connection.cursor.return_value = cursor
    return connection


ROWS = [(i, f"item-{i}") for i in range(1, 11)]


class TestBuildQuery:
    """Test extraction query construction."""

    def test_projection_and_order(self):
        """The query lists kept columns and orders by the key."""
        extractor = DeterministicExtractor(Mock(), Dialect())

        query = extractor.build_query(_metadata())

        assert query == 'SELECT "id", "name" FROM "public"."items" ORDER BY "id"'

    def test_row_cap_asks_for_one_more_row(self):
        """A cap of N pushes a limit of N+1 down to the database."""
        extractor = DeterministicExtractor(Mock(), Dialect(), max_rows=100)

        assert extractor.build_query(_metadata()).endswith("LIMIT 101")

    def test_oracle_row_cap(self):
        """Oracle uses FETCH FIRST."""
        extractor = DeterministicExtractor(Mock(), OracleDialect(), max_rows=5)

        query = extractor.build_query(_metadata(columns=("ID",), key=("ID",), schema="HR", name="EMP"))

        assert query == 'SELECT "ID" FROM "HR"."EMP" ORDER BY "ID" FETCH FIRST 6 ROWS ONLY'

    def test_sqlserver_row_cap(self):
        """SQL Server uses TOP."""
        extractor = DeterministicExtractor(Mock(), SqlServerDialect(), max_rows=5)

        query = extractor.build_query(_metadata(schema="dbo"))

        assert query == "SELECT TOP (6) [id], [name] FROM [dbo].[items] ORDER BY [id]"

    def test_zero_cap_means_unlimited(self):
        """max_rows of 0 is the same as no cap."""
        extractor = DeterministicExtractor(Mock(), Dialect(), max_rows=0)

        assert extractor.max_rows is None
        assert "LIMIT" not in extractor.build_query(_metadata())

    def test_invalid_batch_size(self):
        """batch_size must be positive."""
        with pytest.raises(ValueError, match="batch_size"):
            DeterministicExtractor(Mock(), Dialect(), batch_size=0)


class TestExtract:
    """Test DeterministicExtractor.extract."""

    def test_rows_are_delivered_as_dicts_in_order(self):
        """Every row reaches the consumer as a column-name dict."""
        cursor = FakeCursor(ROWS)
        extractor = DeterministicExtractor(_connection(cursor), Dialect(), batch_size=4)
        received = []

        stats = extractor.extract(_metadata(), received.extend)

        assert received[0] == {"id": 1, "name": "item-1"}
        assert [r["id"] for r in received] == list(range(1, 11))
        assert stats.rows == 10
        assert stats.batches == 3
        assert not stats.truncated
        assert cursor.closed
        assert cursor.arraysize == 4

    @pytest.mark.parametrize("batch_size", [1, 3, 7, 10, 5000])
    def test_batch_size_does_not_change_output(self, batch_size):
        """The consumer sees the same rows whatever the batch size."""
        received = []
        extractor = DeterministicExtractor(_connection(FakeCursor(ROWS)), Dialect(), batch_size=batch_size)

        extractor.extract(_metadata(), received.extend)

        assert received == [{"id": i, "name": n} for i, n in ROWS]

    def test_row_cap_truncates_and_warns(self, caplog):
        """Reaching the cap stops extraction and logs a warning."""
        extractor = DeterministicExtractor(
            _connection(FakeCursor(ROWS)), Dialect(), batch_size=4, max_rows=6
        )
        received = []

        with caplog.at_level(logging.INFO):
            stats = extractor.extract(_metadata(), received.extend)

        assert stats.truncated
        assert stats.rows == 6
        assert [r["id"] for r in received] == [1, 2, 3, 4, 5, 6]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Row cap" in r.getMessage() for r in warnings)

    def test_table_ending_exactly_at_cap_is_not_truncated(self, caplog):
        """A table with exactly N rows under a cap of N ends naturally."""
        extractor = DeterministicExtractor(
            _connection(FakeCursor(ROWS)), Dialect(), batch_size=3, max_rows=10
        )

        with caplog.at_level(logging.INFO):
            stats = extractor.extract(_metadata(), lambda batch: None)

        assert stats.rows == 10
        assert not stats.truncated
        assert not [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Extracted 10 rows" in r.getMessage() for r in caplog.records)

    def test_empty_table(self):
        """An empty table never calls the consumer."""
        consumer = Mock()
        extractor = DeterministicExtractor(_connection(FakeCursor([])), Dialect())

        stats = extractor.extract(_metadata(), consumer)

        assert stats.rows == 0
        consumer.assert_not_called()

    def test_timeout_is_applied(self):
        """The configured timeout is applied before the query runs."""
        connection = _connection(FakeCursor(ROWS))
        extractor = DeterministicExtractor(connection, OracleDialect(), command_timeout_seconds=30)

        extractor.extract(_metadata(), lambda batch: None)

        assert connection.call_timeout == 30000

    def test_query_failure_raises_extraction_error(self):
        """A failing query is wrapped with table and side."""
        cursor = MagicMock()
        cursor.execute.side_effect = RuntimeError("ORA-00942: table or view does not exist")
        extractor = DeterministicExtractor(_connection(cursor), Dialect(), side="source")

        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(_metadata(), lambda batch: None)

        error = exc_info.value
        assert error.table == "public.items"
        assert error.side == "source"
        assert str(error).startswith("[source] public.items:")
        assert "ORA-00942" in str(error)
        cursor.close.assert_called_once()

    def test_fetch_failure_mid_stream(self):
        """A failure after some batches is still an extraction error."""
        cursor = FakeCursor(ROWS, fail_after=4)
        extractor = DeterministicExtractor(_connection(cursor), Dialect(), batch_size=2, side="target")

        with pytest.raises(ExtractionError, match="after 4 rows"):
            extractor.extract(_metadata(), lambda batch: None)

        assert cursor.closed

    def test_consumer_errors_are_not_wrapped(self):
        """Exceptions raised by the consumer propagate unchanged."""
        extractor = DeterministicExtractor(_connection(FakeCursor(ROWS)), Dialect())

        def consumer(batch):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            extractor.extract(_metadata(), consumer)
