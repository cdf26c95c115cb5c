"""
Deterministic, batched row extraction.

Rows are read with an explicit projection (only non-excluded columns) and an
explicit ORDER BY on the resolved key, then handed to a consumer in batches of
column-name to value dicts. The batch size bounds memory on the client side
and never affects the order or content of what the consumer sees.

When a row cap is configured the query asks for one row more than the cap, so
a truncated table can be told apart from one that simply ended.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from ..errors import ExtractionError
from .dialects import Dialect
from .metadata import TableMetadata

logger = logging.getLogger(__name__)

RowBatch = list[dict[str, Any]]
BatchConsumer = Callable[[RowBatch], None]


@dataclass
class ExtractionStats:
    """Outcome of one extraction."""

    table: str
    rows: int = 0
    batches: int = 0
    truncated: bool = False
    duration_seconds: float = 0.0


class DeterministicExtractor:
    """Streams the rows of a table in a stable order."""

    def __init__(
        self,
        connection: Any,
        dialect: Dialect,
        batch_size: int = 5000,
        max_rows: int | None = None,
        command_timeout_seconds: int = 300,
        side: str | None = None,
    ):
        """
        Args:
            connection: Open DB-API connection
            dialect: Dialect of the engine behind ``connection``
            batch_size: Rows per fetch (must be positive)
            max_rows: Row cap, None or 0 for no cap
            command_timeout_seconds: Statement timeout, 0 disables it
            side: Label ("source"/"target") used in errors and logs
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.connection = connection
        self.dialect = dialect
        self.batch_size = batch_size
        self.max_rows = max_rows or None
        self.command_timeout_seconds = command_timeout_seconds
        self.side = side

    def build_query(self, metadata: TableMetadata) -> str:
        limit = self.max_rows + 1 if self.max_rows else None
        return self.dialect.build_select(
            metadata.table,
            metadata.column_names,
            metadata.key_columns,
            limit=limit,
        )

    def extract(self, metadata: TableMetadata, consumer: BatchConsumer) -> ExtractionStats:
        """
        Stream every row of the table to ``consumer``

        Args:
            metadata: Resolved metadata for the table on this side
            consumer: Called once per non-empty batch, in extraction order

        Returns:
            ExtractionStats for the completed extraction

        Raises:
            ExtractionError: On any driver failure. The consumer may already
                have received some batches; the result must be discarded.
        """
        table = str(metadata.table)
        columns = metadata.column_names
        stats = ExtractionStats(table=table)
        query = self.build_query(metadata)
        started = time.monotonic()

        with trace_operation(
            "extract_table",
            kind=trace.SpanKind.CLIENT,
            table=table,
            side=self.side or "unknown",
            batch_size=self.batch_size,
        ):
            logger.debug(f"Extraction query for {table}: {query}")

            cursor = None
            try:
                self.dialect.apply_timeout(self.connection, self.command_timeout_seconds)
                cursor = self.dialect.open_cursor(self.connection, self.batch_size)
                cursor.execute(query)
            except Exception as e:
                self._close(cursor)
                raise ExtractionError(table, f"query failed: {e}", side=self.side) from e

            try:
                while True:
                    try:
                        rows = cursor.fetchmany(self.batch_size)
                    except Exception as e:
                        raise ExtractionError(
                            table, f"fetch failed after {stats.rows} rows: {e}", side=self.side
                        ) from e

                    if not rows:
                        break

                    if self.max_rows is not None and stats.rows + len(rows) > self.max_rows:
                        rows = rows[: self.max_rows - stats.rows]
                        stats.truncated = True

                    if rows:
                        consumer([dict(zip(columns, row)) for row in rows])
                        stats.rows += len(rows)
                        stats.batches += 1

                    if stats.truncated:
                        break
            finally:
                self._close(cursor)

            stats.duration_seconds = time.monotonic() - started
            add_span_attributes(rows=stats.rows, truncated=stats.truncated)

        if stats.truncated:
            logger.warning(
                f"Row cap of {self.max_rows:,} reached for {table}; "
                f"extraction truncated, remaining rows were not compared"
            )
        else:
            logger.info(
                f"Extracted {stats.rows:,} rows from {table} in {stats.batches} batch(es) "
                f"({stats.duration_seconds:.2f}s)"
            )
        return stats

    def _close(self, cursor: Any) -> None:
        if cursor is None:
            return
        try:
            cursor.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing cursor: {e}")
