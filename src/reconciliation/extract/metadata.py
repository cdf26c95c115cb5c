"""
Table metadata resolution.

Determines the column set that takes part in fingerprinting and the columns
rows are ordered by. Resolution runs once per table per side:

1. A zero-row query yields every column from the cursor description.
2. Configured skip columns are removed (case-insensitive).
3. Key columns come from the driver description if it carries a key flag,
   otherwise from the engine's primary-key catalog, restricted to the
   remaining columns and kept in constraint order.
4. Without a usable key every remaining column becomes the ordering key and
   a warning is logged. Ordering is then only as deterministic as the data
   itself (duplicate rows may still interleave).
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from ..errors import ExtractionError, MetadataError
from ..tables import TableReference
from .dialects import Dialect

logger = logging.getLogger(__name__)


class KeySource:
    """How the ordering key of a table was obtained."""

    DRIVER = "driver"
    CATALOG = "catalog"
    ALL_COLUMNS = "all_columns"
    NONE = "none"


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    position: int
    is_key: bool = False


@dataclass(frozen=True)
class TableMetadata:
    """Resolved projection and ordering for one side of a table pair."""

    table: TableReference
    columns: tuple[ColumnDescriptor, ...]
    key_columns: tuple[str, ...]
    key_source: str = KeySource.NONE
    excluded_columns: tuple[str, ...] = field(default=())

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def has_primary_key(self) -> bool:
        return self.key_source in (KeySource.DRIVER, KeySource.CATALOG)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": str(self.table),
            "columns": self.column_names,
            "key_columns": list(self.key_columns),
            "key_source": self.key_source,
            "excluded_columns": list(self.excluded_columns),
        }


class TableMetadataResolver:
    """Resolves column and ordering metadata for tables on one connection."""

    def __init__(
        self,
        connection: Any,
        dialect: Dialect,
        skip_columns: Iterable[str] = (),
    ):
        """
        Args:
            connection: Open DB-API connection
            dialect: Dialect of the engine behind ``connection``
            skip_columns: Column names excluded from fingerprinting
        """
        self.connection = connection
        self.dialect = dialect
        self.skip_columns = tuple(skip_columns)
        self._skip_lower = {c.lower() for c in self.skip_columns}

    def resolve(self, table: TableReference) -> TableMetadata:
        """
        Resolve metadata for ``table``

        Raises:
            ExtractionError: If the table cannot be described at all
        """
        with trace_operation(
            "resolve_table_metadata",
            kind=trace.SpanKind.CLIENT,
            table=str(table),
            dialect=self.dialect.name,
        ):
            description = self._describe(table)
            all_columns = [d[0] for d in description]

            kept = [c for c in all_columns if c.lower() not in self._skip_lower]
            excluded = [c for c in all_columns if c.lower() in self._skip_lower]
            if excluded:
                logger.info(f"Excluding {len(excluded)} column(s) from {table}: {', '.join(excluded)}")

            key_columns, key_source = self._resolve_key(table, description, kept)

            key_lower = {k.lower() for k in key_columns}
            columns = tuple(
                ColumnDescriptor(name=name, position=i, is_key=name.lower() in key_lower)
                for i, name in enumerate(kept, start=1)
            )

            add_span_attributes(
                column_count=len(columns),
                key_source=key_source,
            )

            return TableMetadata(
                table=table,
                columns=columns,
                key_columns=tuple(key_columns),
                key_source=key_source,
                excluded_columns=tuple(excluded),
            )

    def _describe(self, table: TableReference) -> list:
        cursor = self.connection.cursor()
        try:
            cursor.execute(self.dialect.describe_query(table))
            description = cursor.description
        except Exception as e:
            raise ExtractionError(str(table), f"failed to read column metadata: {e}") from e
        finally:
            cursor.close()

        if not description:
            raise ExtractionError(str(table), "query returned no column metadata")
        return list(description)

    def _resolve_key(
        self,
        table: TableReference,
        description: list,
        kept: list[str],
    ) -> tuple[list[str], str]:
        by_lower = {c.lower(): c for c in kept}

        flagged = [by_lower[c.lower()] for c in self.dialect.read_key_flags(description) if c.lower() in by_lower]
        if flagged:
            return flagged, KeySource.DRIVER

        try:
            catalog_key = self._lookup_primary_key(table)
        except MetadataError as e:
            logger.warning(f"Primary key lookup failed, treating table as keyless: {e}")
            catalog_key = []

        restricted = []
        for column in catalog_key:
            actual = by_lower.get(column.lower())
            if actual is None:
                logger.info(f"Primary key column {column} of {table} is excluded, dropping it from the ordering key")
            elif actual not in restricted:
                restricted.append(actual)

        if restricted:
            logger.debug(f"Primary key for {table}: {', '.join(restricted)}")
            return restricted, KeySource.CATALOG

        if not kept:
            logger.warning(f"No columns left to order {table} by, row order is not deterministic")
            return [], KeySource.NONE

        logger.warning(
            f"No primary key found for {table}; ordering by all {len(kept)} column(s). "
            f"Rows with identical values may be compared out of order."
        )
        return list(kept), KeySource.ALL_COLUMNS

    def _lookup_primary_key(self, table: TableReference) -> list[str]:
        cursor = self.connection.cursor()
        try:
            return self.dialect.fetch_primary_key(cursor, table)
        except Exception as e:
            raise MetadataError(str(table), str(e)) from e
        finally:
            cursor.close()
