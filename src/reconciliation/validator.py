"""
Table-pair orchestration.

For each mapped table pair the validator opens one connection per side,
resolves metadata, streams and fingerprints every row, and hands the two
completed fingerprint maps to the ReconciliationEngine. Any failure on either
side turns into an errored ComparisonResult for that pair only; the run then
moves on to the next pair. Tables are processed one at a time.
"""

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.tracing import add_span_attributes, trace_operation

from .config import DatabaseSettings, ValidatorConfig
from .errors import ExtractionError, ReconciliationError
from .extract import DeterministicExtractor, Dialect, TableMetadata, TableMetadataResolver, get_dialect
from .fingerprint import RowFingerprint, RowFingerprinter
from .report.hash_csv import HashCsvWriter
from .row_level import ComparisonResult, ReconciliationEngine, ResultAggregator, RunSummary
from .tables import (
    TableMapping,
    TableReference,
    discover_table_mappings,
    is_all_tables,
    parse_table_mappings,
)

logger = logging.getLogger(__name__)


@dataclass
class DatabaseSide:
    """One side of the comparison: settings, dialect and a connection factory."""

    label: str
    settings: DatabaseSettings
    dialect: Dialect
    connector: Callable[[], Any] | None = None

    @classmethod
    def from_settings(cls, label: str, settings: DatabaseSettings) -> "DatabaseSide":
        return cls(label=label, settings=settings, dialect=get_dialect(settings.engine))

    @property
    def skip_columns(self) -> tuple[str, ...]:
        return self.settings.skip_columns

    @property
    def schema(self) -> str | None:
        return self.settings.normalized_schema

    def connect(self) -> Any:
        if self.connector is not None:
            return self.connector()
        return self.dialect.connect(self.settings)


@dataclass
class TableSnapshot:
    """Fingerprints of one fully extracted table on one side."""

    side: str
    table: TableReference
    metadata: TableMetadata
    fingerprints: dict[int, RowFingerprint] = field(default_factory=dict)
    truncated: bool = False

    @property
    def row_count(self) -> int:
        return len(self.fingerprints)


@dataclass
class ExtractResult:
    """Outcome of single-database extraction for one table."""

    table: TableReference
    row_count: int = 0
    csv_path: Path | None = None
    error: str | None = None


class MigrationValidator:
    """Runs table-pair validations with per-table error isolation."""

    def __init__(
        self,
        config: ValidatorConfig,
        source: DatabaseSide | None = None,
        target: DatabaseSide | None = None,
        fingerprinter: RowFingerprinter | None = None,
        engine: ReconciliationEngine | None = None,
        metrics: Any | None = None,
        hash_writer: HashCsvWriter | None = None,
    ):
        """
        Args:
            config: Validation settings
            source: Source side (default: built from config.source)
            target: Target side (default: built from config.target)
            fingerprinter: Row fingerprinter (default: config.hash_algorithm)
            engine: Reconciliation engine (default: config.evidence_limit)
            metrics: Optional ReconciliationMetrics
            hash_writer: Per-row CSV writer (default: one in config.reports_dir
                when config.save_hashes_to_csv is set)
        """
        self.config = config
        self.source = source or DatabaseSide.from_settings("source", config.source)
        self.target = target or DatabaseSide.from_settings("target", config.target)
        self.fingerprinter = fingerprinter or RowFingerprinter(config.hash_algorithm)
        self.engine = engine or ReconciliationEngine(evidence_limit=config.evidence_limit)
        self.metrics = metrics
        if hash_writer is None and config.save_hashes_to_csv:
            hash_writer = HashCsvWriter(config.reports_dir)
        self.hash_writer = hash_writer

    # ---------- table selection ----------

    def resolve_mappings(self, mapping_spec: str | None = None) -> list[TableMapping]:
        """
        Turn a mapping list (or ``ALL``) into table pairs

        Raises:
            ValueError: If no tables are configured or none are found
        """
        spec = mapping_spec or self.config.tables_to_compare
        if not spec:
            raise ValueError("No tables to compare: set TABLES_TO_COMPARE or pass --tables")

        if not is_all_tables(spec):
            return parse_table_mappings(
                spec,
                self.source.dialect.normalize_identifier,
                self.target.dialect.normalize_identifier,
            )

        if not self.source.schema or not self.target.schema:
            raise ValueError("'ALL' requires SOURCE_SCHEMA and TARGET_SCHEMA to be set")

        mappings = discover_table_mappings(
            self.source.schema,
            self.list_tables(self.source),
            self.target.schema,
            self.list_tables(self.target),
        )
        if not mappings:
            raise ValueError(
                f"No common tables found between {self.source.schema} and {self.target.schema}"
            )
        return mappings

    def list_tables(self, side: DatabaseSide, schema: str | None = None) -> list[str]:
        schema = schema or side.schema
        connection = side.connect()
        try:
            tables = side.dialect.list_tables(connection, schema)
        finally:
            _close_connection(connection)
        logger.info(f"Found {len(tables)} table(s) in {side.label} schema {schema}")
        return tables

    # ---------- per-side extraction ----------

    def fingerprint_table(self, side: DatabaseSide, table: TableReference) -> TableSnapshot:
        """
        Extract and fingerprint every row of ``table`` on ``side``

        Raises:
            ExtractionError: If the table cannot be described or read
        """
        try:
            connection = side.connect()
        except Exception as e:
            raise ExtractionError(str(table), f"connection failed: {e}", side=side.label) from e

        try:
            metadata = TableMetadataResolver(connection, side.dialect, side.skip_columns).resolve(table)
            extractor = DeterministicExtractor(
                connection,
                side.dialect,
                batch_size=self.config.batch_size,
                max_rows=self.config.row_cap,
                command_timeout_seconds=self.config.command_timeout_seconds,
                side=side.label,
            )
            snapshot = TableSnapshot(side=side.label, table=table, metadata=metadata)
            key_columns = metadata.key_columns

            def consume(batch: list[dict[str, Any]]) -> None:
                for row in batch:
                    index = len(snapshot.fingerprints) + 1
                    snapshot.fingerprints[index] = self.fingerprinter.build(index, row, key_columns)

            stats = extractor.extract(metadata, consume)
            snapshot.truncated = stats.truncated
        except ExtractionError as e:
            if e.side is None:
                e.side = side.label
            raise
        finally:
            _close_connection(connection)

        if self.metrics is not None:
            self.metrics.record_rows_fingerprinted(str(table), side.label, snapshot.row_count)
        return snapshot

    def _snapshot_pair(self, mapping: TableMapping) -> tuple[TableSnapshot | None, TableSnapshot | None, list[Exception]]:
        if not self.config.concurrent_sides:
            try:
                source = self.fingerprint_table(self.source, mapping.source)
            except Exception as e:
                return None, None, [e]
            try:
                target = self.fingerprint_table(self.target, mapping.target)
            except Exception as e:
                return source, None, [e]
            return source, target, []

        snapshots: list[TableSnapshot | None] = [None, None]
        errors = []
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="extract") as executor:
            futures = [
                executor.submit(self.fingerprint_table, self.source, mapping.source),
                executor.submit(self.fingerprint_table, self.target, mapping.target),
            ]
            for i, future in enumerate(futures):
                try:
                    snapshots[i] = future.result()
                except Exception as e:
                    errors.append(e)
        return snapshots[0], snapshots[1], errors

    # ---------- table pair ----------

    def validate_pair(self, mapping: TableMapping) -> ComparisonResult:
        """
        Validate one table pair

        Never raises for database problems: failures are reported through the
        returned result's ``error``.
        """
        clog = ContextLogger(
            __name__,
            source_table=str(mapping.source),
            target_table=str(mapping.target),
        )
        started = time.monotonic()
        clog.info(f"Validating {mapping}")

        with trace_operation(
            "validate_table_pair",
            kind=trace.SpanKind.INTERNAL,
            source_table=str(mapping.source),
            target_table=str(mapping.target),
        ):
            source, target, errors = self._snapshot_pair(mapping)

            if errors:
                result = ComparisonResult.errored(
                    str(mapping.source),
                    str(mapping.target),
                    "; ".join(str(e) for e in errors),
                    source_row_count=source.row_count if source else 0,
                    target_row_count=target.row_count if target else 0,
                )
                for error in errors:
                    unexpected = not isinstance(error, ReconciliationError)
                    clog.error(
                        f"Validation of {mapping} failed: {error}",
                        exc_info=(type(error), error, error.__traceback__) if unexpected else None,
                    )
            else:
                result = self.engine.reconcile(
                    str(mapping.source),
                    str(mapping.target),
                    source.fingerprints,
                    target.fingerprints,
                )
                result.source_truncated = source.truncated
                result.target_truncated = target.truncated
                self._export_hashes(source, target)

            result.duration_seconds = time.monotonic() - started
            add_span_attributes(status=result.status)

        if self.metrics is not None:
            self.metrics.record_table_result(result)

        if result.has_error:
            clog.warning(f"{mapping}: ERROR after {result.duration_seconds:.2f}s")
        elif result.is_match:
            clog.info(f"{mapping}: MATCH ({result.matching_rows:,} rows)")
        else:
            clog.warning(
                f"{mapping}: MISMATCH ({result.match_percentage:.2f}% matched, "
                f"{result.mismatched_rows} mismatched, {result.missing_in_target} missing, "
                f"{result.extra_in_target} extra)"
            )
        return result

    def _export_hashes(self, *snapshots: TableSnapshot) -> None:
        if self.hash_writer is None:
            return
        for snapshot in snapshots:
            try:
                self.hash_writer.write(str(snapshot.table), snapshot.side, snapshot.fingerprints)
            except OSError as e:
                logger.error(f"Failed to write {snapshot.side} hash CSV for {snapshot.table}: {e}")

    # ---------- run ----------

    def validate_all(self, mappings: Iterable[TableMapping] | None = None) -> RunSummary:
        """Validate every pair in order and return the run summary."""
        mappings = list(mappings) if mappings is not None else self.resolve_mappings()
        aggregator = ResultAggregator()

        logger.info(f"Validating {len(mappings)} table pair(s)")
        for position, mapping in enumerate(mappings, start=1):
            logger.info(f"[{position}/{len(mappings)}] {mapping}")
            aggregator.add(self.validate_pair(mapping))

        summary = aggregator.summary()
        logger.info(
            f"Validation complete: {summary.tables_passed} passed, "
            f"{summary.tables_failed} failed, {summary.tables_errored} errored "
            f"of {summary.total_tables} table(s) in {summary.duration_seconds:.2f}s"
        )
        return summary

    def extract_side(
        self,
        side: DatabaseSide,
        tables: Iterable[TableReference],
    ) -> list[ExtractResult]:
        """
        Single-database mode: fingerprint tables on one side and export hashes

        Each table is independent; a failure is recorded and the next table
        is processed.
        """
        results = []
        for table in tables:
            with trace_operation("extract_single_table", table=str(table), side=side.label):
                try:
                    snapshot = self.fingerprint_table(side, table)
                except ReconciliationError as e:
                    logger.error(f"Extraction of {table} failed: {e}")
                    results.append(ExtractResult(table=table, error=str(e)))
                    continue

                csv_path = None
                if self.hash_writer is not None:
                    try:
                        csv_path = self.hash_writer.write(str(table), side.label, snapshot.fingerprints)
                    except OSError as e:
                        logger.error(f"Failed to write {side.label} hash CSV for {table}: {e}")
                        results.append(ExtractResult(
                            table=table,
                            row_count=snapshot.row_count,
                            error=f"hash CSV not written: {e}",
                        ))
                        continue
                results.append(ExtractResult(table=table, row_count=snapshot.row_count, csv_path=csv_path))
        return results


def _close_connection(connection: Any) -> None:
    try:
        connection.close()
    except Exception as e:
        logger.debug(f"Ignoring error while closing connection: {e}")
