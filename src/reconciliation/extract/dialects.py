"""
Engine dialects: everything that differs between Oracle, PostgreSQL and SQL Server.

A dialect owns identifier case conventions and quoting, SELECT construction
with a row cap, the primary-key catalog query, the table list used for
``ALL`` discovery, statement timeouts, streaming cursors and connection
creation. Drivers are imported when a connection is opened so that only the
driver for the engines actually in use has to be installed.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from ..tables import TableReference

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 10


class Dialect:
    """Base dialect with ANSI double-quote identifiers and a LIMIT clause."""

    name = "generic"
    identifier_case: str | None = None  # "upper", "lower" or None to keep as written
    quote_open = '"'
    quote_close = '"'

    # ---------- identifiers ----------

    def normalize_identifier(self, identifier: str) -> str:
        if self.identifier_case == "upper":
            return identifier.upper()
        if self.identifier_case == "lower":
            return identifier.lower()
        return identifier

    def normalize_table(self, table: TableReference) -> TableReference:
        return table.normalized(self.normalize_identifier)

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote an identifier, doubling any embedded closing quote

        Raises:
            ValueError: If the identifier is empty or contains a NUL byte
        """
        if not identifier or not isinstance(identifier, str):
            raise ValueError("Identifier must be a non-empty string")
        if "\x00" in identifier:
            raise ValueError(f"Invalid identifier: {identifier!r}")

        escaped = identifier.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def qualified_name(self, table: TableReference) -> str:
        return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"

    # ---------- queries ----------

    def describe_query(self, table: TableReference) -> str:
        """Zero-row query whose cursor description lists every column."""
        return f"SELECT * FROM {self.qualified_name(table)} WHERE 1=0"

    def build_select(
        self,
        table: TableReference,
        columns: Sequence[str],
        order_by: Sequence[str],
        limit: int | None = None,
    ) -> str:
        """
        Build the extraction query

        With no columns left to project the query selects a constant so the
        row count is still observed. Without ordering columns it orders by the
        first projected expression.
        """
        projection = ", ".join(self.quote_identifier(c) for c in columns) or "1"
        ordering = ", ".join(self.quote_identifier(c) for c in order_by) or "1"

        query = (
            f"{self._select_keyword(limit)} {projection} "
            f"FROM {self.qualified_name(table)} "
            f"ORDER BY {ordering}"
        )
        suffix = self._limit_suffix(limit)
        if suffix:
            query = f"{query} {suffix}"
        return query

    def _select_keyword(self, limit: int | None) -> str:
        return "SELECT"

    def _limit_suffix(self, limit: int | None) -> str:
        return f"LIMIT {int(limit)}" if limit is not None else ""

    def primary_key_query(self, table: TableReference) -> tuple[str, Any] | None:
        """Catalog query returning primary-key column names in constraint order."""
        return None

    def read_key_flags(self, description: Sequence[Sequence[Any]]) -> list[str]:
        """
        Key columns the driver marks in a cursor description

        DB-API descriptions carry no key flag for the supported drivers, so the
        base implementation returns nothing and the catalog query is used.
        """
        return []

    def fetch_primary_key(self, cursor: Any, table: TableReference) -> list[str]:
        query = self.primary_key_query(table)
        if query is None:
            return []
        sql, params = query
        cursor.execute(sql, params)
        return [row[0] for row in cursor.fetchall()]

    def list_tables_query(self, schema: str) -> tuple[str, Any]:
        raise NotImplementedError(f"{self.name} dialect does not support table discovery")

    def list_tables(self, connection: Any, schema: str) -> list[str]:
        """Return base table names in ``schema`` as the catalog spells them."""
        sql, params = self.list_tables_query(self.normalize_identifier(schema))
        cursor = connection.cursor()
        try:
            cursor.execute(sql, params)
            return [row[0] for row in cursor.fetchall()]
        finally:
            cursor.close()

    # ---------- connection handling ----------

    def apply_timeout(self, connection: Any, seconds: int) -> None:
        """Apply a statement timeout to the connection (0 disables it)."""

    def open_cursor(self, connection: Any, batch_size: int) -> Any:
        """Open a cursor suitable for streaming a large result in batches."""
        cursor = connection.cursor()
        cursor.arraysize = batch_size
        return cursor

    def connect(self, settings: Any) -> Any:
        raise NotImplementedError(f"{self.name} dialect cannot open connections")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class OracleDialect(Dialect):
    """Oracle via python-oracledb; unquoted identifiers are stored upper-case."""

    name = "oracle"
    identifier_case = "upper"

    def _limit_suffix(self, limit: int | None) -> str:
        return f"FETCH FIRST {int(limit)} ROWS ONLY" if limit is not None else ""

    def primary_key_query(self, table: TableReference) -> tuple[str, Any]:
        sql = """
            SELECT acc.column_name
            FROM all_constraints ac
            JOIN all_cons_columns acc
              ON ac.owner = acc.owner
             AND ac.constraint_name = acc.constraint_name
             AND ac.table_name = acc.table_name
            WHERE ac.constraint_type = 'P'
              AND ac.owner = :owner
              AND ac.table_name = :table_name
            ORDER BY acc.position
        """
        return sql, {"owner": table.schema, "table_name": table.name}

    def list_tables_query(self, schema: str) -> tuple[str, Any]:
        sql = "SELECT table_name FROM all_tables WHERE owner = :owner ORDER BY table_name"
        return sql, {"owner": schema}

    def apply_timeout(self, connection: Any, seconds: int) -> None:
        connection.call_timeout = int(seconds * 1000)

    def connect(self, settings: Any) -> Any:
        import oracledb

        # LOB columns come back as str/bytes instead of locator objects
        oracledb.defaults.fetch_lobs = False

        dsn = oracledb.makedsn(settings.host, settings.port, service_name=settings.database)
        connection = oracledb.connect(
            user=settings.username,
            password=settings.password,
            dsn=dsn,
            tcp_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        )
        logger.info(f"Connected to Oracle at {settings.host}:{settings.port}/{settings.database}")
        return connection


class PostgresDialect(Dialect):
    """PostgreSQL via psycopg2; unquoted identifiers are folded to lower-case."""

    name = "postgresql"
    identifier_case = "lower"

    def primary_key_query(self, table: TableReference) -> tuple[str, Any]:
        sql = """
            SELECT a.attname
            FROM pg_index i
            JOIN pg_class c ON c.oid = i.indrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(i.indkey)
            WHERE i.indisprimary
              AND n.nspname = %s
              AND c.relname = %s
            ORDER BY array_position(i.indkey::smallint[], a.attnum)
        """
        return sql, (table.schema, table.name)

    def list_tables_query(self, schema: str) -> tuple[str, Any]:
        # Partition children are reported through their parent table
        sql = """
            SELECT t.table_name
            FROM information_schema.tables t
            WHERE t.table_schema = %s
              AND t.table_type = 'BASE TABLE'
              AND NOT EXISTS (
                  SELECT 1
                  FROM pg_inherits inh
                  JOIN pg_class child ON child.oid = inh.inhrelid
                  JOIN pg_namespace ns ON ns.oid = child.relnamespace
                  WHERE ns.nspname = t.table_schema
                    AND child.relname = t.table_name
              )
            ORDER BY t.table_name
        """
        return sql, (schema,)

    def apply_timeout(self, connection: Any, seconds: int) -> None:
        cursor = connection.cursor()
        try:
            cursor.execute("SET statement_timeout = %s", (int(seconds * 1000),))
        finally:
            cursor.close()

    def open_cursor(self, connection: Any, batch_size: int) -> Any:
        # Named (server-side) cursor, otherwise psycopg2 buffers the whole result
        cursor = connection.cursor(name=f"fingerprint_{uuid.uuid4().hex[:12]}", withhold=True)
        cursor.itersize = batch_size
        return cursor

    def connect(self, settings: Any) -> Any:
        import psycopg2

        connection = psycopg2.connect(
            host=settings.host,
            port=settings.port,
            dbname=settings.database,
            user=settings.username,
            password=settings.password,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            application_name="data-fingerprint-validator",
        )
        connection.autocommit = True
        logger.info(f"Connected to PostgreSQL at {settings.host}:{settings.port}/{settings.database}")
        return connection


class SqlServerDialect(Dialect):
    """SQL Server via pyodbc; identifiers keep their declared case."""

    name = "sqlserver"
    quote_open = "["
    quote_close = "]"

    def _select_keyword(self, limit: int | None) -> str:
        return f"SELECT TOP ({int(limit)})" if limit is not None else "SELECT"

    def _limit_suffix(self, limit: int | None) -> str:
        return ""

    def build_select(self, table, columns, order_by, limit=None) -> str:
        if not order_by and not columns:
            # ORDER BY a constant ordinal is rejected when the projection is a literal
            projection = "1 AS [row_marker]"
            return (
                f"{self._select_keyword(limit)} {projection} "
                f"FROM {self.qualified_name(table)} ORDER BY [row_marker]"
            )
        return super().build_select(table, columns, order_by, limit)

    def primary_key_query(self, table: TableReference) -> tuple[str, Any]:
        sql = """
            SELECT c.name
            FROM sys.indexes i
            JOIN sys.index_columns ic ON i.object_id = ic.object_id AND i.index_id = ic.index_id
            JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
            JOIN sys.tables t ON t.object_id = i.object_id
            JOIN sys.schemas s ON s.schema_id = t.schema_id
            WHERE i.is_primary_key = 1
              AND s.name = ?
              AND t.name = ?
            ORDER BY ic.key_ordinal
        """
        return sql, (table.schema, table.name)

    def list_tables_query(self, schema: str) -> tuple[str, Any]:
        sql = (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = ? AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME"
        )
        return sql, (schema,)

    def apply_timeout(self, connection: Any, seconds: int) -> None:
        connection.timeout = int(seconds)

    def connect(self, settings: Any) -> Any:
        import pyodbc

        conn_str = (
            f"DRIVER={{{settings.odbc_driver}}};"
            f"SERVER={settings.host},{settings.port};"
            f"DATABASE={settings.database};"
            f"UID={settings.username};"
            f"PWD={settings.password};"
            f"TrustServerCertificate=yes;"
            f"Encrypt=yes;"
        )
        connection = pyodbc.connect(conn_str, timeout=CONNECT_TIMEOUT_SECONDS, autocommit=True)
        logger.info(f"Connected to SQL Server at {settings.host}:{settings.port}/{settings.database}")
        return connection


_DIALECTS: dict[str, type[Dialect]] = {
    "oracle": OracleDialect,
    "postgresql": PostgresDialect,
    "sqlserver": SqlServerDialect,
}

_ALIASES = {
    "postgres": "postgresql",
    "pg": "postgresql",
    "pgsql": "postgresql",
    "mssql": "sqlserver",
    "sql_server": "sqlserver",
}


def normalize_engine_name(engine: str) -> str:
    """
    Map an engine name or alias to its registered dialect name

    Raises:
        ValueError: If no dialect is registered for the engine
    """
    key = (engine or "").strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _DIALECTS:
        raise ValueError(
            f"Unsupported database type: {engine!r}. "
            f"Must be one of: {', '.join(sorted(_DIALECTS))}"
        )
    return key


def get_dialect(engine: str) -> Dialect:
    return _DIALECTS[normalize_engine_name(engine)]()


def register_dialect(engine: str, dialect_class: type[Dialect]) -> None:
    """Register an additional engine dialect under ``engine``."""
    _DIALECTS[engine.strip().lower()] = dialect_class
