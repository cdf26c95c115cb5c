"""
Validator configuration.

Configuration is read from the environment once at startup and passed into
every component constructor. Nothing below caches it globally.

Environment variables:
    HASH_ALGORITHM: MD5 or SHA256 (default: SHA256)
    BATCH_SIZE: Rows per fetch batch (default: 5000)
    MAX_ROWS_PER_TABLE: Row cap per table, 0 = unlimited (default: 0)
    COMMAND_TIMEOUT_SECONDS: Statement timeout (default: 300)
    EVIDENCE_LIMIT: Evidence entries kept per anomaly type (default: 100)
    SAVE_HASHES_TO_CSV: Write per-row hash CSV files (default: true)
    REPORTS_DIR: Output directory (default: ./reports)
    CONCURRENT_SIDE_EXTRACTION: Extract source and target concurrently (default: false)
    TABLES_TO_COMPARE: ``SRC.T=tgt.t,...`` or ``ALL``
    {SOURCE,TARGET}_DB_TYPE, _HOST, _PORT, _DATABASE, _USER, _PASSWORD,
    _SCHEMA, _SKIP_COLUMNS, _ODBC_DRIVER: per-side connection settings
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from .errors import ConfigurationError
from .extract.dialects import get_dialect, normalize_engine_name
from .fingerprint import DEFAULT_HASH_ALGORITHM, normalize_algorithm_name

DEFAULT_BATCH_SIZE = 5000
DEFAULT_COMMAND_TIMEOUT_SECONDS = 300
DEFAULT_EVIDENCE_LIMIT = 100
DEFAULT_REPORTS_DIR = "./reports"

_TRUE_VALUES = ("true", "1", "yes", "y", "on")

_ENGINE_DEFAULTS = {
    "oracle": {"port": 1521, "database": "XEPDB1", "schema": None},
    "postgresql": {"port": 5432, "database": "postgres", "schema": "public"},
    "sqlserver": {"port": 1433, "database": "master", "schema": "dbo"},
}


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_int(name: str, value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def parse_column_list(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated column list, dropping blanks and duplicates."""
    if not value:
        return ()
    seen = []
    for column in value.split(","):
        column = column.strip()
        if column and column.lower() not in (c.lower() for c in seen):
            seen.append(column)
    return tuple(seen)


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings and column exclusions for one side of the comparison."""

    engine: str
    host: str = "localhost"
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    schema: str | None = None
    skip_columns: tuple[str, ...] = ()
    odbc_driver: str = "ODBC Driver 18 for SQL Server"

    def __post_init__(self):
        try:
            engine = normalize_engine_name(self.engine)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        defaults = _ENGINE_DEFAULTS.get(engine, {"port": None, "database": None, "schema": None})
        object.__setattr__(self, "engine", engine)
        if self.port is None:
            object.__setattr__(self, "port", defaults["port"])
        if self.database is None:
            object.__setattr__(self, "database", defaults["database"])
        if self.schema is None and defaults["schema"] is not None:
            object.__setattr__(self, "schema", defaults["schema"])

    @classmethod
    def from_env(
        cls,
        prefix: str,
        default_engine: str,
        environ: Mapping[str, str] | None = None,
    ) -> "DatabaseSettings":
        """
        Build settings from ``<PREFIX>_*`` environment variables

        Args:
            prefix: SOURCE or TARGET
            default_engine: Engine used when ``<PREFIX>_DB_TYPE`` is unset
            environ: Environment mapping (default: os.environ)
        """
        env = os.environ if environ is None else environ
        engine = env.get(f"{prefix}_DB_TYPE") or default_engine
        port = env.get(f"{prefix}_PORT")

        return cls(
            engine=engine,
            host=env.get(f"{prefix}_HOST") or "localhost",
            port=parse_int(f"{prefix}_PORT", port, 0) or None,
            database=env.get(f"{prefix}_DATABASE") or None,
            username=env.get(f"{prefix}_USER") or None,
            password=env.get(f"{prefix}_PASSWORD") or None,
            schema=env.get(f"{prefix}_SCHEMA") or None,
            skip_columns=parse_column_list(env.get(f"{prefix}_SKIP_COLUMNS")),
            odbc_driver=env.get(f"{prefix}_ODBC_DRIVER") or "ODBC Driver 18 for SQL Server",
        )

    @property
    def normalized_schema(self) -> str | None:
        if self.schema is None:
            return None
        return get_dialect(self.engine).normalize_identifier(self.schema)


@dataclass(frozen=True)
class ValidatorConfig:
    """All tunables for a validation run."""

    source: DatabaseSettings
    target: DatabaseSettings
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    batch_size: int = DEFAULT_BATCH_SIZE
    max_rows_per_table: int = 0
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS
    evidence_limit: int = DEFAULT_EVIDENCE_LIMIT
    save_hashes_to_csv: bool = True
    reports_dir: str = DEFAULT_REPORTS_DIR
    concurrent_sides: bool = False
    tables_to_compare: str | None = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "hash_algorithm", normalize_algorithm_name(self.hash_algorithm))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.batch_size <= 0:
            raise ConfigurationError(f"BATCH_SIZE must be positive, got {self.batch_size}")
        if self.max_rows_per_table < 0:
            raise ConfigurationError(
                f"MAX_ROWS_PER_TABLE must be 0 (unlimited) or positive, got {self.max_rows_per_table}"
            )
        if self.command_timeout_seconds < 0:
            raise ConfigurationError(
                f"COMMAND_TIMEOUT_SECONDS must not be negative, got {self.command_timeout_seconds}"
            )
        if self.evidence_limit < 0:
            raise ConfigurationError(f"EVIDENCE_LIMIT must not be negative, got {self.evidence_limit}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ValidatorConfig":
        env = os.environ if environ is None else environ

        return cls(
            source=DatabaseSettings.from_env("SOURCE", "oracle", env),
            target=DatabaseSettings.from_env("TARGET", "postgresql", env),
            hash_algorithm=env.get("HASH_ALGORITHM") or DEFAULT_HASH_ALGORITHM,
            batch_size=parse_int("BATCH_SIZE", env.get("BATCH_SIZE"), DEFAULT_BATCH_SIZE),
            max_rows_per_table=parse_int("MAX_ROWS_PER_TABLE", env.get("MAX_ROWS_PER_TABLE"), 0),
            command_timeout_seconds=parse_int(
                "COMMAND_TIMEOUT_SECONDS",
                env.get("COMMAND_TIMEOUT_SECONDS"),
                DEFAULT_COMMAND_TIMEOUT_SECONDS,
            ),
            evidence_limit=parse_int("EVIDENCE_LIMIT", env.get("EVIDENCE_LIMIT"), DEFAULT_EVIDENCE_LIMIT),
            save_hashes_to_csv=parse_bool(env.get("SAVE_HASHES_TO_CSV"), default=True),
            reports_dir=env.get("REPORTS_DIR") or DEFAULT_REPORTS_DIR,
            concurrent_sides=parse_bool(env.get("CONCURRENT_SIDE_EXTRACTION")),
            tables_to_compare=env.get("TABLES_TO_COMPARE") or None,
        )

    def with_overrides(self, **changes) -> "ValidatorConfig":
        """Return a copy with the non-None values in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def row_cap(self) -> int | None:
        return self.max_rows_per_table or None
