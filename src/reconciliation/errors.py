"""
Exception hierarchy for migration validation.

Only ExtractionError is fatal, and only for the table pair being validated.
MetadataError is logged and downgraded to a warning by the resolver. Row
anomalies are outcomes, never exceptions.
"""


class ReconciliationError(Exception):
    """Base class for all validation errors."""


class ConfigurationError(ReconciliationError, ValueError):
    """Invalid or missing configuration detected at startup."""


class MetadataError(ReconciliationError):
    """Primary-key catalog lookup failed for a table."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"{table}: {message}")


class ExtractionError(ReconciliationError):
    """Connectivity, query or timeout failure while reading one side of a table pair."""

    def __init__(self, table: str, message: str, side: str | None = None):
        self.table = table
        self.detail = message
        self.side = side
        super().__init__(table, message)

    def __str__(self) -> str:
        prefix = f"[{self.side}] " if self.side else ""
        return f"{prefix}{self.table}: {self.detail}"
