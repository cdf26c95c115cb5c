"""
Row-level data validation for database migrations

This package proves that a source table and its migrated target hold the same
rows, possibly on different database engines (Oracle, PostgreSQL, SQL Server).

Components:
- extract: Metadata resolution and deterministic, batched row extraction
- fingerprint: Per-row digests over sorted column values
- row_level: Positional reconciliation and result aggregation
- validator: Per-table orchestration with error isolation
- report: Text, markdown, JSON and CSV reports plus per-row hash CSVs
- cli: The fingerprint-validate command

Usage:
    from reconciliation.config import ValidatorConfig
    from reconciliation.validator import MigrationValidator

    validator = MigrationValidator(ValidatorConfig.from_env())
    summary = validator.validate_all()
"""

__version__ = "1.0.0"
__all__ = ["config", "errors", "extract", "fingerprint", "row_level", "tables", "validator", "report", "cli"]
