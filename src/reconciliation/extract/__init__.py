"""
Metadata resolution and deterministic row extraction.

This submodule reads rows from either side of a table pair:
- Engine dialects (identifier quoting, paging, catalog queries, connections)
- Column and ordering-key resolution
- Batched, ordered row streaming with an optional row cap
"""

from .dialects import (
    Dialect,
    OracleDialect,
    PostgresDialect,
    SqlServerDialect,
    get_dialect,
    normalize_engine_name,
    register_dialect,
)
from .extractor import DeterministicExtractor, ExtractionStats
from .metadata import ColumnDescriptor, KeySource, TableMetadata, TableMetadataResolver

__all__ = [
    'Dialect',
    'OracleDialect',
    'PostgresDialect',
    'SqlServerDialect',
    'get_dialect',
    'normalize_engine_name',
    'register_dialect',
    'DeterministicExtractor',
    'ExtractionStats',
    'ColumnDescriptor',
    'KeySource',
    'TableMetadata',
    'TableMetadataResolver',
]
