"""
Row fingerprinting: per-row digests and the value canonicalizer behind them.
"""

from .canonical import NULL_TOKEN, ValueCanonicalizer
from .hasher import (
    DEFAULT_HASH_ALGORITHM,
    FIELD_DELIMITER,
    HASH_ALGORITHMS,
    RowFingerprint,
    RowFingerprinter,
    column_sort_key,
    extract_key_values,
    normalize_algorithm_name,
)

__all__ = [
    'RowFingerprinter',
    'RowFingerprint',
    'ValueCanonicalizer',
    'NULL_TOKEN',
    'FIELD_DELIMITER',
    'HASH_ALGORITHMS',
    'DEFAULT_HASH_ALGORITHM',
    'column_sort_key',
    'extract_key_values',
    'normalize_algorithm_name',
]
