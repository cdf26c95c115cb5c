"""
Row fingerprinting.

A fingerprint is a digest of one row's values taken in sorted column-name
order, so two engines that return the same columns in a different projection
order still produce the same hash.
"""

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .canonical import ValueCanonicalizer

FIELD_DELIMITER = "|"

HASH_ALGORITHMS = {
    "MD5": hashlib.md5,
    "SHA256": hashlib.sha256,
}

DEFAULT_HASH_ALGORITHM = "SHA256"


def normalize_algorithm_name(name: str) -> str:
    """
    Normalize a user-supplied algorithm name ("sha-256", "md5", ...)

    Raises:
        ValueError: If the algorithm is not supported
    """
    normalized = (name or "").strip().upper().replace("-", "").replace("_", "")
    if normalized not in HASH_ALGORITHMS:
        raise ValueError(
            f"Unsupported hash algorithm: {name!r}. "
            f"Must be one of: {', '.join(sorted(HASH_ALGORITHMS))}"
        )
    return normalized


def column_sort_key(name: str) -> tuple[str, str]:
    # Case-insensitive first so ORACLE_CASE and postgres_case columns line up
    return name.lower(), name


@dataclass(frozen=True)
class RowFingerprint:
    """Hash of one extracted row plus the key values used as evidence."""

    index: int
    hash: str
    primary_key_values: tuple[tuple[str, Any], ...] = ()

    def key_display(self) -> str:
        """Render key evidence as ``col=value, col=value``."""
        if not self.primary_key_values:
            return "N/A"
        return ", ".join(f"{name}={value}" for name, value in self.primary_key_values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "hash": self.hash,
            "primary_key": {name: value for name, value in self.primary_key_values},
        }


class RowFingerprinter:
    """
    Computes deterministic row digests.

    The digest input is every value in sorted column-name order, stringified
    by the canonicalizer, joined with ``|`` and UTF-8 encoded. The output is
    lowercase hex (32 characters for MD5, 64 for SHA256).
    """

    def __init__(
        self,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
        canonicalizer: ValueCanonicalizer | None = None,
    ):
        self.algorithm = normalize_algorithm_name(algorithm)
        self.canonicalizer = canonicalizer or ValueCanonicalizer()
        self._hash_factory = HASH_ALGORITHMS[self.algorithm]

    def canonical_text(self, row: Mapping[str, Any]) -> str:
        return FIELD_DELIMITER.join(
            self.canonicalizer.canonicalize(row[name])
            for name in sorted(row, key=column_sort_key)
        )

    def fingerprint(self, row: Mapping[str, Any]) -> str:
        """Return the hex digest for a single row."""
        payload = self.canonical_text(row).encode("utf-8")
        return self._hash_factory(payload).hexdigest()

    def build(
        self,
        index: int,
        row: Mapping[str, Any],
        key_columns: Sequence[str] = (),
    ) -> RowFingerprint:
        """
        Fingerprint a row and capture its key values for evidence

        Key columns are matched against the row case-insensitively; a key column
        missing from the row is skipped.

        Args:
            index: 1-based position of the row in extraction order
            row: Column name to value mapping
            key_columns: Ordering key columns resolved for the table

        Returns:
            RowFingerprint for the row
        """
        return RowFingerprint(
            index=index,
            hash=self.fingerprint(row),
            primary_key_values=extract_key_values(row, key_columns),
        )


def extract_key_values(
    row: Mapping[str, Any],
    key_columns: Sequence[str],
) -> tuple[tuple[str, Any], ...]:
    if not key_columns:
        return ()

    by_lower = {name.lower(): name for name in row}
    values = []
    for column in key_columns:
        actual = by_lower.get(column.lower())
        if actual is not None:
            values.append((column, row[actual]))
    return tuple(values)
