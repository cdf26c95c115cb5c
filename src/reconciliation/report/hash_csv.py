"""
Per-row hash export.

One CSV per table and side, written as ``Row_ID,Hash_Value,Hash_Length``,
so hashes can be diffed outside the tool.
"""

import csv
import logging
import re
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from ..fingerprint import RowFingerprint

logger = logging.getLogger(__name__)

HASH_CSV_HEADER = ["Row_ID", "Hash_Value", "Hash_Length"]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def hash_csv_filename(table: str, side: str, timestamp: str) -> str:
    """``<schema_table>_<side>_<timestamp>_hashes.csv`` with filesystem-safe characters."""
    safe_table = _UNSAFE_CHARS.sub("_", str(table).replace(".", "_"))
    return f"{safe_table}_{side}_{timestamp}_hashes.csv"


class HashCsvWriter:
    """Writes fingerprint maps to CSV files in one output directory."""

    def __init__(self, output_dir: str | Path, timestamp: str | None = None):
        """
        Args:
            output_dir: Directory for the CSV files (created on first write)
            timestamp: Stamp shared by every file of the run (default: now)
        """
        self.output_dir = Path(output_dir)
        self.timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")

    def write(
        self,
        table: str,
        side: str,
        fingerprints: Mapping[int, RowFingerprint],
    ) -> Path:
        """
        Write one side's hashes in index order

        Returns:
            Path of the written file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / hash_csv_filename(table, side, self.timestamp)

        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(HASH_CSV_HEADER)
            for index, fingerprint in fingerprints.items():
                writer.writerow([index, fingerprint.hash, len(fingerprint.hash)])

        logger.info(f"Wrote {len(fingerprints):,} {side} hashes for {table} to {path}")
        return path
