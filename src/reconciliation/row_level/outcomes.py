"""
Per-index classification outcomes.

Each outcome describes what was found at one extraction position. Evidence is
carried as the fingerprints of the rows involved, which include their primary
key values.
"""

from dataclasses import dataclass
from typing import Any, Union

from ..fingerprint import RowFingerprint


class OutcomeType:
    """Constants for outcome types."""

    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    MISSING = "MISSING"
    EXTRA = "EXTRA"


@dataclass(frozen=True)
class Match:
    index: int

    kind = OutcomeType.MATCH

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "index": self.index}


@dataclass(frozen=True)
class Mismatch:
    """Both sides have a row at this index but the hashes differ."""

    index: int
    source: RowFingerprint
    target: RowFingerprint

    kind = OutcomeType.MISMATCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "index": self.index,
            "source_hash": self.source.hash,
            "target_hash": self.target.hash,
            "source_key": self.source.key_display(),
            "target_key": self.target.key_display(),
        }


@dataclass(frozen=True)
class Missing:
    """Row present in the source at this index, absent from the target."""

    index: int
    source: RowFingerprint

    kind = OutcomeType.MISSING

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "index": self.index,
            "source_hash": self.source.hash,
            "source_key": self.source.key_display(),
        }


@dataclass(frozen=True)
class Extra:
    """Row present in the target at this index, absent from the source."""

    index: int
    target: RowFingerprint

    kind = OutcomeType.EXTRA

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "index": self.index,
            "target_hash": self.target.hash,
            "target_key": self.target.key_display(),
        }


ComparisonOutcome = Union[Match, Mismatch, Missing, Extra]
