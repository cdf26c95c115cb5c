"""
Comparison results and run-level aggregation.

A ComparisonResult holds the tallies and capped evidence for one table pair;
the ResultAggregator folds results into a RunSummary in the order the tables
were processed.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .outcomes import ComparisonOutcome, Extra, Match, Mismatch, Missing

logger = logging.getLogger(__name__)

DEFAULT_EVIDENCE_LIMIT = 100


class RunStatus:
    PASS = "PASS"
    FAIL = "FAIL"
    NO_DATA = "NO_DATA"


@dataclass
class ComparisonResult:
    """Outcome of reconciling one source/target table pair."""

    source_table: str
    target_table: str
    source_row_count: int = 0
    target_row_count: int = 0
    matching_rows: int = 0
    mismatched_rows: int = 0
    missing_in_target: int = 0
    extra_in_target: int = 0
    mismatches: list[Mismatch] = field(default_factory=list)
    missing: list[Missing] = field(default_factory=list)
    extra: list[Extra] = field(default_factory=list)
    evidence_limit: int = DEFAULT_EVIDENCE_LIMIT
    source_truncated: bool = False
    target_truncated: bool = False
    error: str | None = None
    duration_seconds: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def errored(
        cls,
        source_table: str,
        target_table: str,
        error: str,
        source_row_count: int = 0,
        target_row_count: int = 0,
    ) -> "ComparisonResult":
        """Build the result of a table pair whose reconciliation did not complete."""
        return cls(
            source_table=source_table,
            target_table=target_table,
            source_row_count=source_row_count,
            target_row_count=target_row_count,
            error=error,
        )

    def record(self, outcome: ComparisonOutcome) -> None:
        """Tally an outcome, keeping evidence up to the evidence limit."""
        if isinstance(outcome, Match):
            self.matching_rows += 1
        elif isinstance(outcome, Mismatch):
            self.mismatched_rows += 1
            if len(self.mismatches) < self.evidence_limit:
                self.mismatches.append(outcome)
        elif isinstance(outcome, Missing):
            self.missing_in_target += 1
            if len(self.missing) < self.evidence_limit:
                self.missing.append(outcome)
        elif isinstance(outcome, Extra):
            self.extra_in_target += 1
            if len(self.extra) < self.evidence_limit:
                self.extra.append(outcome)
        else:
            raise TypeError(f"Unknown comparison outcome: {outcome!r}")

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_match(self) -> bool:
        return (
            not self.has_error
            and self.mismatched_rows == 0
            and self.missing_in_target == 0
            and self.extra_in_target == 0
        )

    @property
    def match_percentage(self) -> float:
        if self.source_row_count == 0:
            return 100.0 if self.is_match else 0.0
        return self.matching_rows / self.source_row_count * 100

    @property
    def anomaly_count(self) -> int:
        return self.mismatched_rows + self.missing_in_target + self.extra_in_target

    @property
    def status(self) -> str:
        if self.has_error:
            return "ERROR"
        return "MATCH" if self.is_match else "MISMATCH"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source_table": self.source_table,
            "target_table": self.target_table,
            "status": self.status,
            "is_match": self.is_match,
            "source_row_count": self.source_row_count,
            "target_row_count": self.target_row_count,
            "matching_rows": self.matching_rows,
            "mismatched_rows": self.mismatched_rows,
            "missing_in_target": self.missing_in_target,
            "extra_in_target": self.extra_in_target,
            "match_percentage": round(self.match_percentage, 4),
            "source_truncated": self.source_truncated,
            "target_truncated": self.target_truncated,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
            "timestamp": self.timestamp.isoformat(),
            "mismatches": [m.to_dict() for m in self.mismatches],
            "missing": [m.to_dict() for m in self.missing],
            "extra": [e.to_dict() for e in self.extra],
        }


@dataclass(frozen=True)
class RunSummary:
    """Immutable roll-up of every table pair in a run."""

    results: tuple[ComparisonResult, ...]
    started_at: datetime
    finished_at: datetime

    @property
    def total_tables(self) -> int:
        return len(self.results)

    @property
    def tables_passed(self) -> int:
        return sum(1 for r in self.results if r.is_match)

    @property
    def tables_failed(self) -> int:
        return sum(1 for r in self.results if not r.is_match and not r.has_error)

    @property
    def tables_errored(self) -> int:
        return sum(1 for r in self.results if r.has_error)

    @property
    def total_source_rows(self) -> int:
        return sum(r.source_row_count for r in self.results)

    @property
    def total_target_rows(self) -> int:
        return sum(r.target_row_count for r in self.results)

    @property
    def total_matching_rows(self) -> int:
        return sum(r.matching_rows for r in self.results)

    @property
    def overall_match_percentage(self) -> float:
        if self.total_source_rows == 0:
            return 100.0 if self.all_match else 0.0
        return self.total_matching_rows / self.total_source_rows * 100

    @property
    def all_match(self) -> bool:
        return bool(self.results) and all(r.is_match for r in self.results)

    @property
    def status(self) -> str:
        if not self.results:
            return RunStatus.NO_DATA
        return RunStatus.PASS if self.all_match else RunStatus.FAIL

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class ResultAggregator:
    """
    Collects ComparisonResults in processing order.

    Not thread-safe: results are added from the single thread that walks the
    table list.
    """

    def __init__(self):
        self._results: list[ComparisonResult] = []
        self.started_at = datetime.now(UTC)
        self.total_source_rows = 0
        self.total_target_rows = 0
        self.total_matching_rows = 0

    def add(self, result: ComparisonResult) -> None:
        self._results.append(result)
        self.total_source_rows += result.source_row_count
        self.total_target_rows += result.target_row_count
        self.total_matching_rows += result.matching_rows

        logger.debug(
            f"Aggregated {result.source_table}: status={result.status}, "
            f"running totals source={self.total_source_rows}, target={self.total_target_rows}"
        )

    @property
    def results(self) -> list[ComparisonResult]:
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def summary(self) -> RunSummary:
        return RunSummary(
            results=tuple(self._results),
            started_at=self.started_at,
            finished_at=datetime.now(UTC),
        )
