"""
Positional row reconciliation.

Both sides are aligned by extraction index, not by key: source row N is
compared with target row N. The source and target extractions are both
ordered by key, so for a clean migration the positions line up exactly.

A row deleted from the middle of the target shifts every later target row up
by one position. Deleting the 3rd of 5 rows therefore reports mismatches at
positions 3 and 4 and a missing row at position 5, not a single missing row.
The primary-key evidence on each mismatch shows the shift.
"""

import logging
from collections.abc import Iterator, Mapping

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from ..fingerprint import RowFingerprint
from .outcomes import ComparisonOutcome, Extra, Match, Mismatch, Missing
from .results import DEFAULT_EVIDENCE_LIMIT, ComparisonResult

logger = logging.getLogger(__name__)

FingerprintMap = Mapping[int, RowFingerprint]


class ReconciliationEngine:
    """Classifies two complete index-to-fingerprint maps into outcomes."""

    def __init__(self, evidence_limit: int = DEFAULT_EVIDENCE_LIMIT):
        """
        Args:
            evidence_limit: Maximum evidence entries kept per outcome type
        """
        self.evidence_limit = evidence_limit

    def classify(self, source: FingerprintMap, target: FingerprintMap) -> Iterator[ComparisonOutcome]:
        """
        Yield one outcome per index present on either side

        Source indices are visited first in the order of ``source``, then
        target-only indices in the order of ``target``.
        """
        for index, source_fp in source.items():
            target_fp = target.get(index)
            if target_fp is None:
                yield Missing(index=index, source=source_fp)
            elif target_fp.hash == source_fp.hash:
                yield Match(index=index)
            else:
                yield Mismatch(index=index, source=source_fp, target=target_fp)

        for index, target_fp in target.items():
            if index not in source:
                yield Extra(index=index, target=target_fp)

    def reconcile(
        self,
        source_table: str,
        target_table: str,
        source: FingerprintMap,
        target: FingerprintMap,
    ) -> ComparisonResult:
        """
        Reconcile two fully extracted sides of a table pair

        Args:
            source_table: Source table name for the result
            target_table: Target table name for the result
            source: Source fingerprints keyed by 1-based extraction index
            target: Target fingerprints keyed by 1-based extraction index

        Returns:
            Completed ComparisonResult with counts and capped evidence
        """
        with trace_operation(
            "reconcile_fingerprints",
            kind=trace.SpanKind.INTERNAL,
            source_table=source_table,
            target_table=target_table,
        ):
            result = ComparisonResult(
                source_table=source_table,
                target_table=target_table,
                source_row_count=len(source),
                target_row_count=len(target),
                evidence_limit=self.evidence_limit,
            )

            for outcome in self.classify(source, target):
                result.record(outcome)

            add_span_attributes(
                matching_rows=result.matching_rows,
                mismatched_rows=result.mismatched_rows,
                missing_in_target=result.missing_in_target,
                extra_in_target=result.extra_in_target,
            )

        logger.info(
            f"Row-level reconciliation summary: "
            f"{result.source_row_count} source rows, "
            f"{result.target_row_count} target rows, "
            f"{result.matching_rows} matching, "
            f"{result.mismatched_rows} mismatched, "
            f"{result.missing_in_target} missing, "
            f"{result.extra_in_target} extra"
        )
        return result
