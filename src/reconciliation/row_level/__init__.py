"""
Row-level reconciliation of fingerprinted rows.

Identifies, per extraction position:
- Matching rows (same hash on both sides)
- Mismatched rows (different hash)
- Missing rows (in source but not target)
- Extra rows (in target but not source)

and aggregates the per-table results into a run summary.
"""

from .outcomes import ComparisonOutcome, Extra, Match, Mismatch, Missing, OutcomeType
from .reconciler import ReconciliationEngine
from .results import ComparisonResult, ResultAggregator, RunStatus, RunSummary

__all__ = [
    'ReconciliationEngine',
    'ComparisonOutcome',
    'Match',
    'Mismatch',
    'Missing',
    'Extra',
    'OutcomeType',
    'ComparisonResult',
    'ResultAggregator',
    'RunStatus',
    'RunSummary',
]
