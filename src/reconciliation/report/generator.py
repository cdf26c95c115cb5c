"""
Report generation from a run summary.

The report is a plain, JSON-serializable dict so it can be saved, reloaded
with ``report --input`` and rendered again in any format.
"""

from datetime import UTC, datetime
from typing import Any

from ..row_level import ComparisonResult, RunSummary


class IssueType:
    """Constants for table-level issue types."""

    ROW_MISMATCH = "ROW_MISMATCH"
    TABLE_ERROR = "TABLE_ERROR"


def format_timestamp(timestamp: datetime) -> str:
    return timestamp.isoformat()


def _create_mismatch_issue(result: ComparisonResult) -> dict[str, Any]:
    return {
        "table": result.source_table,
        "target_table": result.target_table,
        "issue_type": IssueType.ROW_MISMATCH,
        "severity": _calculate_severity(result.source_row_count, result.anomaly_count),
        "details": {
            "source_count": result.source_row_count,
            "target_count": result.target_row_count,
            "mismatched_rows": result.mismatched_rows,
            "missing_rows": result.missing_in_target,
            "extra_rows": result.extra_in_target,
            "match_percentage": round(result.match_percentage, 4),
        },
    }


def _create_error_issue(result: ComparisonResult) -> dict[str, Any]:
    return {
        "table": result.source_table,
        "target_table": result.target_table,
        "issue_type": IssueType.TABLE_ERROR,
        "severity": "CRITICAL",
        "details": {"error": result.error},
    }


def generate_report(summary: RunSummary) -> dict[str, Any]:
    """
    Generate a validation report

    Args:
        summary: Completed run summary

    Returns:
        Dictionary containing:
        - status: PASS, FAIL, or NO_DATA
        - total_tables, tables_passed, tables_failed, tables_errored
        - source_total_rows, target_total_rows, matching_total_rows
        - overall_match_percentage
        - tables: per-table results with capped evidence
        - discrepancies: one entry per table that did not pass
        - summary: human-readable summary
        - recommendations: list of recommended actions
        - timestamp, started_at, finished_at, duration_seconds
    """
    discrepancies = []
    for result in summary.results:
        if result.has_error:
            discrepancies.append(_create_error_issue(result))
        elif not result.is_match:
            discrepancies.append(_create_mismatch_issue(result))

    return {
        "status": summary.status,
        "timestamp": datetime.now(UTC).isoformat(),
        "started_at": format_timestamp(summary.started_at),
        "finished_at": format_timestamp(summary.finished_at),
        "duration_seconds": round(summary.duration_seconds, 3),
        "total_tables": summary.total_tables,
        "tables_passed": summary.tables_passed,
        "tables_failed": summary.tables_failed,
        "tables_errored": summary.tables_errored,
        "source_total_rows": summary.total_source_rows,
        "target_total_rows": summary.total_target_rows,
        "matching_total_rows": summary.total_matching_rows,
        "overall_match_percentage": round(summary.overall_match_percentage, 4),
        "tables": [r.to_dict() for r in summary.results],
        "discrepancies": discrepancies,
        "summary": _generate_summary(summary),
        "recommendations": _generate_recommendations(discrepancies, summary),
    }


def _calculate_severity(source_count: int, anomalies: int) -> str:
    """
    Severity from the share of anomalous rows

    Returns:
        LOW, MEDIUM, HIGH, or CRITICAL
    """
    if source_count == 0:
        return "LOW" if anomalies == 0 else "CRITICAL"

    percentage = anomalies / source_count * 100

    if percentage < 0.1:
        return "LOW"
    elif percentage < 1.0:
        return "MEDIUM"
    elif percentage < 10.0:
        return "HIGH"
    else:
        return "CRITICAL"


def _generate_summary(summary: RunSummary) -> str:
    if summary.total_tables == 0:
        return "No table pairs were validated"

    if summary.all_match:
        return (
            f"All {summary.total_tables} tables passed validation. "
            f"{summary.total_matching_rows:,} rows match."
        )

    parts = [f"{summary.tables_passed} of {summary.total_tables} tables passed"]
    if summary.tables_failed:
        parts.append(f"{summary.tables_failed} have row differences")
    if summary.tables_errored:
        parts.append(f"{summary.tables_errored} could not be validated")
    return ", ".join(parts) + f". Overall match: {summary.overall_match_percentage:.2f}%."


def _generate_recommendations(
    discrepancies: list[dict[str, Any]],
    summary: RunSummary,
) -> list[str]:
    recommendations = []

    if summary.total_tables == 0:
        return ["Check TABLES_TO_COMPARE; no table pairs were selected."]

    truncated = [t for t in summary.results if t.source_truncated or t.target_truncated]

    if not discrepancies and not truncated:
        recommendations.append("Data is consistent. No action needed.")
        return recommendations

    errored = [d for d in discrepancies if d["issue_type"] == IssueType.TABLE_ERROR]
    if errored:
        recommendations.append(
            f"{len(errored)} table(s) failed to extract. Check connectivity, "
            "permissions and COMMAND_TIMEOUT_SECONDS, then rerun those tables."
        )

    mismatched = [d for d in discrepancies if d["issue_type"] == IssueType.ROW_MISMATCH]
    if mismatched:
        missing = sum(d["details"]["missing_rows"] for d in mismatched)
        extra = sum(d["details"]["extra_rows"] for d in mismatched)
        changed = sum(d["details"]["mismatched_rows"] for d in mismatched)

        if missing or extra:
            recommendations.append(
                f"Row counts differ ({missing} missing, {extra} extra). Rows are compared by "
                "position, so a single missing or extra row also shows up as mismatches for "
                "every later row; compare the primary keys in the evidence to find the first gap."
            )
        if changed and not (missing or extra):
            recommendations.append(
                f"{changed} row(s) differ in content. Check type conversions (numeric scale, "
                "timestamp precision, trailing spaces) or exclude volatile columns with "
                "SOURCE_SKIP_COLUMNS / TARGET_SKIP_COLUMNS."
            )

    if truncated:
        recommendations.append(
            f"{len(truncated)} table(s) hit MAX_ROWS_PER_TABLE; only a prefix of their rows was compared. "
            "Raise the limit or set it to 0 to validate them in full."
        )

    return recommendations
