"""
Report formatting and export utilities.

Every formatter takes the dict produced by generate_report() (or loaded back
from a JSON export), never live result objects.
"""

import csv
import html
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5

_EVIDENCE_SECTIONS = (
    ("mismatches", "mismatched_rows", "Mismatched rows"),
    ("missing", "missing_in_target", "Missing in target"),
    ("extra", "extra_in_target", "Extra in target"),
)


def _evidence_line(entry: dict[str, Any]) -> str:
    if entry["type"] == "MISMATCH":
        return (
            f"Row {entry['index']}: source PK: {entry['source_key']} | "
            f"target PK: {entry['target_key']}"
        )
    if entry["type"] == "MISSING":
        return f"Row {entry['index']}: PK: {entry['source_key']}"
    return f"Row {entry['index']}: PK: {entry['target_key']}"


def _sample_lines(table: dict[str, Any], sample_size: int) -> list[tuple[str, list[str]]]:
    sections = []
    for key, count_key, title in _EVIDENCE_SECTIONS:
        total = table.get(count_key, 0)
        if not total:
            continue
        entries = table.get(key, [])[:sample_size]
        lines = [_evidence_line(e) for e in entries]
        if total > len(entries):
            lines.append(f"... and {total - len(entries)} more")
        sections.append((f"{title} ({total})", lines))
    return sections


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, default=str)


def export_report_csv(report: dict[str, Any], output_path: str) -> None:
    """One row per table pair."""
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow([
            "Source Table",
            "Target Table",
            "Status",
            "Source Rows",
            "Target Rows",
            "Matching",
            "Mismatched",
            "Missing",
            "Extra",
            "Match %",
            "Error",
        ])
        for table in report.get("tables", []):
            writer.writerow([
                table["source_table"],
                table["target_table"],
                table["status"],
                table["source_row_count"],
                table["target_row_count"],
                table["matching_rows"],
                table["mismatched_rows"],
                table["missing_in_target"],
                table["extra_in_target"],
                f"{table['match_percentage']:.2f}",
                table.get("error") or "",
            ])


def format_report_console(report: dict[str, Any], sample_size: int = SAMPLE_SIZE) -> str:
    """
    Format report as plain text

    Args:
        report: Report dictionary
        sample_size: Evidence entries shown per anomaly type

    Returns:
        Multi-line string for console display or a .txt report
    """
    lines = []

    lines.append("=" * 80)
    lines.append("DATA VALIDATION REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Duration: {report.get('duration_seconds', 0):.2f}s")
    lines.append("")

    lines.append("EXECUTIVE SUMMARY")
    lines.append("-" * 80)
    lines.append(f"Tables Compared: {report['total_tables']}")
    lines.append(f"Tables Passed: {report['tables_passed']}")
    lines.append(f"Tables Failed: {report['tables_failed']}")
    lines.append(f"Tables With Errors: {report['tables_errored']}")
    lines.append(f"Source Total Rows: {report['source_total_rows']:,}")
    lines.append(f"Target Total Rows: {report['target_total_rows']:,}")
    lines.append(f"Matching Rows: {report['matching_total_rows']:,}")
    lines.append(f"Overall Match: {report['overall_match_percentage']:.2f}%")
    lines.append("")
    lines.append(report['summary'])
    lines.append("")

    if report['tables']:
        lines.append("TABLE DETAILS")
        lines.append("-" * 80)

        for table in report['tables']:
            lines.append(f"{table['source_table']} -> {table['target_table']}: {table['status']}")
            if table.get("error"):
                lines.append(f"  Error: {table['error']}")
                lines.append("")
                continue

            lines.append(
                f"  Rows: source={table['source_row_count']:,} target={table['target_row_count']:,} "
                f"matching={table['matching_rows']:,} ({table['match_percentage']:.2f}%)"
            )
            if table.get("source_truncated") or table.get("target_truncated"):
                lines.append("  Note: row cap reached, comparison covers a prefix of the table")

            for title, sample in _sample_lines(table, sample_size):
                lines.append(f"  {title}:")
                lines.extend(f"    {line}" for line in sample)
            lines.append("")

    if report['recommendations']:
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 80)
        for i, rec in enumerate(report['recommendations'], 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def format_report_markdown(report: dict[str, Any], sample_size: int = SAMPLE_SIZE) -> str:
    lines = [
        "# Data Validation Report",
        "",
        f"**Status:** {report['status']}  ",
        f"**Generated:** {report['timestamp']}  ",
        f"**Overall match:** {report['overall_match_percentage']:.2f}%",
        "",
        "## Summary",
        "",
        report['summary'],
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Tables compared | {report['total_tables']} |",
        f"| Passed | {report['tables_passed']} |",
        f"| Failed | {report['tables_failed']} |",
        f"| Errors | {report['tables_errored']} |",
        f"| Source rows | {report['source_total_rows']:,} |",
        f"| Target rows | {report['target_total_rows']:,} |",
        f"| Matching rows | {report['matching_total_rows']:,} |",
        "",
    ]

    if report['tables']:
        lines.extend([
            "## Tables",
            "",
            "| Source | Target | Status | Source rows | Target rows | Mismatched | Missing | Extra | Match % |",
            "|---|---|---|---:|---:|---:|---:|---:|---:|",
        ])
        for t in report['tables']:
            lines.append(
                f"| {t['source_table']} | {t['target_table']} | {t['status']} | "
                f"{t['source_row_count']:,} | {t['target_row_count']:,} | {t['mismatched_rows']:,} | "
                f"{t['missing_in_target']:,} | {t['extra_in_target']:,} | {t['match_percentage']:.2f} |"
            )
        lines.append("")

        for t in report['tables']:
            if t['status'] == "MATCH":
                continue
            lines.append(f"### {t['source_table']} -> {t['target_table']}")
            lines.append("")
            if t.get("error"):
                lines.append(f"Error: `{t['error']}`")
                lines.append("")
                continue
            for title, sample in _sample_lines(t, sample_size):
                lines.append(f"**{title}**")
                lines.append("")
                lines.extend(f"- {line}" for line in sample)
                lines.append("")

    if report['recommendations']:
        lines.append("## Recommendations")
        lines.append("")
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(report['recommendations'], 1))
        lines.append("")

    return "\n".join(lines)


_HTML_STYLE = """
body { font-family: -apple-system, Segoe UI, Roboto, sans-serif; margin: 2em; color: #222; }
.cards { display: flex; flex-wrap: wrap; gap: 1em; margin: 1em 0; }
.card { border: 1px solid #ddd; border-radius: 6px; padding: 0.8em 1.2em; min-width: 10em; }
.card .value { font-size: 1.6em; font-weight: bold; }
.status { display: inline-block; padding: 0.2em 0.8em; border-radius: 4px; color: #fff; }
.PASS, .MATCH { background: #2e7d32; }
.FAIL, .MISMATCH { background: #c62828; }
.ERROR { background: #ef6c00; }
.NO_DATA { background: #757575; }
table { border-collapse: collapse; margin: 1em 0; }
th, td { border: 1px solid #ddd; padding: 0.4em 0.8em; text-align: left; }
td.num { text-align: right; }
"""


def format_report_html(report: dict[str, Any], sample_size: int = SAMPLE_SIZE) -> str:
    """
    Format report as a standalone HTML page

    Summary cards, one row per table pair, then capped evidence for every
    table that did not match.
    """
    esc = html.escape
    status = esc(report['status'])

    cards = [
        ("Tables compared", f"{report['total_tables']}"),
        ("Passed", f"{report['tables_passed']}"),
        ("Failed", f"{report['tables_failed']}"),
        ("Errors", f"{report['tables_errored']}"),
        ("Source rows", f"{report['source_total_rows']:,}"),
        ("Target rows", f"{report['target_total_rows']:,}"),
        ("Matching rows", f"{report['matching_total_rows']:,}"),
        ("Overall match", f"{report['overall_match_percentage']:.2f}%"),
    ]

    parts = [
        "<!DOCTYPE html>",
        "<html lang=\"en\">",
        "<head>",
        "<meta charset=\"utf-8\">",
        "<title>Data Validation Report</title>",
        f"<style>{_HTML_STYLE}</style>",
        "</head>",
        "<body>",
        "<h1>Data Validation Report</h1>",
        f"<p><span class=\"status {status}\">{status}</span> "
        f"Generated {esc(report['timestamp'])}, duration {report.get('duration_seconds', 0):.2f}s</p>",
        f"<p>{esc(report['summary'])}</p>",
        "<div class=\"cards\">",
    ]
    parts.extend(
        f"<div class=\"card\"><div class=\"label\">{label}</div><div class=\"value\">{value}</div></div>"
        for label, value in cards
    )
    parts.append("</div>")

    if report['tables']:
        parts.extend([
            "<h2>Tables</h2>",
            "<table>",
            "<tr><th>Source</th><th>Target</th><th>Status</th><th>Source rows</th><th>Target rows</th>"
            "<th>Mismatched</th><th>Missing</th><th>Extra</th><th>Match %</th></tr>",
        ])
        for t in report['tables']:
            parts.append(
                f"<tr><td>{esc(t['source_table'])}</td><td>{esc(t['target_table'])}</td>"
                f"<td><span class=\"status {esc(t['status'])}\">{esc(t['status'])}</span></td>"
                f"<td class=\"num\">{t['source_row_count']:,}</td><td class=\"num\">{t['target_row_count']:,}</td>"
                f"<td class=\"num\">{t['mismatched_rows']:,}</td><td class=\"num\">{t['missing_in_target']:,}</td>"
                f"<td class=\"num\">{t['extra_in_target']:,}</td><td class=\"num\">{t['match_percentage']:.2f}</td></tr>"
            )
        parts.append("</table>")

        for t in report['tables']:
            if t['status'] == "MATCH":
                continue
            parts.append(f"<h3>{esc(t['source_table'])} &rarr; {esc(t['target_table'])}</h3>")
            if t.get("error"):
                parts.append(f"<p>Error: <code>{esc(t['error'])}</code></p>")
                continue
            if t.get("source_truncated") or t.get("target_truncated"):
                parts.append("<p>Row cap reached, comparison covers a prefix of the table.</p>")
            for title, sample in _sample_lines(t, sample_size):
                parts.append(f"<h4>{esc(title)}</h4>")
                parts.append("<ul>")
                parts.extend(f"<li>{esc(line)}</li>" for line in sample)
                parts.append("</ul>")

    if report['recommendations']:
        parts.append("<h2>Recommendations</h2>")
        parts.append("<ol>")
        parts.extend(f"<li>{esc(rec)}</li>" for rec in report['recommendations'])
        parts.append("</ol>")

    parts.extend(["</body>", "</html>", ""])
    return "\n".join(parts)


def write_reports(
    report: dict[str, Any],
    output_dir: str | Path,
    formats: tuple[str, ...] = ("txt", "json"),
    stem: str | None = None,
) -> list[Path]:
    """
    Write the report in several formats to ``output_dir``

    A format that fails to write is logged and skipped; the validation
    verdict never depends on report output.

    Returns:
        Paths of the files written
    """
    output_dir = Path(output_dir)
    stem = stem or "validation_report_" + report['timestamp'][:19].replace(":", "").replace("-", "")

    writers = {
        "txt": lambda path: path.write_text(format_report_console(report), encoding="utf-8"),
        "md": lambda path: path.write_text(format_report_markdown(report), encoding="utf-8"),
        "html": lambda path: path.write_text(format_report_html(report), encoding="utf-8"),
        "json": lambda path: export_report_json(report, str(path)),
        "csv": lambda path: export_report_csv(report, str(path)),
    }

    unknown = [fmt for fmt in formats if fmt not in writers]
    if unknown:
        raise ValueError(f"Unknown report format {unknown[0]!r}, expected one of: {', '.join(writers)}")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create report directory {output_dir}: {e}")
        return []

    written = []
    for fmt in formats:
        path = output_dir / f"{stem}.{fmt}"
        try:
            writers[fmt](path)
        except OSError as e:
            logger.error(f"Failed to write {fmt} report to {path}: {e}")
            continue
        written.append(path)
        logger.info(f"Report saved to {path}")
    return written
