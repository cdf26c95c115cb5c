"""
Validation report generation and formatting.

This submodule turns a run summary into a report dict and renders it as
plain text, markdown, HTML, JSON or CSV; it also exports per-row hash CSVs.
"""

from .formatters import (
    export_report_csv,
    export_report_json,
    format_report_console,
    format_report_html,
    format_report_markdown,
    write_reports,
)
from .generator import IssueType, format_timestamp, generate_report
from .hash_csv import HASH_CSV_HEADER, HashCsvWriter, hash_csv_filename

__all__ = [
    'generate_report',
    'format_timestamp',
    'IssueType',
    'export_report_json',
    'export_report_csv',
    'format_report_console',
    'format_report_markdown',
    'format_report_html',
    'write_reports',
    'HashCsvWriter',
    'HASH_CSV_HEADER',
    'hash_csv_filename',
]
