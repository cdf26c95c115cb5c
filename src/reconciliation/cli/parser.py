"""
Command-line argument parser configuration.

Defines the ``run``, ``extract`` and ``report`` commands. Every knob that
has an environment variable can also be given as a flag; flags win.
"""

import argparse

from ..fingerprint import HASH_ALGORITHMS

ENGINE_CHOICES = ['oracle', 'postgresql', 'sqlserver']
REPORT_FORMATS = ['txt', 'md', 'html', 'json', 'csv']


def _add_connection_arguments(parser: argparse.ArgumentParser, side: str) -> None:
    group = parser.add_argument_group(f'{side} database')
    group.add_argument(f'--{side}-type', choices=ENGINE_CHOICES, help=f'{side.title()} engine')
    group.add_argument(f'--{side}-host', help=f'{side.title()} host')
    group.add_argument(f'--{side}-port', type=int, help=f'{side.title()} port')
    group.add_argument(f'--{side}-database', help=f'{side.title()} database or Oracle service name')
    group.add_argument(f'--{side}-user', help=f'{side.title()} username')
    group.add_argument(f'--{side}-password', help=f'{side.title()} password')
    group.add_argument(f'--{side}-schema', help=f'{side.title()} schema (used for ALL discovery)')
    group.add_argument(
        f'--{side}-skip-columns',
        help=f'Comma-separated columns excluded from {side} fingerprints',
    )


def _add_extraction_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--hash-algorithm',
        choices=sorted(HASH_ALGORITHMS),
        help='Row hash algorithm (default: HASH_ALGORITHM or SHA256)'
    )
    parser.add_argument('--batch-size', type=int, help='Rows per fetch batch (default: 5000)')
    parser.add_argument('--max-rows', type=int, help='Row cap per table, 0 = unlimited')
    parser.add_argument('--timeout', type=int, help='Statement timeout in seconds (default: 300)')
    parser.add_argument('--output-dir', help='Directory for reports and hash CSVs (default: ./reports)')
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Row-level data validation for Oracle, PostgreSQL and SQL Server migrations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare two tables from Oracle to PostgreSQL
  fingerprint-validate run --tables HR.EMPLOYEES=hr.employees,HR.JOBS=hr.jobs

  # Compare every table the two schemas have in common
  fingerprint-validate run --tables ALL --source-schema HR --target-schema hr

  # Ignore audit columns and use MD5
  fingerprint-validate run --tables HR.EMPLOYEES=hr.employees \\
      --source-skip-columns LAST_UPDATED --target-skip-columns migrated_at --hash-algorithm MD5

  # Hash one database only and write the per-row CSVs
  fingerprint-validate extract --side source --tables HR.EMPLOYEES

  # Re-render a saved report as markdown
  fingerprint-validate report --input reports/validation_report.json --format markdown
        """
    )

    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or INFO)'
    )
    parser.add_argument('--log-file', help='Also log to this file, rotated per LOG_ROTATION (default: LOG_FILE)')
    parser.add_argument('--log-json', action='store_true', default=None, help='Emit JSON log records (default: LOG_JSON)')
    parser.add_argument('--otlp-endpoint', help='Export traces to this OTLP gRPC endpoint (default: OTLP_ENDPOINT)')
    parser.add_argument('--metrics-port', type=int, help='Expose Prometheus metrics on this port')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Compare source and target tables')
    run_parser.add_argument(
        '--tables',
        help='SRC.T=tgt.t pairs separated by commas, or ALL (default: TABLES_TO_COMPARE)'
    )
    run_parser.add_argument(
        '--tables-file',
        help='File with one mapping entry per line'
    )
    _add_extraction_arguments(run_parser)
    run_parser.add_argument(
        '--evidence-limit',
        type=int,
        help='Evidence entries kept per anomaly type (default: 100)'
    )
    run_parser.add_argument(
        '--concurrent-sides',
        action='store_true',
        default=None,
        help='Extract source and target of each table concurrently'
    )
    run_parser.add_argument(
        '--no-hash-csv',
        action='store_true',
        help='Do not write per-row hash CSV files'
    )
    run_parser.add_argument(
        '--format',
        default='txt,json',
        help=f'Report formats to write, comma-separated from {",".join(REPORT_FORMATS)} (default: txt,json)'
    )
    run_parser.add_argument(
        '--quiet',
        action='store_true',
        help='Do not print the report to stdout'
    )
    _add_connection_arguments(run_parser, 'source')
    _add_connection_arguments(run_parser, 'target')

    # ========== Extract command ==========
    extract_parser = subparsers.add_parser('extract', help='Fingerprint tables in a single database')
    extract_parser.add_argument(
        '--side',
        choices=['source', 'target'],
        default='source',
        help='Which configured database to read (default: source)'
    )
    extract_parser.add_argument(
        '--tables',
        help='schema.table names separated by commas (default: every table in the side schema)'
    )
    _add_extraction_arguments(extract_parser)
    _add_connection_arguments(extract_parser, 'source')
    _add_connection_arguments(extract_parser, 'target')

    # ========== Report command ==========
    report_parser = subparsers.add_parser('report', help='Render a saved JSON report')
    report_parser.add_argument(
        '--input',
        required=True,
        help='Input JSON report file'
    )
    report_parser.add_argument(
        '--format',
        choices=['console', 'markdown', 'html', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    report_parser.add_argument(
        '--output',
        help='Output file path (required for json and csv formats)'
    )

    return parser
