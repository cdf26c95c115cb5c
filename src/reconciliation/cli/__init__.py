"""
Command-line interface for migration data validation.

Available commands:
- run: Compare source and target tables row by row
- extract: Fingerprint the tables of a single database
- report: Render a saved JSON report
"""

import os
import sys

from utils.logging import configure_from_env, shutdown_logging
from utils.tracing import initialize_tracing, shutdown_tracing

from .commands import build_config, cmd_extract, cmd_report, cmd_run
from .credentials import get_credentials_from_vault_or_env
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fingerprint-validate CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Flags win over LOG_* and OTLP_ENDPOINT
    configure_from_env(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
        backup_count=30,
    )

    otlp_endpoint = args.otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        initialize_tracing(otlp_endpoint=otlp_endpoint)

    try:
        if args.command == 'run':
            cmd_run(args)
        elif args.command == 'extract':
            cmd_extract(args)
        elif args.command == 'report':
            cmd_report(args)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        shutdown_tracing()
        shutdown_logging()


__all__ = [
    'main',
    'build_config',
    'get_credentials_from_vault_or_env',
    'cmd_run',
    'cmd_extract',
    'cmd_report',
    'create_parser',
]


if __name__ == '__main__':
    main()
