"""
CLI command implementations.

- run: Compare mapped table pairs and write reports
- extract: Fingerprint tables in one database and write hash CSVs
- report: Render a saved JSON report
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from utils.metrics import initialize_metrics

from ..config import ValidatorConfig
from ..errors import ConfigurationError
from ..report import (
    HashCsvWriter,
    export_report_csv,
    export_report_json,
    format_report_console,
    format_report_html,
    format_report_markdown,
    generate_report,
    write_reports,
)
from ..tables import TableReference
from ..validator import MigrationValidator
from .credentials import get_credentials_from_vault_or_env
from .parser import REPORT_FORMATS

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> ValidatorConfig:
    """Environment configuration with command-line overrides applied."""
    config = ValidatorConfig.from_env()
    return config.with_overrides(
        hash_algorithm=getattr(args, "hash_algorithm", None),
        batch_size=getattr(args, "batch_size", None),
        max_rows_per_table=getattr(args, "max_rows", None),
        command_timeout_seconds=getattr(args, "timeout", None),
        evidence_limit=getattr(args, "evidence_limit", None),
        concurrent_sides=getattr(args, "concurrent_sides", None),
        reports_dir=getattr(args, "output_dir", None),
        save_hashes_to_csv=False if getattr(args, "no_hash_csv", False) else None,
    )


def _read_tables_argument(args: argparse.Namespace) -> str | None:
    if getattr(args, "tables_file", None):
        with open(args.tables_file) as f:
            return ",".join(line.strip() for line in f if line.strip() and not line.strip().startswith("#"))
    return args.tables


def _parse_formats(value: str) -> tuple[str, ...]:
    formats = tuple(f.strip().lower() for f in value.split(",") if f.strip())
    unknown = [f for f in formats if f not in REPORT_FORMATS]
    if unknown:
        raise ConfigurationError(
            f"Unknown report format(s): {', '.join(unknown)}. Choose from {', '.join(REPORT_FORMATS)}"
        )
    return formats


def _metrics_from_args(args: argparse.Namespace):
    if getattr(args, "metrics_port", None):
        return initialize_metrics(port=args.metrics_port)["reconciliation"]
    return None


def cmd_run(args: argparse.Namespace) -> None:
    """
    Compare table pairs and exit 0 only when every pair fully matches

    Args:
        args: Parsed command-line arguments
    """
    logger.info("Starting validation run")

    try:
        config = build_config(args)
        formats = _parse_formats(args.format)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    config = get_credentials_from_vault_or_env(args, config)

    try:
        validator = MigrationValidator(config, metrics=_metrics_from_args(args))
        mappings = validator.resolve_mappings(_read_tables_argument(args))
    except Exception as e:
        logger.error(f"Could not determine tables to compare: {e}")
        sys.exit(1)

    logger.info(
        f"Comparing {len(mappings)} table pair(s) with {config.hash_algorithm}, "
        f"batch size {config.batch_size}"
    )

    summary = validator.validate_all(mappings)
    report = generate_report(summary)

    write_reports(report, config.reports_dir, formats)
    if not args.quiet:
        print(format_report_console(report))

    if summary.all_match:
        logger.info("Validation passed: all tables match")
        sys.exit(0)
    else:
        logger.warning(f"Validation {report['status']}: see {config.reports_dir} for details")
        sys.exit(1)


def cmd_extract(args: argparse.Namespace) -> None:
    """
    Single-database mode: write per-row hash CSVs for one side

    Args:
        args: Parsed command-line arguments
    """
    logger.info(f"Starting single-database extraction on the {args.side} side")

    try:
        config = build_config(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    config = get_credentials_from_vault_or_env(args, config, sides=(args.side,))
    validator = MigrationValidator(
        config,
        metrics=_metrics_from_args(args),
        hash_writer=HashCsvWriter(config.reports_dir),
    )
    side = validator.source if args.side == "source" else validator.target

    try:
        if args.tables:
            tables = [
                TableReference.parse(name, side.dialect.normalize_identifier)
                for name in args.tables.split(",")
                if name.strip()
            ]
        else:
            if not side.schema:
                raise ValueError(f"--tables or --{args.side}-schema is required")
            tables = [
                TableReference(schema=side.schema, name=name)
                for name in validator.list_tables(side)
            ]
    except Exception as e:
        logger.error(f"Could not determine tables to extract: {e}")
        sys.exit(1)

    results = validator.extract_side(side, tables)

    failed = [r for r in results if r.error]
    for result in results:
        if result.error:
            print(f"{result.table}: ERROR {result.error}")
        else:
            print(f"{result.table}: {result.row_count:,} rows -> {result.csv_path}")

    logger.info(f"Extraction complete: {len(results) - len(failed)} succeeded, {len(failed)} failed")
    sys.exit(1 if failed else 0)


def cmd_report(args: argparse.Namespace) -> None:
    """
    Render a report from a previous run's JSON file

    Args:
        args: Parsed command-line arguments
    """
    logger.info(f"Loading validation report from {args.input}")

    try:
        with open(args.input, encoding="utf-8") as f:
            report = json.load(f)

        renderers = {
            "console": format_report_console,
            "markdown": format_report_markdown,
            "html": format_report_html,
        }
        if args.format in renderers:
            text = renderers[args.format](report)
            if args.output:
                Path(args.output).write_text(text, encoding="utf-8")
                logger.info(f"Report exported to {args.output}")
            else:
                print(text)
        elif args.format == "csv":
            if not args.output:
                logger.error("Output file required for CSV format")
                sys.exit(1)
            export_report_csv(report, args.output)
            logger.info(f"Report exported to {args.output}")
        elif args.format == "json":
            if not args.output:
                logger.error("Output file required for JSON format")
                sys.exit(1)
            export_report_json(report, args.output)
            logger.info(f"Report exported to {args.output}")

    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to process report: {e}")
        sys.exit(1)
