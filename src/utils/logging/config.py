"""
Logging configuration for the validator.

Sets up the root logger with a console handler and an optional rotating log
file. Files rotate either by size or daily at midnight.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import ConsoleFormatter, JSONFormatter

APP_NAME = "data-fingerprint-validator"

_TRUE_VALUES = ("true", "1", "yes")


def _build_file_handler(
    log_file: str,
    rotation: str,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    if rotation == "daily":
        return logging.handlers.TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            backupCount=backup_count,
            encoding="utf-8",
        )
    if rotation == "size":
        return logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    raise ValueError(f"Unknown log rotation {rotation!r}, expected 'size' or 'daily'")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = APP_NAME,
    rotation: str = "size",
    max_bytes: int = 100 * 1024 * 1024,  # 100MB
    backup_count: int = 5,
) -> None:
    """
    Configure logging for the application

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, file logging is disabled)
        console_output: Whether to log to stderr
        json_format: Use JSON format for console and file logs
        app_name: Application name included in JSON records
        rotation: "size" (max_bytes) or "daily" (midnight)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    json_formatter = JSONFormatter(app_name=app_name) if json_format else None

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(json_formatter or ConsoleFormatter(use_colors=True))
        root_logger.addHandler(console_handler)

    if log_file:
        file_handler = _build_file_handler(log_file, rotation, max_bytes, backup_count)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(json_formatter or ConsoleFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Driver and HTTP libraries are chatty at INFO
    for noisy in ("urllib3", "requests", "oracledb", "grpc"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging initialized: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flush and close every root handler, releasing log file handles."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    logging.shutdown()


def configure_from_env(**overrides) -> None:
    """
    Configure logging from environment variables

    Environment variables:
        LOG_LEVEL: Log level (default: INFO)
        LOG_FILE: Log file path (default: none)
        LOG_JSON: Use JSON format (default: false)
        LOG_CONSOLE: Enable console output (default: true)
        LOG_ROTATION: "size" or "daily" (default: size)

    Args:
        **overrides: setup_logging() arguments that take precedence over the
            environment; None values are ignored
    """
    settings = dict(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
        console_output=os.getenv("LOG_CONSOLE", "true").lower() in _TRUE_VALUES,
        json_format=os.getenv("LOG_JSON", "false").lower() in _TRUE_VALUES,
        rotation=os.getenv("LOG_ROTATION", "size").lower(),
    )
    settings.update({key: value for key, value in overrides.items() if value is not None})
    setup_logging(**settings)
