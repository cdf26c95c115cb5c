"""
Structured logging for the validator

Usage:
    from utils.logging import setup_logging, ContextLogger

    setup_logging(level="INFO", log_file="logs/validator.log", rotation="daily")

    logger = ContextLogger(__name__, source_table="HR.EMPLOYEES")
    logger.warning("No primary key found", columns=12)
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
