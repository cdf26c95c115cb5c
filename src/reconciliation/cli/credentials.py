"""
Credential and configuration resolution for the CLI.

Connection settings are layered: environment variables first, then
command-line flags, then (with ``--use-vault``) the Vault secret for each
engine, which replaces host, port, database and credentials.
"""

import argparse
import logging
import sys
from dataclasses import replace

from utils.vault_client import VaultClient

from ..config import DatabaseSettings, ValidatorConfig, parse_column_list

logger = logging.getLogger(__name__)


def _apply_side_arguments(
    settings: DatabaseSettings,
    args: argparse.Namespace,
    side: str,
) -> DatabaseSettings:
    def arg(name):
        return getattr(args, f"{side}_{name}", None)

    engine = arg("type")
    if engine and engine != settings.engine:
        # Engine defaults (port, database, schema) must follow the new engine
        settings = DatabaseSettings(
            engine=engine,
            host=settings.host,
            username=settings.username,
            password=settings.password,
            skip_columns=settings.skip_columns,
            odbc_driver=settings.odbc_driver,
        )

    changes = {
        "host": arg("host"),
        "port": arg("port"),
        "database": arg("database"),
        "username": arg("user"),
        "password": arg("password"),
        "schema": arg("schema"),
    }
    skip = arg("skip_columns")
    if skip is not None:
        changes["skip_columns"] = parse_column_list(skip)

    return replace(settings, **{k: v for k, v in changes.items() if v is not None})


def _apply_vault_credentials(settings: DatabaseSettings, vault_client: VaultClient) -> DatabaseSettings:
    creds = vault_client.get_database_credentials(settings.engine)
    return replace(
        settings,
        host=creds["host"],
        port=creds["port"],
        database=creds["database"],
        username=creds["username"],
        password=creds["password"],
        schema=creds.get("schema") or settings.schema,
    )


def get_credentials_from_vault_or_env(
    args: argparse.Namespace,
    config: ValidatorConfig,
    sides: tuple[str, ...] = ("source", "target"),
) -> ValidatorConfig:
    """
    Apply CLI connection flags and, optionally, Vault credentials

    Args:
        args: Parsed command-line arguments
        config: Configuration built from the environment
        sides: Sides that will actually be connected to

    Returns:
        Configuration with final connection settings for both sides

    Exits with status 1 when Vault is unreachable or a password is missing.
    """
    source = _apply_side_arguments(config.source, args, "source")
    target = _apply_side_arguments(config.target, args, "target")

    if getattr(args, "use_vault", False):
        try:
            vault_client = VaultClient()
            if "source" in sides:
                source = _apply_vault_credentials(source, vault_client)
            if "target" in sides:
                target = _apply_vault_credentials(target, vault_client)
            logger.info("Successfully fetched credentials from Vault")
        except Exception as e:
            logger.error(f"Failed to fetch credentials from Vault: {e}")
            sys.exit(1)

    for side, settings in (("source", source), ("target", target)):
        if side in sides and not settings.password:
            logger.error(f"{side.title()} database password not provided")
            sys.exit(1)

    return replace(config, source=source, target=target)
