"""
HashiCorp Vault client for database credentials

Credentials live in the KV v2 secrets engine, one secret per engine, at
``<mount>/database/<engine>`` (for example ``secret/database/oracle``).
Each secret holds ``host``, ``database``, ``username`` and ``password`` and
optionally ``port`` and ``schema``.
"""

import logging
import os
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

SUPPORTED_ENGINES = ("oracle", "postgresql", "sqlserver")
REQUIRED_FIELDS = ("host", "database", "username", "password")
DEFAULT_PORTS = {"oracle": 1521, "postgresql": 5432, "sqlserver": 1433}

_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")


class VaultClient:
    """
    Minimal KV v2 reader

    Raises ValueError on construction when the address or token is missing.
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        mount_point: str = "secret",
        timeout: float = 10,
    ):
        """
        Args:
            vault_addr: Vault server address (default: VAULT_ADDR env var)
            vault_token: Vault token (default: VAULT_TOKEN env var)
            namespace: Vault Enterprise namespace
            mount_point: KV v2 mount holding the database secrets
            timeout: HTTP timeout in seconds
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace
        self.mount_point = mount_point.strip("/")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )
        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")
        self.headers = {"X-Vault-Token": self.vault_token}
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.debug(f"Initialized Vault client for {self.vault_addr}")

    def _data_url(self, secret_path: str) -> str:
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")
        if ".." in secret_path or not _SAFE_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )
        return f"{self.vault_addr}/v1/{self.mount_point}/data/{secret_path.strip('/')}"

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Read a secret's current version

        Args:
            secret_path: Path below the mount (e.g., "database/oracle")

        Returns:
            The secret's key/value data

        Raises:
            ValueError: If the path is invalid, missing or empty
            requests.RequestException: If the request fails
        """
        url = self._data_url(secret_path)
        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)
        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {self.mount_point}/{secret_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {self.mount_point}/{secret_path}")
        return secret_data

    def get_database_credentials(self, engine: str) -> dict[str, Any]:
        """
        Fetch connection credentials for a database engine

        Args:
            engine: "oracle", "postgresql" or "sqlserver"

        Returns:
            Dictionary with host, port, database, username, password and any
            other keys stored in the secret

        Raises:
            ValueError: If the engine is unsupported or fields are missing
        """
        if engine not in SUPPORTED_ENGINES:
            raise ValueError(
                f"Unsupported database engine: {engine!r}. "
                f"Must be one of: {', '.join(SUPPORTED_ENGINES)}."
            )

        secret_data = dict(self.get_secret(f"database/{engine}"))

        missing_fields = [f for f in REQUIRED_FIELDS if f not in secret_data]
        if missing_fields:
            raise ValueError(
                f"Missing required fields in {engine} secret: {', '.join(missing_fields)}"
            )

        secret_data["port"] = int(secret_data.get("port") or DEFAULT_PORTS[engine])

        logger.info(f"Fetched {engine} credentials from Vault")
        return secret_data

    def health_check(self) -> bool:
        """True when Vault is initialized and unsealed (active or standby)."""
        try:
            response = requests.get(f"{self.vault_addr}/v1/sys/health", timeout=5)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
        # 200 active, 429 standby, 472 DR secondary, 473 performance standby
        return response.status_code in (200, 429, 472, 473)
