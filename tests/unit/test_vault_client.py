"""
Unit tests for src/utils/vault_client.py

Tests initialization, KV v2 secret retrieval, database credential fetching
and health checks with requests mocked out.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from utils.vault_client import VaultClient


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


@pytest.fixture
def client():
    return VaultClient(vault_addr="https://vault.example.com/", vault_token="test-token")


class TestVaultClientInit:
    """Test VaultClient initialization scenarios"""

    def test_init_with_explicit_parameters(self, client):
        """Test initialization with explicitly provided parameters"""
        assert client.vault_addr == "https://vault.example.com"
        assert client.vault_token == "test-token"
        assert client.headers == {"X-Vault-Token": "test-token"}

    def test_init_with_env_variables(self, monkeypatch):
        """Test initialization using environment variables"""
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token")

        client = VaultClient()

        assert client.vault_addr == "https://vault.env.com"
        assert client.vault_token == "env-token"

    def test_missing_address_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)

        with pytest.raises(ValueError, match="Vault address not provided"):
            VaultClient(vault_token="t")

    def test_missing_token_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_TOKEN", raising=False)

        with pytest.raises(ValueError, match="Vault token not provided"):
            VaultClient(vault_addr="https://vault")

    def test_namespace_header(self):
        client = VaultClient(vault_addr="https://vault", vault_token="t", namespace="team-a")

        assert client.headers["X-Vault-Namespace"] == "team-a"


class TestGetSecret:
    """Test KV v2 secret reads"""

    @patch("utils.vault_client.requests.get")
    def test_success(self, mock_get, client):
        mock_get.return_value = _response(payload={"data": {"data": {"user": "u"}}})

        secret = client.get_secret("database/oracle")

        assert secret == {"user": "u"}
        mock_get.assert_called_once_with(
            "https://vault.example.com/v1/secret/data/database/oracle",
            headers={"X-Vault-Token": "test-token"},
            timeout=10,
        )

    @patch("utils.vault_client.requests.get")
    def test_custom_mount_point(self, mock_get):
        client = VaultClient(vault_addr="https://vault", vault_token="t", mount_point="/kv/")
        mock_get.return_value = _response(payload={"data": {"data": {"a": 1}}})

        client.get_secret("database/postgresql")

        assert mock_get.call_args[0][0] == "https://vault/v1/kv/data/database/postgresql"

    @patch("utils.vault_client.requests.get")
    def test_not_found(self, mock_get, client):
        mock_get.return_value = _response(status_code=404)

        with pytest.raises(ValueError, match="Secret not found"):
            client.get_secret("database/oracle")

    @patch("utils.vault_client.requests.get")
    def test_http_error(self, mock_get, client):
        mock_get.return_value = _response(status_code=500)

        with pytest.raises(requests.HTTPError):
            client.get_secret("database/oracle")

    @patch("utils.vault_client.requests.get")
    def test_empty_secret(self, mock_get, client):
        mock_get.return_value = _response(payload={"data": {"data": {}}})

        with pytest.raises(ValueError, match="No data found"):
            client.get_secret("database/oracle")

    @pytest.mark.parametrize("path", ["", "../sys/raw", "database/oracle?x=1", "database oracle"])
    def test_invalid_paths(self, client, path):
        with pytest.raises(ValueError):
            client.get_secret(path)


class TestGetDatabaseCredentials:
    """Test database credential fetching"""

    @patch("utils.vault_client.requests.get")
    def test_oracle_default_port(self, mock_get, client):
        mock_get.return_value = _response(payload={"data": {"data": {
            "host": "ora", "database": "ORCL", "username": "hr", "password": "p",
        }}})

        creds = client.get_database_credentials("oracle")

        assert creds["port"] == 1521
        assert mock_get.call_args[0][0].endswith("/v1/secret/data/database/oracle")

    @patch("utils.vault_client.requests.get")
    def test_custom_port_is_an_int(self, mock_get, client):
        mock_get.return_value = _response(payload={"data": {"data": {
            "host": "pg", "port": "6543", "database": "app", "username": "u", "password": "p",
            "schema": "sales",
        }}})

        creds = client.get_database_credentials("postgresql")

        assert creds["port"] == 6543
        assert creds["schema"] == "sales"

    @patch("utils.vault_client.requests.get")
    def test_missing_fields(self, mock_get, client):
        mock_get.return_value = _response(payload={"data": {"data": {"host": "h"}}})

        with pytest.raises(ValueError, match="database, username, password"):
            client.get_database_credentials("sqlserver")

    def test_unsupported_engine(self, client):
        with pytest.raises(ValueError, match="Unsupported database engine"):
            client.get_database_credentials("mysql")


class TestHealthCheck:
    """Test Vault health checks"""

    @pytest.mark.parametrize("status,expected", [
        (200, True), (429, True), (472, True), (473, True), (501, False), (503, False),
    ])
    @patch("utils.vault_client.requests.get")
    def test_status_codes(self, mock_get, client, status, expected):
        mock_get.return_value = _response(status_code=status)

        assert client.health_check() is expected
        mock_get.assert_called_once_with("https://vault.example.com/v1/sys/health", timeout=5)

    @patch("utils.vault_client.requests.get", side_effect=requests.ConnectionError("refused"))
    def test_request_exception(self, mock_get, client):
        assert client.health_check() is False
