"""Tests for VaultClient - HashiCorp Vault secrets management."""

import pytest
from unittest.mock import MagicMock

import hvac
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_email_config, get_stripe_config


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com")
    monkeypatch.setenv("VAULT_ROLE_ID", "role-id")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret-id")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(monkeypatch, vault_env):
    """hvac.Client double that authenticates and serves billing/* secrets."""
    client = MagicMock()
    client.auth.approle.login.return_value = {"auth": {"client_token": "token-1"}}
    client.is_authenticated.return_value = True
    monkeypatch.setattr(hvac, "Client", MagicMock(return_value=client))

    secrets = {
        "billing/database": {"url": "postgresql://localhost/billing"},
        "billing/email": {"gateway_url": "https://mail.test/send", "api_key": "k", "hmac_secret": "h"},
        "billing/stripe": {"secret_key": "sk_test", "webhook_secret": "whsec_test"},
    }

    def read_secret_version(path, raise_on_deleted_version):
        if path not in secrets:
            raise InvalidPath()
        return {"data": {"data": secrets[path]}}

    client.secrets.kv.v2.read_secret_version.side_effect = read_secret_version
    return client


@pytest.fixture
def fresh_cache(monkeypatch):
    monkeypatch.setattr(vault_module, "_vault_client_instance", None)
    monkeypatch.setattr(vault_module, "_secret_cache", {})


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch, vault_env):
        """VAULT_ADDR required."""
        monkeypatch.delenv("VAULT_ADDR")
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, monkeypatch, vault_env):
        """VAULT_ROLE_ID and VAULT_SECRET_ID required."""
        monkeypatch.delenv("VAULT_ROLE_ID")
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_failed_login_raises_permission_error(self, hvac_client):
        """Rejected AppRole credentials fail authentication."""
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")

        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()

    def test_valid_approle_authenticates(self, hvac_client):
        """Login token is installed on the client."""
        client = VaultClient()
        assert client.client.token == "token-1"


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to billing/."""

    def test_returns_field_value(self, hvac_client):
        """Pass "database", internally reads "billing/database"."""
        assert VaultClient().get_secret("database", "url") == "postgresql://localhost/billing"

    def test_missing_path_raises(self, hvac_client):
        """Non-existent path raises PermissionError."""
        with pytest.raises(PermissionError, match="billing/nonexistent"):
            VaultClient().get_secret("nonexistent", "field")

    def test_missing_field_raises_keyerror(self, hvac_client):
        """Missing field in existing secret raises KeyError."""
        with pytest.raises(KeyError, match="not found"):
            VaultClient().get_secret("database", "nonexistent_field")


class TestConvenienceFunctions:
    """Module-level convenience functions."""

    def test_get_stripe_config(self, hvac_client, fresh_cache):
        """Stripe config has both keys."""
        assert get_stripe_config() == {"secret_key": "sk_test", "webhook_secret": "whsec_test"}

    def test_values_are_cached(self, hvac_client, fresh_cache):
        """Each secret path is read from Vault once per process."""
        get_email_config()
        get_email_config()

        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1

    def test_missing_required_field(self, hvac_client, fresh_cache):
        """A secret without every required field fails loudly."""
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = None
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"secret_key": "sk"}}}

        with pytest.raises(KeyError, match="webhook_secret"):
            get_stripe_config()
