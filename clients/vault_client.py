"""
Vault access for billing secrets.

AppRole login against a KV v2 mount. Every path is read under the
'billing/' prefix, so this process can't reach other teams' secrets.
Missing configuration or credentials fail at startup, not on first use.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "billing"

# Process-wide client and per-path secret cache
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, str]] = {}


class VaultError(Exception):
    """Vault operation failed. Fatal - application cannot function without secrets."""


class VaultClient:
    """AppRole-authenticated reader for secrets under billing/."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError("VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required")

        if self.vault_namespace:
            self.client = hvac.Client(url=self.vault_addr, namespace=self.vault_namespace)
        else:
            self.client = hvac.Client(url=self.vault_addr)

        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error(f"AppRole authentication failed: {e}")
            raise PermissionError(f"AppRole authentication failed: {e}")
        self.client.token = login["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")

        logger.info(f"Vault client authenticated against {self.vault_addr}")

    def read_secret(self, path: str) -> Dict[str, str]:
        """
        Read every field of billing/<path> in one KV v2 call.

        Raises:
            PermissionError: Path missing or not readable with this role
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            logger.error(f"Secret path not found: {full_path}")
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        Single field of billing/<path>.

        Raises:
            PermissionError: Path missing or not readable
            KeyError: Field absent from the secret
        """
        return _pick(path, self.read_secret(path), [field])[field]


def _pick(path: str, secret: Dict[str, str], fields: list[str]) -> Dict[str, str]:
    missing = [field for field in fields if field not in secret]
    if missing:
        raise KeyError(
            f"Field(s) {', '.join(missing)} not found in secret '{_SECRET_PREFIX}/{path}'. "
            f"Available: {', '.join(secret)}"
        )
    return {field: secret[field] for field in fields}


def _ensure_vault_client() -> VaultClient:
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def _cached_fields(path: str, fields: list[str]) -> Dict[str, str]:
    """Required fields of one secret; each path is read from Vault once per process."""
    if path not in _secret_cache:
        _secret_cache[path] = _ensure_vault_client().read_secret(path)
    return _pick(path, _secret_cache[path], fields)


def get_database_url() -> str:
    """PostgreSQL connection URL."""
    return _cached_fields("database", ["url"])["url"]


def get_valkey_url() -> str:
    """Valkey connection URL for the session store."""
    return _cached_fields("valkey", ["url"])["url"]


def get_email_config() -> Dict[str, str]:
    """Email gateway settings: gateway_url, api_key, hmac_secret."""
    return _cached_fields("email", ["gateway_url", "api_key", "hmac_secret"])


def get_stripe_config() -> Dict[str, str]:
    """
    Stripe credentials.

    Returns:
        Dict with keys: secret_key (checkout API), webhook_secret (Stripe-Signature)
    """
    return _cached_fields("stripe", ["secret_key", "webhook_secret"])
