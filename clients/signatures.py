"""
HMAC-SHA256 signing shared by the email gateway and payment webhooks.

Outbound gateway requests are signed with the same primitive that inbound
webhooks are verified with.
"""

import hashlib
import hmac


class WebhookSignatureError(Exception):
    """Inbound webhook signature missing, malformed, stale, or wrong."""


def sign(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 of payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify(secret: str, payload: bytes, signature: str | None) -> None:
    """
    Check a hex HMAC-SHA256 signature in constant time.

    Raises:
        WebhookSignatureError: If signature is missing or does not match
    """
    if not signature:
        raise WebhookSignatureError("Missing signature")
    if not hmac.compare_digest(sign(secret, payload), signature.strip().lower()):
        raise WebhookSignatureError("Signature mismatch")
