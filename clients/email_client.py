"""
Transactional email through the HTTP email gateway.

Outbound requests carry an HMAC-SHA256 of the exact JSON body in X-Signature.
The gateway signs its delivery-status webhooks the same way with the same
secret, so one client both sends invoices and authenticates their callbacks.
"""

import base64
import json
import logging

import requests

from clients import signatures

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10


class EmailGatewayError(Exception):
    """Raised when email gateway request fails."""


def _attachment(content: bytes, filename: str) -> dict:
    return {
        "filename": filename,
        "content_type": "application/pdf",
        "content": base64.b64encode(content).decode("ascii"),
    }


class EmailGatewayClient:
    """Sends invoice email and verifies the gateway's delivery callbacks."""

    def __init__(self, gateway_url: str, api_key: str, hmac_secret: str, sender: str = "invoices"):
        """
        Args:
            gateway_url: Full URL to the gateway's send endpoint
            api_key: Sent as X-API-Key
            hmac_secret: Shared secret for request and webhook signatures
            sender: Sender identity configured on the gateway

        Raises:
            ValueError: If any credential is empty
        """
        for name, value in (("gateway_url", gateway_url), ("api_key", api_key), ("hmac_secret", hmac_secret)):
            if not value:
                raise ValueError(f"{name} is required")

        self.gateway_url = gateway_url
        self.api_key = api_key
        self.hmac_secret = hmac_secret
        self.sender = sender

    def _post(self, payload: dict) -> dict:
        """
        POST a signed JSON payload and return the gateway's JSON reply.

        Raises:
            EmailGatewayError: Transport failure, non-JSON reply, or rejection
        """
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
            "X-Signature": signatures.sign(self.hmac_secret, body),
        }

        try:
            response = requests.post(self.gateway_url, data=body, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
        except (requests.exceptions.RequestException, ConnectionError) as e:
            logger.error(f"Email gateway connection failed: {e}")
            raise EmailGatewayError(f"Connection failed: {e}")

        try:
            reply = response.json()
        except ValueError:
            logger.error(f"Email gateway returned invalid JSON (HTTP {response.status_code})")
            raise EmailGatewayError("Invalid response from gateway")

        if response.status_code != 200 or not reply.get("success"):
            reason = reply.get("message", "Unknown error")
            logger.error(f"Email gateway rejected send (HTTP {response.status_code}): {reason}")
            raise EmailGatewayError(f"Gateway error: {reason}")

        return reply

    def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        attachment: bytes | None = None,
        attachment_name: str | None = None,
    ) -> str:
        """
        Send an HTML email, optionally with one PDF attached.

        Returns:
            Gateway message id; delivery webhooks reference it

        Raises:
            EmailGatewayError: On gateway failure or a reply without message_id
        """
        payload = {
            "type": "custom",
            "email": to,
            "subject": subject,
            "html": html,
            "sender": self.sender,
        }
        if attachment is not None:
            payload["attachments"] = [_attachment(attachment, attachment_name or "attachment.pdf")]

        message_id = self._post(payload).get("message_id")
        if not message_id:
            logger.error(f"Email gateway accepted mail to {to} without a message_id")
            raise EmailGatewayError("Gateway response missing message_id")

        logger.info(f"Email sent to {to}: {subject} (message_id={message_id})")
        return message_id

    def verify_webhook(self, payload: bytes, signature: str | None) -> None:
        """
        Check a delivery-status webhook's X-Signature against the raw body.

        Raises:
            WebhookSignatureError: If the signature is missing or wrong
        """
        signatures.verify(self.hmac_secret, payload, signature)
