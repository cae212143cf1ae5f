"""
Stripe client for hosted checkout and webhook verification.

Talks to the Stripe REST API with requests (form-encoded, bearer auth).
Webhook verification follows Stripe's Stripe-Signature scheme:
    t=<unix ts>,v1=<hex HMAC-SHA256 of "<t>.<raw body>">
"""

import json
import logging
import time

import requests

from clients import signatures
from clients.signatures import WebhookSignatureError

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1"


class PaymentGatewayError(Exception):
    """Raised when the payment processor request fails."""


class PaymentGatewayClient:
    """Create checkout sessions and verify inbound Stripe events."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        api_base: str = STRIPE_API_BASE,
        tolerance_seconds: int = 300,
    ):
        """
        Initialize with Stripe credentials.

        Raises:
            ValueError: If any credential is empty
        """
        if not secret_key:
            raise ValueError("secret_key is required")
        if not webhook_secret:
            raise ValueError("webhook_secret is required")

        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_base = api_base.rstrip("/")
        self.tolerance_seconds = tolerance_seconds

    def create_checkout_session(
        self,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> dict:
        """
        Create a one-line-item hosted checkout session.

        Returns:
            Dict with 'id' and 'url' of the session

        Raises:
            PaymentGatewayError: On any failure
        """
        form = {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "line_items[0][quantity]": "1",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][unit_amount]": str(amount_cents),
            "line_items[0][price_data][product_data][name]": product_name,
            "line_items[0][price_data][product_data][description]": description,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        try:
            response = requests.post(
                f"{self.api_base}/checkout/sessions",
                data=form,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=15,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment gateway connection failed: {e}")
            raise PaymentGatewayError(f"Connection failed: {e}")

        try:
            response_data = response.json()
        except ValueError:
            logger.error(f"Payment gateway returned invalid JSON: {response.text}")
            raise PaymentGatewayError("Invalid response from payment gateway")

        if response.status_code != 200:
            error_msg = response_data.get("error", {}).get("message", "Unknown error")
            logger.error(f"Payment gateway error: {error_msg}")
            raise PaymentGatewayError(f"Gateway error: {error_msg}")

        if not response_data.get("id") or not response_data.get("url"):
            raise PaymentGatewayError("Gateway response missing session id or url")

        logger.info(f"Checkout session created: {response_data['id']}")
        return {"id": response_data["id"], "url": response_data["url"]}

    def construct_event(self, payload: bytes, signature_header: str | None, now: float | None = None) -> dict:
        """
        Verify a webhook payload and parse it.

        Args:
            payload: Raw request body, exactly as received
            signature_header: Value of the Stripe-Signature header
            now: Current unix time (defaults to time.time())

        Returns:
            Parsed event dict

        Raises:
            WebhookSignatureError: If the signature is missing, stale or wrong
            ValueError: If the verified payload is not valid JSON
        """
        if not signature_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        timestamp = None
        candidates = []
        for part in signature_header.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                candidates.append(value)

        if timestamp is None or not candidates:
            raise WebhookSignatureError("Malformed Stripe-Signature header")

        try:
            signed_at = int(timestamp)
        except ValueError:
            raise WebhookSignatureError("Malformed signature timestamp")

        current = time.time() if now is None else now
        if abs(current - signed_at) > self.tolerance_seconds:
            raise WebhookSignatureError("Signature timestamp outside tolerance")

        signed_payload = timestamp.encode("utf-8") + b"." + payload
        matched = False
        for candidate in candidates:
            try:
                signatures.verify(self.webhook_secret, signed_payload, candidate)
                matched = True
                break
            except WebhookSignatureError:
                continue
        if not matched:
            raise WebhookSignatureError("No matching v1 signature")

        return json.loads(payload)
