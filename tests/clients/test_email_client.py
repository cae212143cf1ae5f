"""
Tests for EmailGatewayClient.

Covers the two things billing code relies on: sending invoice mail with a
PDF attached, and authenticating the gateway's delivery callbacks.
"""

import base64
import json

import pytest
import responses

from clients.email_client import EmailGatewayClient, EmailGatewayError
from clients.signatures import WebhookSignatureError, sign

GATEWAY_URL = "https://gateway.example.com/send"
HMAC_SECRET = "test-hmac-secret"


@pytest.fixture
def gateway():
    return EmailGatewayClient(gateway_url=GATEWAY_URL, api_key="test-api-key", hmac_secret=HMAC_SECRET)


def gateway_replies(status=200, **kwargs):
    responses.add(responses.POST, GATEWAY_URL, status=status, **kwargs)


def send_invoice_mail(gateway, **overrides):
    kwargs = {"to": "billing@acme.test", "subject": "Invoice INV-20240001 - $143.00", "html": "<p>Attached</p>"}
    kwargs.update(overrides)
    return gateway.send_email(**kwargs)


class TestConfiguration:
    """Construction fails fast on missing credentials."""

    @pytest.mark.parametrize("missing", ["gateway_url", "api_key", "hmac_secret"])
    def test_empty_credential_rejected(self, missing):
        kwargs = {"gateway_url": GATEWAY_URL, "api_key": "key", "hmac_secret": "secret"}
        kwargs[missing] = ""

        with pytest.raises(ValueError, match=missing):
            EmailGatewayClient(**kwargs)

    def test_default_sender(self, gateway):
        assert gateway.sender == "invoices"


class TestSendEmail:
    """send_email against a mocked gateway."""

    @responses.activate
    def test_returns_message_id(self, gateway):
        gateway_replies(json={"success": True, "message_id": "msg-123"})

        assert send_invoice_mail(gateway) == "msg-123"

    @responses.activate
    def test_body_is_signed(self, gateway):
        """X-Signature is the HMAC of the exact bytes sent."""
        gateway_replies(json={"success": True, "message_id": "msg-123"})

        send_invoice_mail(gateway)

        request = responses.calls[0].request
        body = request.body if isinstance(request.body, bytes) else request.body.encode("utf-8")
        assert request.headers["X-API-Key"] == "test-api-key"
        assert request.headers["X-Signature"] == sign(HMAC_SECRET, body)

    @responses.activate
    def test_payload_fields(self, gateway):
        gateway_replies(json={"success": True, "message_id": "msg-123"})

        send_invoice_mail(gateway)

        payload = json.loads(responses.calls[0].request.body)
        assert payload["email"] == "billing@acme.test"
        assert payload["html"] == "<p>Attached</p>"
        assert payload["sender"] == "invoices"
        assert "attachments" not in payload

    @responses.activate
    def test_pdf_attachment_is_base64(self, gateway):
        gateway_replies(json={"success": True, "message_id": "msg-123"})

        send_invoice_mail(gateway, attachment=b"%PDF-1.4 fake", attachment_name="invoice-INV-20240001.pdf")

        attachment = json.loads(responses.calls[0].request.body)["attachments"][0]
        assert attachment["filename"] == "invoice-INV-20240001.pdf"
        assert attachment["content_type"] == "application/pdf"
        assert base64.b64decode(attachment["content"]) == b"%PDF-1.4 fake"

    @responses.activate
    def test_missing_message_id(self, gateway):
        """An accepted send without a message id can't be reconciled later."""
        gateway_replies(json={"success": True})

        with pytest.raises(EmailGatewayError, match="message_id"):
            send_invoice_mail(gateway)

    @responses.activate
    def test_rejection_reason_surfaces(self, gateway):
        gateway_replies(json={"success": False, "message": "Invalid email"})

        with pytest.raises(EmailGatewayError, match="Invalid email"):
            send_invoice_mail(gateway, to="invalid")

    @responses.activate
    @pytest.mark.parametrize("reply", [
        {"status": 500, "json": {"success": False, "message": "Internal error"}},
        {"status": 200, "body": "not json"},
        {"body": ConnectionError("Network unreachable")},
    ])
    def test_gateway_failures(self, gateway, reply):
        gateway_replies(**reply)

        with pytest.raises(EmailGatewayError):
            send_invoice_mail(gateway)


class TestVerifyWebhook:
    """Delivery-status callbacks."""

    BODY = b'{"type":"email.delivered","data":{"email_id":"msg-1"}}'

    def test_valid_signature(self, gateway):
        gateway.verify_webhook(self.BODY, sign(HMAC_SECRET, self.BODY))

    def test_uppercase_hex_accepted(self, gateway):
        gateway.verify_webhook(self.BODY, sign(HMAC_SECRET, self.BODY).upper())

    def test_tampered_body_rejected(self, gateway):
        signature = sign(HMAC_SECRET, self.BODY)

        with pytest.raises(WebhookSignatureError):
            gateway.verify_webhook(self.BODY.replace(b"delivered", b"bounced"), signature)

    def test_missing_signature_rejected(self, gateway):
        with pytest.raises(WebhookSignatureError, match="Missing"):
            gateway.verify_webhook(self.BODY, None)
