"""Tests for POST /api/webhooks/{provider}."""

import json
import time

import pytest

from clients.signatures import sign
from fakes import EMAIL_HMAC_SECRET, STRIPE_WEBHOOK_SECRET


def stripe_headers(body: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: int | None = None) -> dict:
    t = str(int(time.time()) if timestamp is None else timestamp)
    signature = sign(secret, t.encode() + b"." + body)
    return {"Stripe-Signature": f"t={t},v1={signature}", "Content-Type": "application/json"}


def email_headers(body: bytes, secret: str = EMAIL_HMAC_SECRET) -> dict:
    return {"X-Signature": sign(secret, body), "Content-Type": "application/json"}


def checkout_completed(invoice, payment_intent="pi_123") -> bytes:
    return json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "payment_intent": payment_intent,
            "metadata": {"invoice_id": str(invoice.id), "user_id": str(invoice.user_id)},
        }},
    }).encode()


@pytest.fixture
def sent_invoice(client, draft_invoice, invoice_repo):
    """Draft sent through the API, so an email log with message id msg-abc exists."""
    client.post(f"/api/invoices/{draft_invoice.id}/send-email")
    return invoice_repo.get_unscoped(draft_invoice.id)


class TestStripeWebhook:

    def test_checkout_completed_marks_paid(self, unauthed_client, sent_invoice, invoice_repo):
        """Public route: the signature is the only credential."""
        body = checkout_completed(sent_invoice)

        response = unauthed_client.post("/api/webhooks/stripe", content=body, headers=stripe_headers(body))

        assert response.status_code == 200
        assert response.json()["data"] == {"received": True, "processed": 1, "failed": 0}
        invoice = invoice_repo.get_unscoped(sent_invoice.id)
        assert invoice.status.value == "paid"
        assert invoice.paid_at is not None
        assert invoice.stripe_payment_intent_id == "pi_123"

    def test_payment_failed_reverts_to_sent(self, unauthed_client, sent_invoice, invoice_repo):
        body = checkout_completed(sent_invoice)
        unauthed_client.post("/api/webhooks/stripe", content=body, headers=stripe_headers(body))

        failed = json.dumps({
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_123"}},
        }).encode()
        response = unauthed_client.post("/api/webhooks/stripe", content=failed, headers=stripe_headers(failed))

        assert response.status_code == 200
        assert invoice_repo.get_unscoped(sent_invoice.id).status.value == "sent"

    def test_invalid_signature_rejected(self, unauthed_client, sent_invoice, invoice_repo):
        """Wrong secret is 400 INVALID_SIGNATURE and nothing changes."""
        body = checkout_completed(sent_invoice)

        response = unauthed_client.post(
            "/api/webhooks/stripe", content=body, headers=stripe_headers(body, secret="whsec_wrong")
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        assert invoice_repo.get_unscoped(sent_invoice.id).status.value == "sent"

    def test_stale_signature_rejected(self, unauthed_client, sent_invoice):
        body = checkout_completed(sent_invoice)
        headers = stripe_headers(body, timestamp=int(time.time()) - 3600)

        response = unauthed_client.post("/api/webhooks/stripe", content=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_missing_signature_rejected(self, unauthed_client, sent_invoice):
        response = unauthed_client.post("/api/webhooks/stripe", content=checkout_completed(sent_invoice))

        assert response.status_code == 400

    def test_unhandled_event_type(self, unauthed_client):
        """Unknown event types are acknowledged but not processed."""
        body = json.dumps({"type": "customer.created", "data": {"object": {}}}).encode()

        response = unauthed_client.post("/api/webhooks/stripe", content=body, headers=stripe_headers(body))

        assert response.status_code == 200
        assert response.json()["data"]["processed"] == 0


class TestEmailWebhook:

    def test_delivered_updates_log(self, unauthed_client, sent_invoice, invoice_repo):
        body = json.dumps({"type": "email.delivered", "data": {"email_id": "msg-abc"}}).encode()

        response = unauthed_client.post("/api/webhooks/email", content=body, headers=email_headers(body))

        assert response.status_code == 200
        assert response.json()["data"]["processed"] == 1
        assert invoice_repo.get_unscoped(sent_invoice.id).email_status.value == "delivered"

    def test_batch_isolates_failures(self, unauthed_client, sent_invoice, invoice_repo):
        """A malformed event doesn't stop the rest of the batch."""
        body = json.dumps([
            {"type": "email.delivered", "data": "not-an-object"},
            {"type": "email.bounced", "data": {"email_id": "msg-abc", "reason": "mailbox full"}},
        ]).encode()

        response = unauthed_client.post("/api/webhooks/email", content=body, headers=email_headers(body))

        assert response.status_code == 200
        assert response.json()["data"] == {"received": True, "processed": 1, "failed": 1}
        invoice = invoice_repo.get_unscoped(sent_invoice.id)
        assert invoice.email_status.value == "failed"
        assert invoice.email_logs[0].error == "mailbox full"

    def test_unknown_message_id(self, unauthed_client, sent_invoice):
        body = json.dumps({"type": "email.delivered", "data": {"email_id": "msg-unknown"}}).encode()

        response = unauthed_client.post("/api/webhooks/email", content=body, headers=email_headers(body))

        assert response.status_code == 200
        assert response.json()["data"]["processed"] == 0

    def test_invalid_signature_rejected(self, unauthed_client, sent_invoice, invoice_repo):
        body = json.dumps({"type": "email.delivered", "data": {"email_id": "msg-abc"}}).encode()

        response = unauthed_client.post(
            "/api/webhooks/email", content=body, headers=email_headers(body, secret="wrong")
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        assert invoice_repo.get_unscoped(sent_invoice.id).email_status.value == "sent"


class TestWebhookRouting:

    def test_unknown_provider(self, unauthed_client):
        response = unauthed_client.post("/api/webhooks/paypal", content=b"{}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestHealth:

    def test_health_is_public(self, unauthed_client):
        response = unauthed_client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "healthy"}
