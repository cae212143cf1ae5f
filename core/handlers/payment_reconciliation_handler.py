"""
Payment reconciliation: applies payment processor events to invoices.

Events can be redelivered and arrive in any order. Every operation is
written so that applying the same event twice leaves the invoice as
applying it once did, and paid_at is set at most once.
"""

import logging
from typing import Any
from uuid import UUID

from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import BillingConfig
from core.invoice_status import rollback_failed_payment
from core.models import Invoice, InvoiceStatus
from core.repositories.invoice_repository import InvoiceRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class PaymentReconciliationHandler:
    """Marks invoices paid (or not) from checkout and payment intent events."""

    def __init__(self, invoices: InvoiceRepository, audit: AuditLogger, config: BillingConfig):
        self.invoices = invoices
        self.audit = audit
        self.config = config

    def _apply(self, invoice: Invoice, updates: dict[str, Any], reason: str) -> Invoice:
        """Persist updates and audit them under the invoice's owner."""
        updated = self.invoices.update_fields(invoice.id, updates)
        if updated is None:
            logger.warning(f"Invoice {invoice.id} disappeared during {reason}")
            return invoice

        changes = compute_changes(
            invoice.model_dump(mode="json", exclude={"email_logs"}),
            updated.model_dump(mode="json", exclude={"email_logs"})
        )
        if changes:
            changes["reason"] = reason
            self.audit.log_change(
                user_id=invoice.user_id,
                entity_type="invoice",
                entity_id=invoice.id,
                action=AuditAction.UPDATE,
                changes=changes,
                actor="stripe"
            )
        logger.info(f"Invoice {invoice.invoice_number}: {reason} -> {updated.status.value}")
        return updated

    def checkout_completed(
        self,
        invoice_id: UUID,
        payment_reference: str | None,
        owner_id: UUID | None = None,
    ) -> Invoice | None:
        """
        Mark the invoice paid after a completed hosted checkout.

        Keeps an existing paid_at. Cancelled invoices and owner mismatches
        are logged and skipped.

        Returns:
            The invoice after reconciliation, or None if it was skipped
        """
        invoice = self.invoices.get_unscoped(invoice_id)
        if invoice is None:
            logger.warning(f"Checkout completed for unknown invoice {invoice_id}")
            return None
        if owner_id is not None and invoice.user_id != owner_id:
            logger.warning(f"Checkout for invoice {invoice_id} names owner {owner_id}, skipping")
            return None
        if invoice.status == InvoiceStatus.CANCELLED:
            logger.warning(f"Checkout completed for cancelled invoice {invoice.invoice_number}, skipping")
            return None

        updates: dict[str, Any] = {}
        if invoice.status != InvoiceStatus.PAID:
            updates["status"] = InvoiceStatus.PAID
        if invoice.paid_at is None:
            updates["paid_at"] = now_utc()
        if payment_reference and invoice.stripe_payment_intent_id != payment_reference:
            updates["stripe_payment_intent_id"] = payment_reference

        if not updates:
            return invoice
        return self._apply(invoice, updates, "checkout completed")

    def payment_succeeded(self, payment_reference: str) -> Invoice | None:
        """Mark the invoice carrying this reference paid. Already paid is a no-op."""
        invoice = self.invoices.find_by_payment_intent(payment_reference)
        if invoice is None:
            logger.info(f"No invoice for payment intent {payment_reference}")
            return None
        if invoice.status == InvoiceStatus.PAID:
            return invoice
        if invoice.status == InvoiceStatus.CANCELLED:
            logger.warning(f"Payment succeeded for cancelled invoice {invoice.invoice_number}, skipping")
            return None

        updates: dict[str, Any] = {"status": InvoiceStatus.PAID}
        if invoice.paid_at is None:
            updates["paid_at"] = now_utc()
        return self._apply(invoice, updates, "payment succeeded")

    def payment_failed(self, payment_reference: str) -> Invoice | None:
        """
        Put the invoice carrying this reference back to sent.

        With payment_failure_reverts_paid disabled, failures for invoices
        that already have paid_at are ignored.
        """
        invoice = self.invoices.find_by_payment_intent(payment_reference)
        if invoice is None:
            logger.info(f"No invoice for payment intent {payment_reference}")
            return None
        if invoice.status == InvoiceStatus.CANCELLED:
            logger.info(f"Payment failed for cancelled invoice {invoice.invoice_number}, ignoring")
            return None
        if invoice.paid_at is not None and not self.config.payment_failure_reverts_paid:
            logger.warning(f"Payment failed for paid invoice {invoice.invoice_number}, keeping paid")
            return invoice

        new_status = rollback_failed_payment(invoice.status)
        if new_status == invoice.status:
            return invoice
        return self._apply(invoice, {"status": new_status}, "payment failed")

    def handle_event(self, event: dict) -> bool:
        """
        Dispatch one payment processor event.

        Returns:
            True if the event was routed to a reconciliation operation
        """
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            metadata = obj.get("metadata") or {}
            if not metadata.get("invoice_id"):
                logger.warning(f"Checkout session {obj.get('id')} has no invoice_id metadata")
                return False
            owner_id = UUID(metadata["user_id"]) if metadata.get("user_id") else None
            self.checkout_completed(UUID(metadata["invoice_id"]), obj.get("payment_intent"), owner_id)
            return True

        if event_type == "payment_intent.succeeded":
            self.payment_succeeded(obj["id"])
            return True

        if event_type == "payment_intent.payment_failed":
            self.payment_failed(obj["id"])
            return True

        logger.info(f"Ignoring payment event type {event_type}")
        return False
