"""
Email reconciliation: keeps invoice email logs in step with the gateway.

Send attempts are recorded once the gateway has accepted a message. Delivery
events arrive later, possibly duplicated or out of order, and are folded
into the matching log entry by message id. Statuses only move forward
(sent < delivered < failed), so any arrival order converges to the same
result.
"""

import logging
from uuid import UUID, uuid4

from core.audit import AuditLogger, AuditAction
from core.exceptions import NotFoundError
from core.invoice_status import transition
from core.models import EmailDeliveryStatus, EmailLog, EmailType, Invoice, InvoiceStatus
from core.repositories.email_log_repository import EmailLogRepository
from core.repositories.invoice_repository import InvoiceRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

EVENT_STATUS_MAP = {
    "email.sent": EmailDeliveryStatus.SENT,
    "email.delivered": EmailDeliveryStatus.DELIVERED,
    "email.bounced": EmailDeliveryStatus.FAILED,
    "email.complained": EmailDeliveryStatus.FAILED,
    "email.failed": EmailDeliveryStatus.FAILED,
}


class EmailReconciliationHandler:
    """Records sends and applies delivery events to email logs."""

    def __init__(self, invoices: InvoiceRepository, email_logs: EmailLogRepository, audit: AuditLogger):
        self.invoices = invoices
        self.email_logs = email_logs
        self.audit = audit

    def record_send_attempt(
        self,
        invoice_id: UUID,
        email_type: EmailType,
        recipient: str,
        message_id: str,
    ) -> Invoice:
        """
        Append a 'sent' log entry for an accepted message.

        Sending the invoice email itself moves a draft invoice to sent.
        Reminders never change status.

        Returns:
            The invoice with the new log attached

        Raises:
            NotFoundError: If the invoice no longer exists
        """
        invoice = self.invoices.get_unscoped(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        self.email_logs.append(EmailLog(
            id=uuid4(),
            invoice_id=invoice_id,
            sent_at=now_utc(),
            message_id=message_id,
            email_type=email_type,
            recipient=recipient,
            status=EmailDeliveryStatus.SENT,
        ))

        if invoice.status == InvoiceStatus.DRAFT and email_type == EmailType.INVOICE:
            new_status = transition(invoice.status, InvoiceStatus.SENT)
            self.invoices.update_fields(invoice_id, {"status": new_status})
            self.audit.log_change(
                user_id=invoice.user_id,
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": invoice.status.value, "new": new_status.value}}
            )

        return self.invoices.get_unscoped(invoice_id)

    def apply_delivery_event(
        self,
        message_id: str,
        new_status: EmailDeliveryStatus,
        error: str | None = None,
    ) -> bool:
        """
        Fold a delivery status into the log entry for message_id.

        Unknown message ids are dropped. A status ranked at or below the
        current one is ignored, which makes redelivery a no-op.

        Returns:
            True if the log entry changed
        """
        log = self.email_logs.find_by_message_id(message_id)
        if log is None:
            logger.info(f"Dropping delivery event for unknown message {message_id}")
            return False

        if new_status.rank <= log.status.rank:
            logger.debug(
                f"Ignoring {new_status.value} for message {message_id}: already {log.status.value}"
            )
            return False

        self.email_logs.update_status(log.id, new_status, error)
        logger.info(f"Email {message_id} for invoice {log.invoice_id}: {log.status.value} -> {new_status.value}")
        return True

    def handle_event(self, event: dict) -> bool:
        """
        Apply one gateway webhook event.

        Args:
            event: {"type": "email.delivered", "data": {"email_id": ...}}

        Returns:
            True if a log entry changed
        """
        event_type = event.get("type")
        new_status = EVENT_STATUS_MAP.get(event_type)
        if new_status is None:
            logger.info(f"Ignoring email event type {event_type}")
            return False

        data = event.get("data") or {}
        message_id = data.get("message_id") or data.get("email_id")
        if not message_id:
            logger.warning(f"Email event {event_type} has no message id")
            return False

        error = None
        if new_status == EmailDeliveryStatus.FAILED:
            error = data.get("reason") or event_type

        return self.apply_delivery_event(message_id, new_status, error)
