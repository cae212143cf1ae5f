"""
Invoice email sending.

Renders the PDF, sends it through the email gateway, and records the
attempt only after the gateway accepted the message. A gateway failure
leaves the invoice exactly as it was.
"""

import logging
from uuid import UUID

from clients.email_client import EmailGatewayClient
from core.config import BillingConfig
from core.exceptions import InvalidRequestError, NotFoundError
from core.handlers.email_reconciliation_handler import EmailReconciliationHandler
from core.models import Client, EmailType, Invoice
from core.rendering.invoice_email import attachment_filename, email_subject, render_invoice_email
from core.rendering.invoice_pdf import render_invoice_pdf
from core.repositories.client_repository import ClientRepository
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


class InvoiceEmailService:
    """Sends invoice and reminder emails with the PDF attached."""

    def __init__(
        self,
        invoice_service: InvoiceService,
        clients: ClientRepository,
        gateway: EmailGatewayClient,
        reconciliation: EmailReconciliationHandler,
        config: BillingConfig,
    ):
        self.invoice_service = invoice_service
        self.clients = clients
        self.gateway = gateway
        self.reconciliation = reconciliation
        self.config = config

    def _client_for(self, owner_id: UUID, invoice: Invoice) -> Client:
        client = self.clients.get(owner_id, invoice.client_id)
        if client is None:
            raise NotFoundError(f"Client {invoice.client_id} not found")
        return client

    def render_pdf(self, owner_id: UUID, invoice_id: UUID) -> tuple[Invoice, bytes]:
        """
        Render one of the owner's invoices.

        Returns:
            The invoice and its PDF bytes
        """
        invoice = self.invoice_service.get(owner_id, invoice_id)
        client = self._client_for(owner_id, invoice)
        pdf = render_invoice_pdf(
            invoice, client, self.config.issuer_email, self.config.issuer_name, self.config.currency
        )
        return invoice, pdf

    def send(
        self,
        owner_id: UUID,
        invoice_id: UUID,
        email_type: EmailType = EmailType.INVOICE,
        custom_message: str | None = None,
    ) -> Invoice:
        """
        Email an invoice (or a reminder) to its client.

        Returns:
            The invoice with the new email log attached

        Raises:
            NotFoundError: If the invoice isn't the owner's
            InvalidRequestError: If the client has no email address
            EmailGatewayError: If the gateway rejects or fails the send
        """
        invoice = self.invoice_service.get(owner_id, invoice_id)
        client = self._client_for(owner_id, invoice)
        if not client.email:
            raise InvalidRequestError("Client email not found")

        pdf = render_invoice_pdf(
            invoice, client, self.config.issuer_email, self.config.issuer_name, self.config.currency
        )

        message_id = self.gateway.send_email(
            to=client.email,
            subject=email_subject(invoice, email_type, self.config.currency),
            html=render_invoice_email(
                invoice, client, email_type, self.config.issuer_name, custom_message, self.config.currency
            ),
            attachment=pdf,
            attachment_name=attachment_filename(invoice),
        )

        logger.info(f"{email_type.value.capitalize()} email for {invoice.invoice_number} accepted ({message_id})")
        return self.reconciliation.record_send_attempt(invoice.id, email_type, client.email, message_id)
