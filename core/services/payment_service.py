"""
Online payment collection through hosted checkout.

Only creates the checkout session. The invoice is marked paid later by
payment reconciliation when the processor's webhook arrives.
"""

import logging
from uuid import UUID

from clients.payment_client import PaymentGatewayClient
from core.config import BillingConfig
from core.exceptions import InvalidRequestError, InvoiceAlreadyPaidError
from core.models import CheckoutSession, InvoiceStatus
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


class PaymentService:
    """Creates checkout sessions for unpaid invoices."""

    def __init__(self, invoice_service: InvoiceService, gateway: PaymentGatewayClient, config: BillingConfig):
        self.invoice_service = invoice_service
        self.gateway = gateway
        self.config = config

    def create_checkout(self, owner_id: UUID, invoice_id: UUID) -> CheckoutSession:
        """
        Start a hosted checkout for the invoice total.

        Raises:
            NotFoundError: If the invoice isn't the owner's
            InvoiceAlreadyPaidError: If the invoice is paid
            InvalidRequestError: If the invoice is cancelled or has nothing to pay
            PaymentGatewayError: If the processor call fails
        """
        invoice = self.invoice_service.get(owner_id, invoice_id)

        if invoice.status == InvoiceStatus.PAID:
            raise InvoiceAlreadyPaidError("Invoice is already paid")
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidRequestError("Cannot collect payment for a cancelled invoice")
        if invoice.total_cents <= 0:
            raise InvalidRequestError("Invoice total must be positive")

        base_url = self.config.app_base_url.rstrip("/")
        session = self.gateway.create_checkout_session(
            amount_cents=invoice.total_cents,
            currency=self.config.currency,
            product_name=f"Invoice {invoice.invoice_number}",
            description=f"Payment for invoice {invoice.invoice_number}",
            success_url=f"{base_url}/invoices/{invoice.id}?success=true",
            cancel_url=f"{base_url}/invoices/{invoice.id}?canceled=true",
            metadata={"invoice_id": str(invoice.id), "user_id": str(owner_id)},
        )

        logger.info(f"Checkout session {session['id']} created for {invoice.invoice_number}")
        return CheckoutSession(session_id=session["id"], url=session["url"])
