"""
Invoice service: the invoice aggregate's lifecycle.

Totals are always derived from items and tax rate; callers never supply
them. Status changes go through core.invoice_status. All operations are
scoped to the owner passed in.
"""

import logging
from uuid import UUID, uuid4

from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import BillingConfig
from core.exceptions import DuplicateInvoiceNumberError, NotFoundError
from core.invoice_status import transition
from core.models import (
    Invoice, InvoiceCreate, InvoiceEmailSummary, InvoiceStatus, InvoiceUpdate, compute_totals,
)
from core.repositories.client_repository import ClientRepository
from core.repositories.invoice_repository import InvoiceRepository
from core.services.invoice_numbering import InvoiceNumberGenerator
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        invoices: InvoiceRepository,
        clients: ClientRepository,
        numbering: InvoiceNumberGenerator,
        audit: AuditLogger,
        config: BillingConfig,
    ):
        self.invoices = invoices
        self.clients = clients
        self.numbering = numbering
        self.audit = audit
        self.config = config

    def _require_client(self, owner_id: UUID, client_id: UUID) -> None:
        if self.clients.get(owner_id, client_id) is None:
            raise NotFoundError(f"Client {client_id} not found")

    def create(self, owner_id: UUID, data: InvoiceCreate) -> Invoice:
        """
        Create a draft invoice with a freshly allocated number.

        Args:
            owner_id: Owning user
            data: Client, due date, items, tax rate, notes and terms

        Returns:
            Created invoice in DRAFT status

        Raises:
            NotFoundError: If the client isn't the owner's
            DuplicateInvoiceNumberError: If every numbering attempt collided
        """
        self._require_client(owner_id, data.client_id)

        subtotal, tax_amount, total = compute_totals(data.items, data.tax_rate)
        now = now_utc()

        max_attempts = self.config.invoice_number_max_attempts
        for attempt in range(1, max_attempts + 1):
            invoice = Invoice(
                id=uuid4(),
                user_id=owner_id,
                client_id=data.client_id,
                invoice_number=self.numbering.next_number(owner_id, now.year),
                status=InvoiceStatus.DRAFT,
                issue_date=now.date(),
                due_date=data.due_date,
                items=data.items,
                subtotal=subtotal,
                tax_rate=data.tax_rate,
                tax_amount=tax_amount,
                total=total,
                notes=data.notes,
                terms=data.terms,
                stripe_payment_intent_id=None,
                paid_at=None,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self.invoices.insert(invoice)
                break
            except DuplicateInvoiceNumberError:
                logger.warning(
                    f"Invoice number {invoice.invoice_number} already taken, retrying for owner {owner_id} "
                    f"(attempt {attempt}/{max_attempts})"
                )
                if attempt == max_attempts:
                    raise

        self.audit.log_change(
            user_id=owner_id,
            entity_type="invoice",
            entity_id=created.id,
            action=AuditAction.CREATE,
            changes={"created": created.model_dump(mode="json", exclude={"email_logs"})}
        )

        logger.info(f"Invoice {created.invoice_number} created for owner {owner_id}")
        return created

    def get(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        """
        Get one of the owner's invoices.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        invoice = self.invoices.get(owner_id, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def list_for_owner(self, owner_id: UUID) -> list[Invoice]:
        """All of the owner's invoices, newest first."""
        return self.invoices.list_for_owner(owner_id)

    def update(self, owner_id: UUID, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update invoice fields.

        Supplying items or tax_rate recomputes every amount and total.
        A status change must be allowed by the status state machine.

        Raises:
            NotFoundError: If the invoice (or a new client) isn't the owner's
            InvalidStatusTransitionError: If the status change isn't allowed
        """
        current = self.get(owner_id, invoice_id)

        updates = {field: getattr(data, field) for field in data.model_dump(exclude_none=True)}

        if "client_id" in updates and updates["client_id"] != current.client_id:
            self._require_client(owner_id, updates["client_id"])

        if "items" in updates or "tax_rate" in updates:
            items = updates.get("items", current.items)
            tax_rate = updates.get("tax_rate", current.tax_rate)
            subtotal, tax_amount, total = compute_totals(items, tax_rate)
            updates.update(items=items, subtotal=subtotal, tax_amount=tax_amount, total=total)

        if "status" in updates:
            if updates["status"] == current.status:
                del updates["status"]
            else:
                transition(current.status, updates["status"])

        if not updates:
            return current

        updated = self.invoices.update_fields(invoice_id, updates)
        if updated is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        changes = compute_changes(
            current.model_dump(mode="json", exclude={"email_logs"}),
            updated.model_dump(mode="json", exclude={"email_logs"})
        )
        if changes:
            self.audit.log_change(
                user_id=owner_id,
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, owner_id: UUID, invoice_id: UUID) -> None:
        """
        Hard delete an invoice and its email history.

        Raises:
            NotFoundError: If missing or owned by someone else (nothing is deleted)
        """
        current = self.get(owner_id, invoice_id)

        if not self.invoices.delete(owner_id, invoice_id):
            raise NotFoundError(f"Invoice {invoice_id} not found")

        self.audit.log_change(
            user_id=owner_id,
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json", exclude={"email_logs"})}
        )
        logger.info(f"Invoice {current.invoice_number} deleted by owner {owner_id}")

    def email_summary(self, owner_id: UUID, invoice_id: UUID) -> InvoiceEmailSummary:
        """Email history of one invoice, with the client's current address."""
        invoice = self.get(owner_id, invoice_id)
        client = self.clients.get(owner_id, invoice.client_id)
        return InvoiceEmailSummary(
            email_logs=invoice.email_logs,
            last_emailed_at=invoice.last_emailed_at,
            email_status=invoice.email_status,
            client_email=client.email if client else None,
        )

    def history(self, owner_id: UUID, invoice_id: UUID) -> list[dict]:
        """
        Audit trail of one of the owner's invoices, newest first.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        self.get(owner_id, invoice_id)
        return self.audit.get_entity_history(owner_id, "invoice", invoice_id)
