"""
Invoice persistence.

Items are stored as a JSONB array. Email logs live in their own table and
are attached to every invoice this repository returns.
"""

import logging
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient, UniqueViolation
from core.exceptions import DuplicateInvoiceNumberError
from core.models import Invoice
from core.repositories.email_log_repository import EmailLogRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Valid columns that can be updated
_UPDATABLE_COLUMNS = {
    "client_id", "status", "due_date", "items", "subtotal", "tax_rate",
    "tax_amount", "total", "notes", "terms", "paid_at", "stripe_payment_intent_id",
}

_INVOICE_NUMBER_PATTERN = r"^INV-[0-9]{4}[0-9]{4}$"


def _column_value(field: str, value: Any) -> Any:
    """Adapt model values to what psycopg2 expects for each column."""
    if field == "items":
        return Json([item.model_dump(mode="json") for item in value])
    if field == "status":
        return value.value
    return value


class InvoiceRepository:
    """Access to the invoices table."""

    def __init__(self, postgres: PostgresClient, email_logs: EmailLogRepository):
        self.postgres = postgres
        self.email_logs = email_logs

    def _hydrate(self, rows: list[dict[str, Any]]) -> list[Invoice]:
        """Build Invoice models from rows, attaching email logs in one query."""
        if not rows:
            return []
        logs = self.email_logs.list_for_invoices([row["id"] for row in rows])
        return [
            Invoice.model_validate({**row, "email_logs": logs.get(row["id"], [])})
            for row in rows
        ]

    def _one(self, row: dict[str, Any] | None) -> Invoice | None:
        return self._hydrate([row])[0] if row else None

    def insert(self, invoice: Invoice) -> Invoice:
        """
        Insert a new invoice.

        Raises:
            DuplicateInvoiceNumberError: If any owner already holds this number
        """
        try:
            row = self.postgres.execute_returning(
                """
                INSERT INTO invoices (
                    id, user_id, client_id, invoice_number, status,
                    issue_date, due_date, items, subtotal, tax_rate,
                    tax_amount, total, notes, terms,
                    stripe_payment_intent_id, paid_at, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    invoice.id, invoice.user_id, invoice.client_id, invoice.invoice_number,
                    invoice.status.value,
                    invoice.issue_date, invoice.due_date, _column_value("items", invoice.items),
                    invoice.subtotal, invoice.tax_rate,
                    invoice.tax_amount, invoice.total, invoice.notes, invoice.terms,
                    invoice.stripe_payment_intent_id, invoice.paid_at,
                    invoice.created_at, invoice.updated_at,
                )
            )[0]
        except UniqueViolation:
            raise DuplicateInvoiceNumberError(
                f"Invoice number {invoice.invoice_number} already exists"
            )
        return self._one(row)

    def get(self, owner_id: UUID, invoice_id: UUID) -> Invoice | None:
        """Invoice by id, or None if missing or owned by someone else."""
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND user_id = %s",
            (invoice_id, owner_id)
        )
        return self._one(row)

    def get_unscoped(self, invoice_id: UUID) -> Invoice | None:
        """Invoice by id regardless of owner. Only for signed webhook reconciliation."""
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )
        return self._one(row)

    def find_by_payment_intent(self, payment_intent_id: str) -> Invoice | None:
        """Invoice carrying this payment reference, if any."""
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE stripe_payment_intent_id = %s",
            (payment_intent_id,)
        )
        return self._one(row)

    def list_for_owner(self, owner_id: UUID) -> list[Invoice]:
        """All of the owner's invoices, newest first."""
        rows = self.postgres.execute(
            "SELECT * FROM invoices WHERE user_id = %s ORDER BY created_at DESC",
            (owner_id,)
        )
        return self._hydrate(rows)

    def update_fields(self, invoice_id: UUID, fields: dict[str, Any]) -> Invoice | None:
        """
        Update the given columns of one invoice.

        Callers resolve ownership first (get() with the owner id, or a
        signed webhook lookup).

        Returns:
            Updated invoice, or None if it no longer exists
        """
        for field in fields:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on invoice {invoice_id}")
        valid = {k: v for k, v in fields.items() if k in _UPDATABLE_COLUMNS}

        set_parts = [f"{field} = %s" for field in valid]
        params: list[Any] = [_column_value(field, value) for field, value in valid.items()]
        set_parts.append("updated_at = %s")
        params.extend([now_utc(), invoice_id])

        row = self.postgres.execute_single(
            f"""
            UPDATE invoices
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )
        return self._one(row)

    def delete(self, owner_id: UUID, invoice_id: UUID) -> bool:
        """Hard delete; email logs cascade. True if a row was removed."""
        rows = self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s AND user_id = %s RETURNING id",
            (invoice_id, owner_id)
        )
        return bool(rows)

    def latest_invoice_number(self, owner_id: UUID) -> str | None:
        """
        The owner's well-formed invoice number with the highest sequence suffix.

        Malformed numbers are ignored. The year prefix plays no part in the
        ordering; the sequence counter is global per owner.
        """
        return self.postgres.execute_scalar(
            """
            SELECT invoice_number FROM invoices
            WHERE user_id = %s AND invoice_number ~ %s
            ORDER BY RIGHT(invoice_number, 4) DESC
            LIMIT 1
            """,
            (owner_id, _INVOICE_NUMBER_PATTERN)
        )

    def numbers_in_use(self, year: int, from_sequence: int) -> set[str]:
        """Well-formed numbers of any owner in this year with sequence >= from_sequence."""
        rows = self.postgres.execute(
            """
            SELECT invoice_number FROM invoices
            WHERE invoice_number ~ %s
              AND LEFT(invoice_number, 8) = %s
              AND RIGHT(invoice_number, 4)::int >= %s
            """,
            (_INVOICE_NUMBER_PATTERN, f"INV-{year}", from_sequence)
        )
        return {row["invoice_number"] for row in rows}
