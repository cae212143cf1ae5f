"""Invoice email log persistence.

Logs are append-only; the only mutation is a delivery status update keyed
by the gateway message id.
"""

from uuid import UUID

from clients.postgres_client import PostgresClient
from core.models import EmailDeliveryStatus, EmailLog


class EmailLogRepository:
    """Access to the invoice_email_logs table."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def append(self, log: EmailLog) -> EmailLog:
        row = self.postgres.execute_returning(
            """
            INSERT INTO invoice_email_logs (id, invoice_id, sent_at, message_id, email_type, recipient, status, error)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                log.id, log.invoice_id, log.sent_at, log.message_id,
                log.email_type.value, log.recipient, log.status.value, log.error,
            )
        )[0]
        return EmailLog.model_validate(row)

    def list_for_invoices(self, invoice_ids: list[UUID]) -> dict[UUID, list[EmailLog]]:
        """Logs grouped by invoice id, oldest first within each invoice."""
        if not invoice_ids:
            return {}
        rows = self.postgres.execute(
            """
            SELECT * FROM invoice_email_logs
            WHERE invoice_id = ANY(%s::uuid[])
            ORDER BY sent_at ASC
            """,
            (list(invoice_ids),)
        )
        grouped: dict[UUID, list[EmailLog]] = {invoice_id: [] for invoice_id in invoice_ids}
        for row in rows:
            log = EmailLog.model_validate(row)
            grouped.setdefault(log.invoice_id, []).append(log)
        return grouped

    def find_by_message_id(self, message_id: str) -> EmailLog | None:
        row = self.postgres.execute_single(
            "SELECT * FROM invoice_email_logs WHERE message_id = %s",
            (message_id,)
        )
        return EmailLog.model_validate(row) if row else None

    def update_status(self, log_id: UUID, status: EmailDeliveryStatus, error: str | None = None) -> EmailLog:
        """Set a log's delivery status (and error detail, when given)."""
        row = self.postgres.execute_returning(
            """
            UPDATE invoice_email_logs
            SET status = %s, error = COALESCE(%s, error)
            WHERE id = %s
            RETURNING *
            """,
            (status.value, error, log_id)
        )[0]
        return EmailLog.model_validate(row)
