"""PostgreSQL repositories. All SQL lives here; every owner-scoped query filters on user_id."""

from core.repositories.client_repository import ClientRepository
from core.repositories.email_log_repository import EmailLogRepository
from core.repositories.invoice_repository import InvoiceRepository

__all__ = ["ClientRepository", "EmailLogRepository", "InvoiceRepository"]
