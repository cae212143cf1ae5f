"""Read-only analytics report models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from core.models.invoice import EmailDeliveryStatus, EmailStatus, EmailType, InvoiceStatus


class EmailStats(BaseModel):
    total_sent: int = 0
    delivered: int = 0
    failed: int = 0
    not_sent: int = 0


class RecentInvoice(BaseModel):
    id: UUID
    invoice_number: str
    client_name: str
    client_email: str | None
    total: Decimal
    status: InvoiceStatus
    email_status: EmailStatus
    last_emailed_at: datetime | None
    due_date: date


class EmailActivity(BaseModel):
    invoice_number: str
    client_name: str
    email_type: EmailType
    status: EmailDeliveryStatus
    sent_at: datetime


class TopClient(BaseModel):
    id: UUID
    name: str
    revenue: Decimal
    invoice_count: int


class MonthlyRevenue(BaseModel):
    month: str  # "Jan 2024"
    revenue: Decimal


class AnalyticsReport(BaseModel):
    """Aggregate figures for one owner, computed on demand."""

    total_revenue: Decimal
    total_invoices: int
    total_clients: int
    paid_invoices: int
    pending_invoices: int
    overdue_invoices: int
    email_stats: EmailStats
    recent_invoices: list[RecentInvoice]
    recent_email_activity: list[EmailActivity]
    top_clients: list[TopClient]
    monthly_revenue: list[MonthlyRevenue]
