"""Core domain models."""

from core.models.client import Client, ClientCreate, ClientUpdate
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceItem, InvoiceStatus,
    EmailLog, EmailType, EmailStatus, EmailDeliveryStatus, InvoiceEmailSummary, SendEmailRequest,
    compute_totals, summarize_email_status,
)
from core.models.payment import CheckoutRequest, CheckoutSession
from core.models.analytics import (
    AnalyticsReport, EmailStats, RecentInvoice, EmailActivity, TopClient, MonthlyRevenue,
)

__all__ = [
    # Client
    "Client", "ClientCreate", "ClientUpdate",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceItem", "InvoiceStatus",
    "compute_totals",
    # Email
    "EmailLog", "EmailType", "EmailStatus", "EmailDeliveryStatus", "InvoiceEmailSummary", "SendEmailRequest",
    "summarize_email_status",
    # Payment
    "CheckoutRequest", "CheckoutSession",
    # Analytics
    "AnalyticsReport", "EmailStats", "RecentInvoice", "EmailActivity", "TopClient", "MonthlyRevenue",
]
