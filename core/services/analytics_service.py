"""
On-demand analytics over one owner's invoices and clients.

Nothing is precomputed or cached; the report is rebuilt from the
repositories on every call.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from core.models import (
    AnalyticsReport, EmailActivity, EmailStats, EmailStatus, Invoice, InvoiceStatus,
    MonthlyRevenue, RecentInvoice, TopClient,
)
from core.repositories.client_repository import ClientRepository
from core.repositories.invoice_repository import InvoiceRepository
from utils.timezone import month_start

RECENT_INVOICES = 5
RECENT_EMAIL_ACTIVITY = 10
TOP_CLIENTS = 5
REVENUE_MONTHS = 6


def is_overdue(invoice: Invoice, today: date) -> bool:
    """Past due and still unpaid, or explicitly marked overdue."""
    if invoice.status == InvoiceStatus.OVERDUE:
        return True
    if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
        return False
    return invoice.due_date < today


def _paid_on(invoice: Invoice) -> date:
    return (invoice.paid_at or invoice.created_at).date()


class AnalyticsService:
    """Builds the analytics report."""

    def __init__(self, invoices: InvoiceRepository, clients: ClientRepository):
        self.invoices = invoices
        self.clients = clients

    def report(self, owner_id: UUID, today: date) -> AnalyticsReport:
        invoices = self.invoices.list_for_owner(owner_id)
        clients = {client.id: client for client in self.clients.list_for_owner(owner_id)}
        paid = [invoice for invoice in invoices if invoice.status == InvoiceStatus.PAID]

        def client_name(client_id: UUID) -> str:
            client = clients.get(client_id)
            return client.name if client else "Unknown Client"

        email_stats = EmailStats()
        activity = []
        for invoice in invoices:
            status = invoice.email_status
            if status == EmailStatus.NOT_SENT:
                email_stats.not_sent += 1
                continue
            email_stats.total_sent += 1
            if status == EmailStatus.DELIVERED:
                email_stats.delivered += 1
            elif status == EmailStatus.FAILED:
                email_stats.failed += 1

            latest = max(invoice.email_logs, key=lambda log: log.sent_at)
            activity.append(EmailActivity(
                invoice_number=invoice.invoice_number,
                client_name=client_name(invoice.client_id),
                email_type=latest.email_type,
                status=latest.status,
                sent_at=latest.sent_at,
            ))
        activity.sort(key=lambda entry: entry.sent_at, reverse=True)

        recent = [
            RecentInvoice(
                id=invoice.id,
                invoice_number=invoice.invoice_number,
                client_name=client_name(invoice.client_id),
                client_email=clients[invoice.client_id].email if invoice.client_id in clients else None,
                total=invoice.total,
                status=invoice.status,
                email_status=invoice.email_status,
                last_emailed_at=invoice.last_emailed_at,
                due_date=invoice.due_date,
            )
            for invoice in invoices[:RECENT_INVOICES]
        ]

        revenue_by_client: dict[UUID, Decimal] = defaultdict(Decimal)
        paid_count_by_client: dict[UUID, int] = defaultdict(int)
        for invoice in paid:
            revenue_by_client[invoice.client_id] += invoice.total
            paid_count_by_client[invoice.client_id] += 1
        ranked = sorted(revenue_by_client.items(), key=lambda pair: pair[1], reverse=True)
        top_clients = [
            TopClient(
                id=client_id,
                name=client_name(client_id),
                revenue=revenue,
                invoice_count=paid_count_by_client[client_id],
            )
            for client_id, revenue in ranked[:TOP_CLIENTS]
        ]

        monthly = []
        for months_back in range(REVENUE_MONTHS - 1, -1, -1):
            start = month_start(today, months_back)
            end = month_start(today, months_back - 1)
            revenue = sum(
                (invoice.total for invoice in paid if start <= _paid_on(invoice) < end),
                Decimal("0"),
            )
            monthly.append(MonthlyRevenue(month=start.strftime("%b %Y"), revenue=revenue))

        return AnalyticsReport(
            total_revenue=sum((invoice.total for invoice in paid), Decimal("0")),
            total_invoices=len(invoices),
            total_clients=len(clients),
            paid_invoices=len(paid),
            pending_invoices=sum(1 for invoice in invoices if invoice.status == InvoiceStatus.SENT),
            overdue_invoices=sum(1 for invoice in invoices if is_overdue(invoice, today)),
            email_stats=email_stats,
            recent_invoices=recent,
            recent_email_activity=activity[:RECENT_EMAIL_ACTIVITY],
            top_clients=top_clients,
            monthly_revenue=monthly,
        )
