"""HTML bodies and subjects for invoice and reminder emails."""

import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.models import Client, EmailType, Invoice
from core.rendering.invoice_pdf import format_money

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# One template per EmailType value, each extending email_base.html
jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(),
)


def email_subject(invoice: Invoice, email_type: EmailType, currency: str = "usd") -> str:
    if email_type == EmailType.REMINDER:
        return f"Payment Reminder - Invoice {invoice.invoice_number}"
    return f"Invoice {invoice.invoice_number} - {format_money(invoice.total, currency)}"


def render_invoice_email(
    invoice: Invoice,
    client: Client,
    email_type: EmailType,
    issuer_name: str,
    custom_message: str | None = None,
    currency: str = "usd",
) -> str:
    """HTML body for an invoice or reminder email."""
    context = {
        "subject": email_subject(invoice, email_type, currency),
        "client_name": client.name,
        "invoice_number": invoice.invoice_number,
        "amount": format_money(invoice.total, currency),
        "due_date": invoice.due_date.strftime("%B %d, %Y"),
        "custom_message": custom_message,
        "issuer_name": issuer_name,
    }
    return jinja_env.get_template(f"{email_type.value}.html").render(context)


def attachment_filename(invoice: Invoice) -> str:
    return f"invoice-{invoice.invoice_number}.pdf"
