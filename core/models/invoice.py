"""Invoice domain models.

Money is Decimal end to end. Tax rate is a percentage (10 = 10%).
Amounts are never rounded in storage; rounding happens only at display and
payment boundaries.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, model_validator


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class EmailType(str, Enum):
    """Kind of email sent for an invoice."""

    INVOICE = "invoice"
    REMINDER = "reminder"


class EmailDeliveryStatus(str, Enum):
    """Delivery status of a single sent email."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        """Ordering used to converge out-of-order delivery events."""
        return _DELIVERY_RANK[self]


_DELIVERY_RANK = {
    EmailDeliveryStatus.SENT: 0,
    EmailDeliveryStatus.DELIVERED: 1,
    EmailDeliveryStatus.FAILED: 2,
}


class EmailStatus(str, Enum):
    """Invoice-level summary of the latest email's delivery status."""

    NOT_SENT = "not_sent"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class InvoiceItem(BaseModel):
    """A single billed line. amount is always quantity * rate."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    rate: Decimal = Field(..., gt=0)
    amount: Decimal | None = None

    @model_validator(mode="after")
    def compute_amount(self) -> "InvoiceItem":
        """Derive amount from quantity and rate, ignoring any supplied value."""
        self.amount = self.quantity * self.rate
        return self


def compute_totals(items: list[InvoiceItem], tax_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """
    Compute (subtotal, tax_amount, total) for a list of items.

    Args:
        items: Invoice items (amounts already derived)
        tax_rate: Percentage, e.g. Decimal("10") for 10%

    Returns:
        Tuple of subtotal, tax amount and total
    """
    subtotal = sum((item.quantity * item.rate for item in items), Decimal("0"))
    tax_amount = subtotal * tax_rate / 100
    return subtotal, tax_amount, subtotal + tax_amount


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    client_id: UUID
    due_date: date
    items: list[InvoiceItem] = Field(..., min_length=1)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    notes: str | None = Field(None, max_length=2000)
    terms: str | None = Field(None, max_length=2000)


class InvoiceUpdate(BaseModel):
    """Data that can be updated on an invoice. All fields optional."""

    client_id: UUID | None = None
    due_date: date | None = None
    items: list[InvoiceItem] | None = Field(None, min_length=1)
    tax_rate: Decimal | None = Field(None, ge=0, le=100)
    notes: str | None = Field(None, max_length=2000)
    terms: str | None = Field(None, max_length=2000)
    status: InvoiceStatus | None = None


class EmailLog(BaseModel):
    """One outbound email for an invoice. Append-only apart from status."""

    id: UUID
    invoice_id: UUID
    sent_at: datetime
    message_id: str | None
    email_type: EmailType
    recipient: str
    status: EmailDeliveryStatus
    error: str | None = None

    model_config = {"from_attributes": True}


def summarize_email_status(logs: list[EmailLog]) -> EmailStatus:
    """Latest log's status, or NOT_SENT when nothing was sent."""
    if not logs:
        return EmailStatus.NOT_SENT
    latest = max(logs, key=lambda log: log.sent_at)
    return EmailStatus(latest.status.value)


class Invoice(BaseModel):
    """Full invoice entity as stored, with its email history attached."""

    id: UUID
    user_id: UUID
    client_id: UUID
    invoice_number: str
    status: InvoiceStatus
    issue_date: date
    due_date: date
    items: list[InvoiceItem]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: str | None
    terms: str | None
    stripe_payment_intent_id: str | None
    paid_at: datetime | None
    created_at: datetime
    updated_at: datetime
    email_logs: list[EmailLog] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def email_status(self) -> EmailStatus:
        """Projection of the latest email log's status."""
        return summarize_email_status(self.email_logs)

    @computed_field
    @property
    def last_emailed_at(self) -> datetime | None:
        """When the most recent email went out."""
        if not self.email_logs:
            return None
        return max(log.sent_at for log in self.email_logs)

    @property
    def is_paid(self) -> bool:
        """Whether invoice is paid."""
        return self.status == InvoiceStatus.PAID

    @property
    def total_cents(self) -> int:
        """Total rounded to integer cents for the payment processor."""
        return int((self.total * 100).quantize(Decimal("1")))


class InvoiceEmailSummary(BaseModel):
    """Email history view of a single invoice."""

    email_logs: list[EmailLog]
    last_emailed_at: datetime | None
    email_status: EmailStatus
    client_email: str | None


class SendEmailRequest(BaseModel):
    """Body of a send-email request."""

    email_type: EmailType = EmailType.INVOICE
    custom_message: str | None = Field(None, max_length=2000)
