"""Billing configuration."""

from pydantic import BaseModel, Field


class BillingConfig(BaseModel):
    """
    Invoicing and payment settings.

    Defaults suit local development; main.py overrides app_base_url from
    the APP_BASE_URL environment variable.
    """

    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Frontend base URL for checkout success/cancel redirects",
    )
    currency: str = Field(
        default="usd",
        description="ISO currency code sent to the payment processor",
        min_length=3,
        max_length=3,
    )
    invoice_number_max_attempts: int = Field(
        default=3,
        description="How many numbers to try when a generated invoice number collides",
        ge=1,
        le=10,
    )
    payment_failure_reverts_paid: bool = Field(
        default=True,
        description="Whether a payment failure event moves a paid invoice back to sent",
    )
    webhook_tolerance_seconds: int = Field(
        default=300,
        description="Max age of a signed payment webhook",
        ge=30,
        le=3600,
    )
    issuer_name: str = Field(
        default="Invoice Desk",
        description="Name printed on PDFs and in email signatures",
    )
    issuer_email: str | None = Field(
        default=None,
        description="Contact address printed in the PDF From block",
    )
