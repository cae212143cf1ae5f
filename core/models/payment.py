"""Payment collection models."""

from uuid import UUID

from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    """Body of a create-checkout request."""

    invoice_id: UUID


class CheckoutSession(BaseModel):
    """Hosted checkout session returned by the payment processor."""

    session_id: str
    url: str
