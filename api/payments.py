"""Payment routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from api.base import success_response
from api.deps import get_owner_id, get_request_id
from core.models import CheckoutRequest


def create_payments_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["payments"])

    payment_svc = services["payment"]

    @router.post("/payments/create-checkout")
    async def create_checkout(request: Request, body: CheckoutRequest, owner_id: UUID = Depends(get_owner_id)):
        session = payment_svc.create_checkout(owner_id, body.invoice_id)
        return success_response(session.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    return router
