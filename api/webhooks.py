"""
POST /api/webhooks/{provider}: inbound provider events.

These routes are public: the provider's signature over the raw body is
the only authentication. Verification happens before anything is parsed
or applied. Once verified, each event in the payload is handled in
isolation and the provider always gets a 200 so it stops retrying.
"""

import json
import logging
from typing import Callable

from fastapi import APIRouter, Request

from api.base import success_response
from api.deps import get_request_id
from core.exceptions import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)


def create_webhooks_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["webhooks"])

    payment_gateway = services["payment_gateway"]
    email_gateway = services["email_gateway"]
    payment_handler = services["payment_reconciliation"]
    email_handler = services["email_reconciliation"]

    def parse_stripe(request: Request, body: bytes) -> list:
        return [payment_gateway.construct_event(body, request.headers.get("Stripe-Signature"))]

    def parse_email(request: Request, body: bytes) -> list:
        email_gateway.verify_webhook(body, request.headers.get("X-Signature"))
        payload = json.loads(body)
        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return payload
        raise InvalidRequestError("Webhook body must be an event object or a list of events")

    providers: dict[str, tuple[Callable[[Request, bytes], list], Callable[[dict], bool]]] = {
        "stripe": (parse_stripe, payment_handler.handle_event),
        "email": (parse_email, email_handler.handle_event),
    }

    @router.post("/webhooks/{provider}")
    async def receive_webhook(request: Request, provider: str):
        if provider not in providers:
            raise NotFoundError(f"Unknown webhook provider '{provider}'")

        parse, handle = providers[provider]
        body = await request.body()
        events = parse(request, body)

        processed = 0
        failed = 0
        for event in events:
            try:
                if handle(event):
                    processed += 1
            except Exception:
                failed += 1
                event_type = event.get("type") if isinstance(event, dict) else None
                logger.exception(f"Failed to process {provider} webhook event {event_type}")

        logger.info(f"{provider} webhook: {len(events)} received, {processed} processed, {failed} failed")
        return success_response(
            {"received": True, "processed": processed, "failed": failed}, get_request_id(request)
        ).model_dump(mode="json")

    return router
