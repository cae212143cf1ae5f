"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from api.deps import get_request_id
from clients.email_client import EmailGatewayError
from clients.payment_client import PaymentGatewayError
from clients.signatures import WebhookSignatureError
from core.exceptions import (
    BillingError,
    ClientHasInvoicesError,
    DuplicateInvoiceNumberError,
    InvalidRequestError,
    InvalidStatusTransitionError,
    InvoiceAlreadyPaidError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# Most specific first; lookup walks this list with isinstance
_BILLING_ERRORS: list[tuple[type[BillingError], int, str]] = [
    (NotFoundError, 404, ErrorCodes.NOT_FOUND),
    (InvalidStatusTransitionError, 400, ErrorCodes.INVALID_STATUS_TRANSITION),
    (InvoiceAlreadyPaidError, 400, ErrorCodes.INVOICE_ALREADY_PAID),
    (ClientHasInvoicesError, 400, ErrorCodes.CLIENT_HAS_INVOICES),
    (DuplicateInvoiceNumberError, 409, ErrorCodes.ALREADY_EXISTS),
    (InvalidRequestError, 400, ErrorCodes.INVALID_REQUEST),
]


def _json_error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, get_request_id(request)).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(BillingError)
    async def billing_error_handler(request: Request, exc: BillingError):
        for error_type, status_code, code in _BILLING_ERRORS:
            if isinstance(exc, error_type):
                return _json_error(request, status_code, code, str(exc))
        return _json_error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _json_error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        return _json_error(request, 400, ErrorCodes.VALIDATION_ERROR, details or "Invalid request")

    @app.exception_handler(WebhookSignatureError)
    async def signature_error_handler(request: Request, exc: WebhookSignatureError):
        logger.warning(f"Rejected webhook on {request.url.path}: {exc}")
        return _json_error(request, 400, ErrorCodes.INVALID_SIGNATURE, "Invalid webhook signature")

    @app.exception_handler(EmailGatewayError)
    async def email_gateway_error_handler(request: Request, exc: EmailGatewayError):
        logger.error(f"Email gateway failure on {request.url.path}: {exc}")
        return _json_error(request, 500, ErrorCodes.EMAIL_SEND_FAILED, "Failed to send email. Please try again.")

    @app.exception_handler(PaymentGatewayError)
    async def payment_gateway_error_handler(request: Request, exc: PaymentGatewayError):
        logger.error(f"Payment gateway failure on {request.url.path}: {exc}")
        return _json_error(
            request, 500, ErrorCodes.PAYMENT_PROVIDER_ERROR, "Failed to create checkout session. Please try again."
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json_error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
