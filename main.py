"""Application entry point and wiring."""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from api import ROUTER_FACTORIES
from api.base import success_response
from api.deps import get_request_id
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from clients.email_client import EmailGatewayClient
from clients.payment_client import PaymentGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_email_config, get_stripe_config, get_valkey_url
from core.audit import AuditLogger
from core.config import BillingConfig
from core.handlers.email_reconciliation_handler import EmailReconciliationHandler
from core.handlers.payment_reconciliation_handler import PaymentReconciliationHandler
from core.repositories import ClientRepository, EmailLogRepository, InvoiceRepository
from core.services.analytics_service import AnalyticsService
from core.services.client_service import ClientService
from core.services.invoice_email_service import InvoiceEmailService
from core.services.invoice_numbering import InvoiceNumberGenerator
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


def build_services(
    postgres: PostgresClient,
    email_gateway: EmailGatewayClient,
    payment_gateway: PaymentGatewayClient,
    config: BillingConfig,
) -> dict:
    """Wire repositories, services and handlers into the dict the routers take."""
    audit = AuditLogger(postgres)
    email_logs = EmailLogRepository(postgres)
    invoices = InvoiceRepository(postgres, email_logs)
    clients = ClientRepository(postgres)

    invoice_svc = InvoiceService(invoices, clients, InvoiceNumberGenerator(invoices), audit, config)
    email_reconciliation = EmailReconciliationHandler(invoices, email_logs, audit)

    return {
        "client": ClientService(clients, audit),
        "invoice": invoice_svc,
        "invoice_email": InvoiceEmailService(invoice_svc, clients, email_gateway, email_reconciliation, config),
        "payment": PaymentService(invoice_svc, payment_gateway, config),
        "analytics": AnalyticsService(invoices, clients),
        "email_gateway": email_gateway,
        "payment_gateway": payment_gateway,
        "email_reconciliation": email_reconciliation,
        "payment_reconciliation": PaymentReconciliationHandler(invoices, audit, config),
    }


def build_app(services: dict, session_manager: SessionManager, auth_config: AuthConfig, lifespan=None) -> FastAPI:
    """FastAPI app with middleware, error handlers and every router mounted."""
    app = FastAPI(title="Invoice Desk", lifespan=lifespan)

    # Last added runs first: request ids are assigned before auth can reject
    app.add_middleware(AuthMiddleware, session_manager=session_manager, cookie_name=auth_config.session_cookie_name)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_auth_router(session_manager, auth_config), prefix="/auth")
    for create_router in ROUTER_FACTORIES:
        app.include_router(create_router(services), prefix="/api")

    @app.get("/health")
    async def health(request: Request):
        return success_response({"status": "healthy"}, get_request_id(request)).model_dump(mode="json")

    return app


def create_app() -> FastAPI:
    """Production app: secrets from Vault, settings from the environment."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    billing_config = BillingConfig(app_base_url=os.getenv("APP_BASE_URL", BillingConfig().app_base_url))
    auth_config = AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    email_config = get_email_config()
    stripe_config = get_stripe_config()

    services = build_services(
        postgres,
        EmailGatewayClient(email_config["gateway_url"], email_config["api_key"], email_config["hmac_secret"]),
        PaymentGatewayClient(
            stripe_config["secret_key"],
            stripe_config["webhook_secret"],
            tolerance_seconds=billing_config.webhook_tolerance_seconds,
        ),
        billing_config,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Invoice Desk started")
        yield
        PostgresClient.close_all_pools()
        valkey.close()
        logger.info("Invoice Desk stopped")

    return build_app(services, SessionManager(valkey, auth_config), auth_config, lifespan=lifespan)


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
