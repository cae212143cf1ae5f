"""HTTP layer: response envelope, error mapping and the billing routers."""

from api.base import APIResponse, ErrorCodes, error_response, success_response
from api.analytics import create_analytics_router
from api.clients import create_clients_router
from api.invoices import create_invoices_router
from api.payments import create_payments_router
from api.webhooks import create_webhooks_router

# Mounted under /api by main.build_app
ROUTER_FACTORIES = (
    create_invoices_router,
    create_clients_router,
    create_payments_router,
    create_analytics_router,
    create_webhooks_router,
)
