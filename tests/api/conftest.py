"""API test fixtures: the production app wired to in-memory repositories."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from auth.config import AuthConfig
from auth.session import SessionManager
from auth.types import Session
from clients.email_client import EmailGatewayClient
from clients.payment_client import PaymentGatewayClient
from core.services.analytics_service import AnalyticsService
from core.services.client_service import ClientService
from core.services.invoice_email_service import InvoiceEmailService
from core.services.payment_service import PaymentService
from fakes import EMAIL_HMAC_SECRET, STRIPE_WEBHOOK_SECRET
from main import build_app
from utils.timezone import now_utc


# =============================================================================
# GATEWAY FIXTURES
# =============================================================================


@pytest.fixture
def email_gateway():
    """Real client for webhook verification; outbound sends are mocked."""
    gateway = EmailGatewayClient(
        gateway_url="https://gateway.example.com/send",
        api_key="test-api-key",
        hmac_secret=EMAIL_HMAC_SECRET,
    )
    gateway.send_email = Mock(return_value="msg-abc")
    return gateway


@pytest.fixture
def payment_gateway():
    """Real client for webhook verification; checkout creation is mocked."""
    gateway = PaymentGatewayClient(secret_key="sk_test_123", webhook_secret=STRIPE_WEBHOOK_SECRET)
    gateway.create_checkout_session = Mock(
        return_value={"id": "cs_test_1", "url": "https://checkout.example.com/cs_test_1"}
    )
    return gateway


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services(
    invoice_service,
    invoice_repo,
    client_repo,
    audit,
    billing_config,
    email_gateway,
    payment_gateway,
    email_reconciliation,
    payment_reconciliation,
):
    return {
        "client": ClientService(client_repo, audit),
        "invoice": invoice_service,
        "invoice_email": InvoiceEmailService(
            invoice_service, client_repo, email_gateway, email_reconciliation, billing_config
        ),
        "payment": PaymentService(invoice_service, payment_gateway, billing_config),
        "analytics": AnalyticsService(invoice_repo, client_repo),
        "email_gateway": email_gateway,
        "payment_gateway": payment_gateway,
        "email_reconciliation": email_reconciliation,
        "payment_reconciliation": payment_reconciliation,
    }


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_manager(test_user_id):
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(mock_session_manager, services):
    """The production app (middleware, error handlers, every router)."""
    return build_app(services, mock_session_manager, AuthConfig())


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def as_user_b(mock_session_manager, test_user_b_id):
    """Switch the session to the secondary test user."""
    now = now_utc()
    mock_session_manager.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_b_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
