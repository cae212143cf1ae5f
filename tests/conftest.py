"""Shared test fixtures for the invoicing test suite."""

from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

import email_validator
import pytest
from dotenv import load_dotenv

# Fixtures use RFC 2606 `.test` addresses; email-validator rejects that
# special-use domain unless its documented test-environment flag is set.
email_validator.TEST_ENVIRONMENT = True

# Load .env before anything reads env vars (Vault settings for local runs)
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.audit import AuditLogger
from core.config import BillingConfig
from core.models import ClientCreate, InvoiceCreate, InvoiceItem
from fakes import FakeClientRepository, FakeEmailLogRepository, FakeInvoiceRepository, FakeStore


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for owner isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client_repo(store):
    return FakeClientRepository(store)


@pytest.fixture
def email_log_repo(store):
    return FakeEmailLogRepository(store)


@pytest.fixture
def invoice_repo(store, email_log_repo):
    return FakeInvoiceRepository(store, email_log_repo)


@pytest.fixture
def audit():
    """Audit logger that records calls instead of writing rows."""
    return Mock(spec=AuditLogger)


@pytest.fixture
def billing_config():
    return BillingConfig(app_base_url="https://app.example.com")


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service(invoice_repo, client_repo, audit, billing_config):
    from core.services.invoice_numbering import InvoiceNumberGenerator
    from core.services.invoice_service import InvoiceService

    return InvoiceService(invoice_repo, client_repo, InvoiceNumberGenerator(invoice_repo), audit, billing_config)


@pytest.fixture
def email_reconciliation(invoice_repo, email_log_repo, audit):
    from core.handlers.email_reconciliation_handler import EmailReconciliationHandler

    return EmailReconciliationHandler(invoice_repo, email_log_repo, audit)


@pytest.fixture
def payment_reconciliation(invoice_repo, audit, billing_config):
    from core.handlers.payment_reconciliation_handler import PaymentReconciliationHandler

    return PaymentReconciliationHandler(invoice_repo, audit, billing_config)


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def billed_client(client_repo, test_user_id):
    """A client with an email address, owned by the primary test user."""
    return client_repo.insert(test_user_id, ClientCreate(
        name="Acme Corp",
        email="billing@acme.test",
        company="Acme",
    ))


@pytest.fixture
def invoice_data(billed_client):
    """Two items (2 x 50 + 1 x 30) at 10% tax: 130 / 13 / 143."""
    return InvoiceCreate(
        client_id=billed_client.id,
        due_date=date.today() + timedelta(days=30),
        items=[
            InvoiceItem(description="Consulting", quantity=Decimal("2"), rate=Decimal("50")),
            InvoiceItem(description="Setup", quantity=Decimal("1"), rate=Decimal("30")),
        ],
        tax_rate=Decimal("10"),
    )


@pytest.fixture
def draft_invoice(invoice_service, test_user_id, invoice_data):
    """A freshly created draft invoice."""
    return invoice_service.create(test_user_id, invoice_data)
