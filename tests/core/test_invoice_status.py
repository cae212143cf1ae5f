"""Tests for the invoice status state machine."""

import pytest

from core.exceptions import InvalidStatusTransitionError
from core.invoice_status import can_transition, rollback_failed_payment, transition
from core.models import InvoiceStatus


class TestTransition:
    """Tests for transition / can_transition."""

    @pytest.mark.parametrize("current,target", [
        (InvoiceStatus.DRAFT, InvoiceStatus.SENT),
        (InvoiceStatus.DRAFT, InvoiceStatus.PAID),
        (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED),
        (InvoiceStatus.SENT, InvoiceStatus.OVERDUE),
        (InvoiceStatus.SENT, InvoiceStatus.PAID),
        (InvoiceStatus.OVERDUE, InvoiceStatus.PAID),
        (InvoiceStatus.OVERDUE, InvoiceStatus.SENT),
    ])
    def test_allowed(self, current, target):
        """Forward moves through the lifecycle are allowed."""
        assert can_transition(current, target)
        assert transition(current, target) == target

    @pytest.mark.parametrize("current,target", [
        (InvoiceStatus.PAID, InvoiceStatus.SENT),
        (InvoiceStatus.PAID, InvoiceStatus.DRAFT),
        (InvoiceStatus.CANCELLED, InvoiceStatus.SENT),
        (InvoiceStatus.SENT, InvoiceStatus.DRAFT),
        (InvoiceStatus.DRAFT, InvoiceStatus.OVERDUE),
    ])
    def test_rejected(self, current, target):
        """Leaving a terminal status or going backwards is rejected."""
        assert not can_transition(current, target)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            transition(current, target)
        assert exc_info.value.current == current.value
        assert exc_info.value.target == target.value

    def test_same_status_is_allowed(self):
        """Staying put is never an error, even for terminal statuses."""
        assert transition(InvoiceStatus.PAID, InvoiceStatus.PAID) == InvoiceStatus.PAID


class TestRollbackFailedPayment:
    """Tests for rollback_failed_payment."""

    @pytest.mark.parametrize("current", [InvoiceStatus.PAID, InvoiceStatus.SENT, InvoiceStatus.OVERDUE])
    def test_falls_back_to_sent(self, current):
        """Paid, sent and overdue invoices go back to sent."""
        assert rollback_failed_payment(current) == InvoiceStatus.SENT

    @pytest.mark.parametrize("current", [InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED])
    def test_leaves_draft_and_cancelled(self, current):
        """Draft and cancelled invoices are unchanged."""
        assert rollback_failed_payment(current) == current
