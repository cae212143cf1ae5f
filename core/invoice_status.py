"""
Invoice status state machine.

Every status change goes through here. Paid and cancelled are terminal for
ordinary transitions; the only way out of paid is the payment-failure
rollback, which payment reconciliation requests explicitly.
"""

from core.exceptions import InvalidStatusTransitionError
from core.models import InvoiceStatus

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    """Whether current -> target is allowed. Staying put is always allowed."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def transition(current: InvoiceStatus, target: InvoiceStatus) -> InvoiceStatus:
    """
    Validate a status change.

    Returns:
        The target status

    Raises:
        InvalidStatusTransitionError: If the change is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current.value, target.value)
    return target


def rollback_failed_payment(current: InvoiceStatus) -> InvoiceStatus:
    """
    Status after a payment failure event.

    Paid, sent and overdue invoices fall back to sent. Draft stays draft
    (nothing was ever sent) and cancelled stays cancelled.
    """
    if current in (InvoiceStatus.PAID, InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
        return InvoiceStatus.SENT
    return current
