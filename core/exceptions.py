"""Typed exceptions for billing domain failures.

All subclass ValueError so callers that only care about "bad input" can keep
catching ValueError. The API layer maps each type to a status code and error
code (see api/errors.py).
"""


class BillingError(ValueError):
    """Base class for billing domain errors."""


class NotFoundError(BillingError):
    """
    Resource does not exist or is not owned by the caller.

    The two cases are deliberately indistinguishable to the caller.
    """


class InvalidRequestError(BillingError):
    """Request is well-formed but violates a business rule."""


class InvalidStatusTransitionError(BillingError):
    """Requested invoice status change is not allowed from the current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change invoice status from '{current}' to '{target}'")


class InvoiceAlreadyPaidError(BillingError):
    """Operation requires an unpaid invoice."""


class ClientHasInvoicesError(BillingError):
    """Client cannot be deleted while invoices still reference it."""


class DuplicateInvoiceNumberError(BillingError):
    """
    Invoice number already issued to this owner.

    Raised by the repository on a unique constraint violation. Invoice
    creation retries with a fresh number before surfacing it.
    """
