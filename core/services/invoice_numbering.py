"""
Invoice number allocation.

Format: INV-YYYYSSSS, where YYYY is the issue year and SSSS a 4-digit
sequence. The sequence is a single counter per owner across all years:
INV-20240007 is followed by INV-20250008, not INV-20250001.
Numbers are unique across owners too: a candidate another owner already
holds is skipped, so each owner's numbers still only increase.
"""

import re
from uuid import UUID

from core.exceptions import InvalidRequestError
from core.repositories.invoice_repository import InvoiceRepository

INVOICE_NUMBER_RE = re.compile(r"^INV-\d{4}(\d{4})$")
MAX_SEQUENCE = 9999


def parse_sequence(invoice_number: str) -> int | None:
    """Sequence suffix of a well-formed invoice number, None if malformed."""
    match = INVOICE_NUMBER_RE.match(invoice_number)
    return int(match.group(1)) if match else None


def format_invoice_number(year: int, sequence: int) -> str:
    """
    Build an invoice number.

    Raises:
        InvalidRequestError: If the sequence doesn't fit in four digits
    """
    if sequence < 1 or sequence > MAX_SEQUENCE:
        raise InvalidRequestError(f"Invoice sequence {sequence} out of range (1-{MAX_SEQUENCE})")
    return f"INV-{year}{sequence:04d}"


class InvoiceNumberGenerator:
    """Computes the next invoice number for an owner."""

    def __init__(self, invoices: InvoiceRepository):
        self.invoices = invoices

    def next_number(self, owner_id: UUID, year: int) -> str:
        """
        Lowest free number past the owner's highest sequence, in the given year.

        Not atomic on its own: two concurrent callers can get the same
        number. The unique constraint on invoice_number catches that and
        invoice creation retries.
        """
        latest = self.invoices.latest_invoice_number(owner_id)
        sequence = ((parse_sequence(latest) if latest else None) or 0) + 1

        taken = self.invoices.numbers_in_use(year, sequence)
        while format_invoice_number(year, sequence) in taken:
            sequence += 1
        return format_invoice_number(year, sequence)
