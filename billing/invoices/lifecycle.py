"""Invoice status lifecycle.

Statuses form a closed set (Pending, Paid, Overdue). Any status may move
to any other, but only through an explicit user action; nothing here
marks invoices overdue automatically when the due date passes.
"""

import logging

from pydantic import BaseModel

from billing.domain.schema import Invoice, InvoiceStatus
from billing.shared.errors import NoOpTransition, ValidationError

logger = logging.getLogger(__name__)

INITIAL_STATUS = InvoiceStatus.PENDING


class StatusChange(BaseModel):
    """Validated request to move an invoice to a new status."""

    invoice_id: str
    from_status: InvoiceStatus
    to_status: InvoiceStatus


def parse_status(value: InvoiceStatus | str) -> InvoiceStatus:
    """Parse a status value ('Paid', InvoiceStatus.PAID, ...).

    Raises:
        ValidationError: If value is not a known status
    """
    if isinstance(value, InvoiceStatus):
        return value
    try:
        return InvoiceStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in InvoiceStatus)
        raise ValidationError(
            f"Unknown invoice status: '{value}'. Allowed statuses: {allowed}", field="status"
        ) from e


def allowed_transitions(status: InvoiceStatus) -> list[InvoiceStatus]:
    """Statuses an invoice currently in ``status`` can be moved to."""
    return [candidate for candidate in InvoiceStatus if candidate is not status]


def request_status_change(invoice: Invoice, new_status: InvoiceStatus | str) -> StatusChange:
    """Validate a user-initiated status update.

    Must be called before issuing the PATCH so redundant writes never hit
    the network.

    Args:
        invoice: Invoice as currently displayed
        new_status: Target status

    Returns:
        StatusChange describing the transition

    Raises:
        NoOpTransition: If new_status equals the current status
        ValidationError: If new_status is not a known status
    """
    target = parse_status(new_status)
    if target is invoice.status:
        raise NoOpTransition(target.value)

    logger.debug(f"Status change {invoice.id}: {invoice.status.value} -> {target.value}")
    return StatusChange(invoice_id=invoice.id, from_status=invoice.status, to_status=target)


def apply_status(invoice: Invoice, status: InvoiceStatus) -> Invoice:
    """Return a copy of invoice with the new status (for in-place cache updates)."""
    return invoice.model_copy(update={"status": status})
