"""Client-side validation of drafts before submission.

Validation failures raise billing.shared.errors.ValidationError (or a
subclass) and always happen before a request is issued.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from billing.domain.schema import (
    ClientDraft,
    ClientPayload,
    Invoice,
    InvoiceDraft,
    InvoicePatch,
    InvoicePayload,
    LineItem,
)
from billing.invoices.totals import ZERO, compute_total, item_field, to_decimal
from billing.shared.errors import EmptyInvoice, NegativeTotal, ValidationError

logger = logging.getLogger(__name__)


def _first_error(error: PydanticValidationError) -> ValidationError:
    """Translate the first Pydantic error into a user-facing ValidationError."""
    details = error.errors()[0]
    field = ".".join(str(part) for part in details.get("loc", ())) or None
    return ValidationError(f"Invalid {field or 'value'}: {details.get('msg')}", field=field)


def validate_client_draft(draft: ClientDraft) -> ClientPayload:
    """Validate a client form.

    Requires a non-empty name and a syntactically valid email.

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    if not (draft.name or "").strip():
        raise ValidationError("Please enter a client name", field="name")
    if not (draft.email or "").strip():
        raise ValidationError("Please enter a client email", field="email")

    try:
        return ClientPayload(
            name=draft.name,
            email=draft.email.strip(),
            phone=draft.phone or "",
            address=draft.address or "",
        )
    except PydanticValidationError as e:
        raise _first_error(e) from e


def _to_line_item(raw: Any) -> LineItem | None:
    """Return a LineItem if raw is billable, otherwise None."""
    name = str(item_field(raw, "name") or "").strip()
    quantity = to_decimal(item_field(raw, "quantity"))
    price = to_decimal(item_field(raw, "price"))

    if not name:
        return None
    if quantity <= 0 or quantity != quantity.to_integral_value():
        return None
    if price < 0:
        return None
    return LineItem(name=name, quantity=int(quantity), price=price)


def billable_items(items: Iterable[Any] | None) -> list[LineItem]:
    """Keep only line items with a name, positive integral quantity and non-negative price.

    Rows failing the filter (including blank default rows) are dropped
    silently, preserving the order of the rest.
    """
    kept: list[LineItem] = []
    for raw in items or ():
        item = _to_line_item(raw)
        if item is None:
            logger.debug(f"Dropping non-billable line item: {raw!r}")
            continue
        kept.append(item)
    return kept


def _non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value)
    if amount < 0:
        raise ValidationError(f"{field.capitalize()} cannot be negative", field=field)
    return amount


def _check_total(items: list[LineItem], tax: Decimal, discount: Decimal) -> None:
    if compute_total(items, tax, discount) < ZERO:
        raise NegativeTotal()


def validate_invoice_draft(draft: InvoiceDraft) -> InvoicePayload:
    """Validate a new-invoice form.

    Args:
        draft: Form state

    Returns:
        InvoicePayload ready to be POSTed (no total is included)

    Raises:
        ValidationError: Missing client or due date, negative tax/discount
        EmptyInvoice: No billable line item remains after filtering
        NegativeTotal: Discount larger than subtotal plus tax
    """
    if not (draft.client_id or "").strip():
        raise ValidationError("Please select a client", field="client_id")
    if not draft.due_date or (isinstance(draft.due_date, str) and not draft.due_date.strip()):
        raise ValidationError("Please select a due date", field="due_date")

    items = billable_items(draft.items)
    if not items:
        raise EmptyInvoice()

    tax = _non_negative(draft.tax, "tax")
    discount = _non_negative(draft.discount, "discount")
    _check_total(items, tax, discount)

    try:
        return InvoicePayload(
            client_id=draft.client_id.strip(),
            items=items,
            tax=tax,
            discount=discount,
            due_date=_date_only(draft.due_date, "due_date"),
            invoice_date=_date_only(draft.invoice_date, "invoice_date"),
            notes=draft.notes or "",
        )
    except PydanticValidationError as e:
        raise _first_error(e) from e


def validate_invoice_patch(patch: InvoicePatch, current: Invoice | None = None) -> dict[str, Any]:
    """Validate an edit-invoice form and build the PUT body.

    Only fields present on the patch are sent. When ``current`` is given
    the negative-total check merges the patch over it.

    Returns:
        JSON-ready body in wire format

    Raises:
        EmptyInvoice: items provided but none is billable
        NegativeTotal: resulting total would be negative
        ValidationError: negative tax/discount or malformed due date
    """
    body: dict[str, Any] = {}

    items = None
    if patch.items is not None:
        items = billable_items(patch.items)
        if not items:
            raise EmptyInvoice()
        body["items"] = [item.model_dump(mode="json", by_alias=True) for item in items]

    tax = None if patch.tax is None else _non_negative(patch.tax, "tax")
    discount = None if patch.discount is None else _non_negative(patch.discount, "discount")
    if tax is not None:
        body["tax"] = float(tax)
    if discount is not None:
        body["discount"] = float(discount)

    if patch.due_date is not None:
        due_date = _date_only(patch.due_date, "due_date")
        if due_date is None:
            raise ValidationError("Please select a due date", field="due_date")
        body["dueDate"] = due_date
    if patch.notes is not None:
        body["notes"] = patch.notes

    merged_items = items if items is not None else (current.items if current else None)
    merged_tax = tax if tax is not None else (current.tax if current else None)
    merged_discount = discount if discount is not None else (current.discount if current else None)
    if merged_items is not None and merged_tax is not None and merged_discount is not None:
        _check_total(merged_items, merged_tax, merged_discount)

    return body


def _date_only(value: Any, field: str) -> str | None:
    """Normalize a date, datetime or ISO string to 'YYYY-MM-DD' for the wire.

    Raises:
        ValidationError: If a string is not an ISO date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text.split("T")[0]).isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid date: '{text}'", field=field) from e
