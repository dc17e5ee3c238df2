"""Client-side filtering over cached collections.

Filters are stable (original order preserved) and always return a list,
possibly empty. Status and search predicates combine with AND.
"""

from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from billing.domain.schema import Client, Invoice, InvoiceStatus
from billing.invoices.lifecycle import parse_status

ALL = "All"

StatusFilter = InvoiceStatus | Literal["All"]


def _normalize(term: str | None) -> str:
    return (term or "").strip().lower()


def _resolve_status(status_filter: StatusFilter | str | None) -> InvoiceStatus | None:
    """Return the status to match, or None for the pass-through filter."""
    if status_filter is None or status_filter == ALL:
        return None
    return parse_status(status_filter)


def matches_invoice_search(invoice: Invoice, term: str) -> bool:
    """Case-insensitive substring match on invoice number or client name."""
    normalized = _normalize(term)
    if not normalized:
        return True
    return normalized in invoice.invoice_number.lower() or normalized in invoice.client_name.lower()


def matches_client_search(client: Client, term: str) -> bool:
    """Case-insensitive substring match on client name or email."""
    normalized = _normalize(term)
    if not normalized:
        return True
    return normalized in client.name.lower() or normalized in (client.email or "").lower()


def apply_filters(
    invoices: Iterable[Invoice],
    status_filter: StatusFilter | str | None = ALL,
    search_term: str | None = "",
) -> list[Invoice]:
    """Filter invoices by status and search term.

    Args:
        invoices: Cached invoice collection
        status_filter: 'All' (pass-through) or a concrete status
        search_term: Substring of invoice number or client name ('' passes through)

    Returns:
        Matching invoices in original order

    Raises:
        ValidationError: If status_filter is not 'All' or a known status
    """
    status = _resolve_status(status_filter)
    return [
        invoice
        for invoice in invoices
        if (status is None or invoice.status is status)
        and matches_invoice_search(invoice, search_term or "")
    ]


def apply_client_filter(clients: Iterable[Client], search_term: str | None = "") -> list[Client]:
    """Filter clients by a substring of name or email, preserving order."""
    return [client for client in clients if matches_client_search(client, search_term or "")]


class InvoiceFilter(BaseModel):
    """Filter state owned by an invoice list view."""

    status_filter: StatusFilter = Field(default=ALL, description="'All' or a concrete status")
    search_term: str = Field(default="", description="Invoice number / client name search")

    @field_validator("status_filter", mode="before")
    @classmethod
    def _parse_status_filter(cls, value: object) -> object:
        if value is None or value == ALL:
            return ALL
        if isinstance(value, str):
            return parse_status(value)
        return value

    def apply(self, invoices: Iterable[Invoice]) -> list[Invoice]:
        return apply_filters(invoices, self.status_filter, self.search_term)
