"""Unit tests for the filter/search engine."""

import pytest

from billing.domain.schema import Client, Invoice, InvoiceStatus
from billing.filters.engine import (
    ALL,
    InvoiceFilter,
    apply_client_filter,
    apply_filters,
)
from billing.shared.errors import ValidationError


def make_invoice(invoice_id: str, number: str, client_name: str | None, status: str) -> Invoice:
    client = {"_id": f"c-{invoice_id}", "name": client_name} if client_name is not None else None
    return Invoice.model_validate(
        {"_id": invoice_id, "invoiceNumber": number, "clientId": client, "status": status}
    )


@pytest.fixture
def invoices() -> list[Invoice]:
    return [
        make_invoice("1", "INV-0001", "Acme Corp", "Paid"),
        make_invoice("2", "INV-0002", "Globex", "Pending"),
        make_invoice("3", "INV-0003", "Acme Labs", "Overdue"),
        make_invoice("4", "INV-0004", "Initech", "Paid"),
        make_invoice("5", "INV-0005", None, "Pending"),
    ]


class TestApplyFilters:
    """Test invoice filtering."""

    def test_all_passes_through(self, invoices: list[Invoice]) -> None:
        assert apply_filters(invoices, ALL, "") == invoices

    def test_status_subset_in_order(self, invoices: list[Invoice]) -> None:
        result = apply_filters(invoices, "Paid", "")

        assert [invoice.id for invoice in result] == ["1", "4"]
        assert all(invoice.status is InvoiceStatus.PAID for invoice in result)

    def test_search_by_client_name_case_insensitive(self, invoices: list[Invoice]) -> None:
        result = apply_filters(invoices, ALL, "  ACME ")

        assert [invoice.id for invoice in result] == ["1", "3"]

    def test_search_by_invoice_number(self, invoices: list[Invoice]) -> None:
        assert [invoice.id for invoice in apply_filters(invoices, ALL, "0004")] == ["4"]

    def test_status_and_search_combined(self, invoices: list[Invoice]) -> None:
        assert [invoice.id for invoice in apply_filters(invoices, "Overdue", "acme")] == ["3"]

    def test_no_match_returns_empty_list(self, invoices: list[Invoice]) -> None:
        assert apply_filters(invoices, ALL, "umbrella") == []

    def test_missing_client_does_not_match_name_search(self, invoices: list[Invoice]) -> None:
        assert "5" not in [invoice.id for invoice in apply_filters(invoices, ALL, "a")]

    def test_unknown_status_filter(self, invoices: list[Invoice]) -> None:
        with pytest.raises(ValidationError):
            apply_filters(invoices, "Draft", "")

    def test_does_not_mutate_input(self, invoices: list[Invoice]) -> None:
        snapshot = list(invoices)

        apply_filters(invoices, "Paid", "acme")

        assert invoices == snapshot


class TestClientFilter:
    """Test client search."""

    def test_matches_name_or_email(self) -> None:
        clients = [
            Client.model_validate({"_id": "1", "name": "Acme Corp", "email": "billing@acme.io"}),
            Client.model_validate({"_id": "2", "name": "Globex", "email": "ap@globex.io"}),
            Client.model_validate({"_id": "3", "name": "Initech", "email": "finance@acme.io"}),
        ]

        assert [c.id for c in apply_client_filter(clients, "acme")] == ["1", "3"]
        assert [c.id for c in apply_client_filter(clients, "GLOBEX")] == ["2"]
        assert apply_client_filter(clients, "") == clients


class TestInvoiceFilterModel:
    """Test the filter state held by views."""

    def test_defaults(self, invoices: list[Invoice]) -> None:
        state = InvoiceFilter()

        assert state.status_filter == ALL
        assert state.apply(invoices) == invoices

    def test_parses_status_string(self) -> None:
        assert InvoiceFilter(status_filter="Overdue").status_filter is InvoiceStatus.OVERDUE

    def test_rejects_unknown_status(self) -> None:
        with pytest.raises(ValidationError):
            InvoiceFilter(status_filter="Draft")
