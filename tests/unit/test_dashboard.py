"""Unit tests for dashboard aggregates."""

from decimal import Decimal

from billing.dashboard.stats import DashboardStats, recent_invoices
from billing.domain.schema import Invoice


def make_invoice(invoice_id: str, status: str, price: int, discount: int = 0) -> Invoice:
    return Invoice.model_validate(
        {
            "_id": invoice_id,
            "items": [{"name": "Work", "quantity": 1, "price": price}],
            "discount": discount,
            "status": status,
        }
    )


def test_stats_counts_and_revenue() -> None:
    invoices = [
        make_invoice("1", "Paid", 100, discount=10),
        make_invoice("2", "Pending", 50),
        make_invoice("3", "Overdue", 70),
        make_invoice("4", "Paid", 40),
    ]

    stats = DashboardStats.from_invoices(invoices)

    assert stats.total_invoices == 4
    assert stats.paid_invoices == 2
    assert stats.pending_invoices == 1
    assert stats.overdue_invoices == 1
    assert stats.total_revenue == Decimal("130")


def test_stats_empty() -> None:
    stats = DashboardStats.from_invoices([])

    assert stats.total_invoices == 0
    assert stats.total_revenue == Decimal("0")


def test_recent_invoices_keeps_server_order() -> None:
    invoices = [make_invoice(str(i), "Pending", 10) for i in range(8)]

    assert [invoice.id for invoice in recent_invoices(invoices)] == ["0", "1", "2", "3", "4"]
    assert [invoice.id for invoice in recent_invoices(invoices, limit=2)] == ["0", "1"]
    assert recent_invoices(invoices[:3]) == invoices[:3]
