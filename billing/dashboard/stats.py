"""Dashboard aggregates computed from the invoice collection."""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from pydantic import BaseModel

from billing.domain.schema import Invoice, InvoiceStatus


class DashboardStats(BaseModel):
    """Headline numbers shown on the dashboard.

    Attributes:
        total_invoices: Number of invoices
        paid_invoices: Invoices with status Paid
        pending_invoices: Invoices with status Pending
        overdue_invoices: Invoices with status Overdue
        total_revenue: Sum of derived totals of Paid invoices
    """

    total_invoices: int = 0
    paid_invoices: int = 0
    pending_invoices: int = 0
    overdue_invoices: int = 0
    total_revenue: Decimal = Decimal("0")

    @classmethod
    def from_invoices(cls, invoices: Iterable[Invoice]) -> "DashboardStats":
        stats = cls()
        for invoice in invoices:
            stats.total_invoices += 1
            if invoice.status is InvoiceStatus.PAID:
                stats.paid_invoices += 1
                stats.total_revenue += invoice.total
            elif invoice.status is InvoiceStatus.PENDING:
                stats.pending_invoices += 1
            elif invoice.status is InvoiceStatus.OVERDUE:
                stats.overdue_invoices += 1
        return stats


def recent_invoices(invoices: Sequence[Invoice], limit: int = 5) -> list[Invoice]:
    """First ``limit`` invoices in server order."""
    return list(invoices[: max(limit, 0)])
