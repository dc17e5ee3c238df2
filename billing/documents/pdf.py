"""Invoice documents: PDF download and preview data."""

import logging
import re
from datetime import date
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field

from billing.backend.client import BackendClient
from billing.domain.schema import CompanyProfile, Invoice, InvoiceStatus
from billing.invoices.totals import format_amount
from billing.shared.config import Settings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def pdf_filename(invoice: Invoice) -> str:
    """File name the browser would save, e.g. 'invoice-INV-0001.pdf'."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", invoice.invoice_number or invoice.id)
    return f"invoice-{stem}.pdf"


class PdfDownload(BaseModel):
    """Result of a PDF download."""

    invoice_id: str
    path: Path
    size: int = Field(ge=0, description="Bytes written")


class InvoiceDocuments:
    """Fetch rendered invoice documents from the backend."""

    def __init__(self, backend: BackendClient, settings: Settings) -> None:
        self.backend = backend
        self.settings = settings

    async def download_pdf(self, invoice: Invoice, destination_dir: Path | None = None) -> PdfDownload:
        """Stream ``GET /invoices/{id}/pdf`` into ``invoice-<number>.pdf``.

        Args:
            invoice: Invoice to render
            destination_dir: Target directory (defaults to settings.pdf_download_dir)

        Returns:
            Path and size of the written file

        Raises:
            NotFound: If the invoice was deleted elsewhere
            NetworkError, ServerError: On transport or backend failure (no file is left behind)
        """
        directory = destination_dir or self.settings.pdf_download_dir
        destination = Path(directory) / pdf_filename(invoice)
        size = await self.backend.download(
            f"/invoices/{invoice.id}/pdf", destination, endpoint="/invoices/{id}/pdf"
        )
        return PdfDownload(invoice_id=invoice.id, path=destination, size=size)


class PreviewRow(BaseModel):
    name: str
    quantity: int
    price: Decimal
    amount: Decimal


class PartyBlock(BaseModel):
    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""


class InvoicePreview(BaseModel):
    """Everything the preview modal renders for one invoice.

    Amounts are derived from the invoice's items, tax and discount, never
    from a server-reported total.
    """

    invoice_number: str
    status: InvoiceStatus
    invoice_date: date | None = None
    due_date: date | None = None
    seller: PartyBlock
    buyer: PartyBlock
    logo: str = ""
    rows: list[PreviewRow]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    notes: str = ""

    @classmethod
    def build(cls, invoice: Invoice, company: CompanyProfile | None = None) -> "InvoicePreview":
        company = company or CompanyProfile()
        client = invoice.client
        buyer = PartyBlock(
            name=invoice.client_name,
            email=(client.email or "") if client else "",
            phone=(client.phone or "") if client else "",
        )
        return cls(
            invoice_number=invoice.invoice_number,
            status=invoice.status,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            seller=PartyBlock(
                name=company.business_name, address=company.address, phone=company.phone
            ),
            buyer=buyer,
            logo=company.logo,
            rows=[
                PreviewRow(
                    name=item.name, quantity=item.quantity, price=item.price, amount=item.amount
                )
                for item in invoice.items
            ],
            subtotal=invoice.subtotal,
            tax=invoice.tax,
            discount=invoice.discount,
            total=invoice.total,
            notes=invoice.notes or "",
        )

    def summary_lines(self, symbol: str = "$") -> list[str]:
        """Totals block as display strings."""
        return [
            f"Subtotal: {format_amount(self.subtotal, symbol)}",
            f"Tax: {format_amount(self.tax, symbol)}",
            f"Discount: -{format_amount(self.discount, symbol)}",
            f"Total: {format_amount(self.total, symbol)}",
        ]
