"""Invoice repository (``/invoices``)."""

import logging
from typing import Any

from billing.domain.schema import Invoice, InvoiceDraft, InvoicePatch, InvoiceStatus
from billing.invoices.lifecycle import apply_status, request_status_change
from billing.invoices.validation import validate_invoice_draft, validate_invoice_patch
from billing.repositories.base import Repository

logger = logging.getLogger(__name__)


class InvoiceRepository(Repository[Invoice, InvoiceDraft, InvoicePatch]):
    """CRUD over invoices plus the status-update action.

    Invoice numbers and totals are derived by the backend; the client
    never sends a total.
    """

    resource = "/invoices"
    entity_name = "invoice"
    model = Invoice

    def _create_body(self, draft: InvoiceDraft) -> dict[str, Any]:
        payload = validate_invoice_draft(draft)
        return payload.model_dump(mode="json", by_alias=True, exclude_none=True)

    def _update_body(self, patch: InvoicePatch, current: Invoice | None = None) -> dict[str, Any]:
        return validate_invoice_patch(patch, current)

    async def update_status(self, invoice: Invoice, status: InvoiceStatus | str) -> Invoice:
        """Move an invoice to a new status.

        Args:
            invoice: Invoice as currently displayed
            status: Target status

        Returns:
            Updated invoice (server copy, or local copy if the response has no body)

        Raises:
            NoOpTransition: Before any request if status is unchanged
            NotFound: If the invoice was deleted elsewhere
        """
        change = request_status_change(invoice, status)
        data = await self.backend.patch(
            f"{self._item_path(invoice.id)}/status",
            {"status": change.to_status.value},
            endpoint=f"{self.resource}/{{id}}/status",
        )
        logger.info(
            f"Invoice {invoice.id} status {change.from_status.value} -> {change.to_status.value}"
        )

        if isinstance(data, dict) and data:
            updated = self._parse(data)
            # Status endpoints often return the bare document without the populated client.
            if updated.client is not None and updated.client.name is None and invoice.client:
                updated = updated.model_copy(update={"client": invoice.client})
            return updated
        return apply_status(invoice, change.to_status)
