"""View-sync controller: mutation entry points plus refetch-on-mutation.

Every mutation goes through this controller. On success it queues a
refresh for each mounted view of the mutated entity kind before
returning, so the caller can close its modal immediately. Status changes
are the exception: they are applied in place without a refetch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from billing.backend.metrics import mutations_total
from billing.domain.schema import (
    ClientDraft,
    CompanyProfile,
    Invoice,
    InvoiceDraft,
    InvoicePatch,
    InvoiceStatus,
)
from billing.repositories.base import Confirmer
from billing.repositories.clients import ClientRepository
from billing.repositories.company import CompanyRepository
from billing.repositories.invoices import InvoiceRepository
from billing.shared.errors import BillingError, Unauthorized
from billing.sync.views import CollectionView, EntityKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMPANY_KIND = "company"


class MutationResult(BaseModel):
    """Outcome of a mutation, as reported back to the calling view.

    Attributes:
        success: True if the backend acknowledged the mutation
        action: create, update, delete, status or save
        entity: Entity returned by the backend (None on failure or delete)
        error: User-facing message on failure
        cancelled: True if the user declined a confirmation step
        refreshes_queued: Number of view refreshes scheduled by this mutation
    """

    success: bool
    action: str
    entity: Any = None
    error: str | None = None
    cancelled: bool = False
    refreshes_queued: int = Field(default=0, ge=0)


class ViewSyncController:
    """Routes mutations to repositories and keeps registered views current."""

    def __init__(
        self,
        clients: ClientRepository,
        invoices: InvoiceRepository,
        company: CompanyRepository,
    ) -> None:
        self.clients = clients
        self.invoices = invoices
        self.company = company
        self._views: dict[EntityKind, list[CollectionView[Any]]] = {kind: [] for kind in EntityKind}
        self._tasks: set[asyncio.Task[bool]] = set()

    def register(self, view: CollectionView[Any]) -> None:
        registered = self._views[view.kind]
        if view not in registered:
            registered.append(view)
            logger.debug(f"Registered view {view.name} for {view.kind.value}")

    def unregister(self, view: CollectionView[Any]) -> None:
        """Detach a view; it is unmounted so pending fetches are discarded."""
        view.unmount()
        registered = self._views[view.kind]
        if view in registered:
            registered.remove(view)
            logger.debug(f"Unregistered view {view.name}")

    def views(self, kind: EntityKind) -> list[CollectionView[Any]]:
        return list(self._views[kind])

    def invalidate(self, kind: EntityKind) -> int:
        """Queue a refresh for every mounted view of ``kind``.

        Returns:
            Number of refreshes queued
        """
        queued = 0
        for view in self._views[kind]:
            if not view.mounted:
                continue
            self._queue_refresh(view)
            queued += 1
        if queued:
            logger.debug(f"Queued {queued} {kind.value} view refreshes")
        return queued

    def _queue_refresh(self, view: CollectionView[Any]) -> None:
        task = view.schedule_refresh()
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_for_refreshes(self) -> None:
        """Wait until every queued refresh has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _failed(self, kind: str, action: str, error: BillingError) -> MutationResult:
        mutations_total.labels(kind=kind, action=action, outcome="failed").inc()
        if isinstance(error, Unauthorized):
            logger.warning(f"{kind} {action} rejected: {error}")
            raise error
        logger.warning(f"{kind} {action} failed: {error}")
        return MutationResult(success=False, action=action, error=error.message)

    async def _run(
        self,
        kind: str,
        action: str,
        operation: Callable[[], Awaitable[T]],
        on_success: Callable[[T], int],
    ) -> MutationResult:
        try:
            entity = await operation()
        except BillingError as e:
            return self._failed(kind, action, e)

        queued = on_success(entity)
        mutations_total.labels(kind=kind, action=action, outcome="success").inc()
        return MutationResult(success=True, action=action, entity=entity, refreshes_queued=queued)

    async def _delete(
        self, kind: EntityKind, entity_id: str, deleter: Callable[[], Awaitable[bool]]
    ) -> MutationResult:
        try:
            deleted = await deleter()
        except BillingError as e:
            return self._failed(kind.value, "delete", e)

        if not deleted:
            mutations_total.labels(kind=kind.value, action="delete", outcome="cancelled").inc()
            return MutationResult(success=False, action="delete", cancelled=True)

        for view in self._views[kind]:
            view.remove_item(entity_id)
        queued = self.invalidate(kind)
        mutations_total.labels(kind=kind.value, action="delete", outcome="success").inc()
        return MutationResult(success=True, action="delete", refreshes_queued=queued)

    # Clients

    async def create_client(self, draft: ClientDraft) -> MutationResult:
        return await self._run(
            EntityKind.CLIENT.value,
            "create",
            lambda: self.clients.create(draft),
            lambda _: self.invalidate(EntityKind.CLIENT),
        )

    async def update_client(self, client_id: str, draft: ClientDraft) -> MutationResult:
        """Update a client; invoice views are refreshed too since they show its name."""
        return await self._run(
            EntityKind.CLIENT.value,
            "update",
            lambda: self.clients.update(client_id, draft),
            lambda _: self.invalidate(EntityKind.CLIENT) + self.invalidate(EntityKind.INVOICE),
        )

    async def delete_client(self, client_id: str, confirm: Confirmer) -> MutationResult:
        """Delete a client. Invoices referencing it are left untouched."""
        return await self._delete(
            EntityKind.CLIENT, client_id, lambda: self.clients.delete(client_id, confirm)
        )

    # Invoices

    async def create_invoice(self, draft: InvoiceDraft) -> MutationResult:
        return await self._run(
            EntityKind.INVOICE.value,
            "create",
            lambda: self.invoices.create(draft),
            lambda _: self.invalidate(EntityKind.INVOICE),
        )

    async def update_invoice(
        self, invoice_id: str, patch: InvoicePatch, current: Invoice | None = None
    ) -> MutationResult:
        return await self._run(
            EntityKind.INVOICE.value,
            "update",
            lambda: self.invoices.update(invoice_id, patch, current),
            lambda _: self.invalidate(EntityKind.INVOICE),
        )

    async def delete_invoice(self, invoice_id: str, confirm: Confirmer) -> MutationResult:
        return await self._delete(
            EntityKind.INVOICE, invoice_id, lambda: self.invoices.delete(invoice_id, confirm)
        )

    async def change_invoice_status(self, invoice: Invoice, status: InvoiceStatus | str) -> MutationResult:
        """Update status and patch every invoice view in place.

        Views are not refetched, except one whose fetch is still in flight:
        that fetch may predate the update, so it is superseded by a new one.
        """

        def apply_in_place(updated: Invoice) -> int:
            queued = 0
            for view in self._views[EntityKind.INVOICE]:
                view.replace_item(updated)
                if view.mounted and view.loading:
                    self._queue_refresh(view)
                    queued += 1
            return queued

        return await self._run(
            EntityKind.INVOICE.value,
            "status",
            lambda: self.invoices.update_status(invoice, status),
            apply_in_place,
        )

    # Company

    async def save_company(self, profile: CompanyProfile) -> MutationResult:
        return await self._run(
            COMPANY_KIND,
            "save",
            lambda: self.company.save(profile),
            lambda _: 0,
        )
