"""View-side collection state with stale-response protection.

Each view owns its own copy of the collection it displays; there is no
shared store. A view re-lists on mount and whenever the controller
queues a refresh after a mutation.

Stale-response guard: every refresh takes a token when it is scheduled.
Unmounting or scheduling a newer refresh invalidates older tokens, and a
result is only applied if its token is still current and the view is
still mounted.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Generic, TypeVar

from billing.dashboard.stats import DashboardStats, recent_invoices
from billing.domain.schema import Client, Invoice, InvoiceStatus
from billing.filters.engine import ALL, InvoiceFilter, apply_client_filter
from billing.shared.errors import BillingError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[Sequence[T]]]


class EntityKind(str, Enum):
    """Entity types a view can observe."""

    CLIENT = "client"
    INVOICE = "invoice"


class CollectionView(Generic[T]):
    """A mounted view listing one entity type.

    Attributes:
        name: Identifier for logs (e.g. 'invoices-page')
        kind: Entity type observed
        loading: True while the latest refresh is in flight
        error: Message of the last failed refresh (previous items are kept)
        active_selection: Id of the row whose menu/modal is open, owned by this view
    """

    def __init__(self, name: str, kind: EntityKind, loader: Loader[T]) -> None:
        self.name = name
        self.kind = kind
        self._loader = loader
        self._items: list[T] = []
        self._token = 0
        self._mounted = False
        self._pending: set[asyncio.Task[bool]] = set()
        self.loading = False
        self.error: str | None = None
        self.active_selection: str | None = None
        self.version = 0

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> asyncio.Task[bool]:
        """Mark the view visible and re-list its collection."""
        self._mounted = True
        logger.debug(f"View {self.name} mounted")
        return self.schedule_refresh()

    def unmount(self) -> None:
        """Mark the view hidden; in-flight fetches will be discarded."""
        self._mounted = False
        self._token += 1
        self.loading = False
        self.active_selection = None
        logger.debug(f"View {self.name} unmounted")

    def schedule_refresh(self) -> asyncio.Task[bool]:
        """Queue a refresh now and return its task.

        The token is taken synchronously, so any older in-flight fetch is
        invalidated before this call returns.
        """
        token = self._next_token()
        task = asyncio.create_task(self._load(token), name=f"refresh-{self.name}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def refresh(self) -> bool:
        """Re-list and wait for the result.

        Returns:
            True if the result was applied, False if it failed, was stale
            or the view is not mounted
        """
        if not self._mounted:
            logger.debug(f"View {self.name} is not mounted, skipping refresh")
            return False
        return await self._load(self._next_token())

    def _next_token(self) -> int:
        self._token += 1
        self.loading = True
        return self._token

    def _is_current(self, token: int) -> bool:
        return self._mounted and token == self._token

    async def _load(self, token: int) -> bool:
        try:
            loaded = await self._loader()
        except BillingError as e:
            if self._is_current(token):
                self.error = e.message
                self.loading = False
            logger.warning(f"View {self.name} refresh failed: {e}")
            return False

        if not self._is_current(token):
            logger.debug(f"View {self.name} discarding stale response (token {token})")
            return False

        self._items = self._transform(list(loaded))
        self.error = None
        self.loading = False
        self.version += 1
        return True

    def _transform(self, loaded: list[T]) -> list[T]:
        return loaded

    def find(self, entity_id: str) -> T | None:
        for item in self._items:
            if getattr(item, "id", None) == entity_id:
                return item
        return None

    def replace_item(self, entity: T) -> bool:
        """Swap an entity in place (same position). Returns False if absent."""
        entity_id = getattr(entity, "id", None)
        for index, item in enumerate(self._items):
            if getattr(item, "id", None) == entity_id:
                self._items[index] = entity
                self.version += 1
                return True
        return False

    def remove_item(self, entity_id: str) -> bool:
        """Drop an entity after the backend acknowledged its deletion."""
        remaining = [item for item in self._items if getattr(item, "id", None) != entity_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        if self.active_selection == entity_id:
            self.active_selection = None
        self.version += 1
        return True

    def select(self, entity_id: str | None) -> None:
        """Open the menu/modal for one row (None closes it)."""
        self.active_selection = entity_id

    def toggle_selection(self, entity_id: str) -> None:
        self.active_selection = None if self.active_selection == entity_id else entity_id

    def clear_selection(self) -> None:
        self.active_selection = None

    @property
    def selected(self) -> T | None:
        return self.find(self.active_selection) if self.active_selection else None


class InvoiceListView(CollectionView[Invoice]):
    """Invoices page: full list with status filter and search."""

    def __init__(self, loader: Loader[Invoice], name: str = "invoices") -> None:
        super().__init__(name, EntityKind.INVOICE, loader)
        self.filter = InvoiceFilter()

    def set_status_filter(self, status: InvoiceStatus | str) -> None:
        self.filter = InvoiceFilter(status_filter=status, search_term=self.filter.search_term)

    def set_search_term(self, term: str) -> None:
        self.filter = InvoiceFilter(status_filter=self.filter.status_filter, search_term=term)

    def reset_filters(self) -> None:
        self.filter = InvoiceFilter(status_filter=ALL)

    @property
    def visible(self) -> list[Invoice]:
        return self.filter.apply(self._items)


class ClientListView(CollectionView[Client]):
    """Clients page (also used by the client picker of the invoice form)."""

    def __init__(self, loader: Loader[Client], name: str = "clients") -> None:
        super().__init__(name, EntityKind.CLIENT, loader)
        self.search_term = ""

    def set_search_term(self, term: str) -> None:
        self.search_term = term

    @property
    def visible(self) -> list[Client]:
        return apply_client_filter(self._items, self.search_term)


class RecentInvoicesView(CollectionView[Invoice]):
    """Dashboard widget showing the first few invoices."""

    def __init__(self, loader: Loader[Invoice], limit: int = 5, name: str = "recent-invoices") -> None:
        super().__init__(name, EntityKind.INVOICE, loader)
        self.limit = limit

    def _transform(self, loaded: list[Invoice]) -> list[Invoice]:
        return recent_invoices(loaded, self.limit)


class DashboardStatsView(CollectionView[Invoice]):
    """Dashboard stat cards, derived from the full invoice list."""

    def __init__(self, loader: Loader[Invoice], name: str = "dashboard-stats") -> None:
        super().__init__(name, EntityKind.INVOICE, loader)

    @property
    def stats(self) -> DashboardStats:
        return DashboardStats.from_invoices(self._items)
