"""Composition root for the billing client.

Wires one Session and one BackendClient into the auth service, the
repositories, the document service and the view-sync controller.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
"""

import logging
from dataclasses import dataclass

import httpx

from billing.auth.service import AuthService
from billing.auth.session import Session
from billing.backend.client import BackendClient
from billing.documents.pdf import InvoiceDocuments
from billing.repositories.clients import ClientRepository
from billing.repositories.company import CompanyRepository
from billing.repositories.invoices import InvoiceRepository
from billing.shared.config import Settings
from billing.sync.controller import ViewSyncController
from billing.sync.views import (
    ClientListView,
    DashboardStatsView,
    InvoiceListView,
    RecentInvoicesView,
)

logger = logging.getLogger(__name__)


@dataclass
class BillingServices:
    """Everything a UI layer (or script) needs, sharing one session."""

    settings: Settings
    session: Session
    backend: BackendClient
    auth: AuthService
    clients: ClientRepository
    invoices: InvoiceRepository
    company: CompanyRepository
    documents: InvoiceDocuments
    controller: ViewSyncController

    def invoice_list_view(self, name: str = "invoices") -> InvoiceListView:
        view = InvoiceListView(self.invoices.list_all, name=name)
        self.controller.register(view)
        return view

    def client_list_view(self, name: str = "clients") -> ClientListView:
        view = ClientListView(self.clients.list_all, name=name)
        self.controller.register(view)
        return view

    def recent_invoices_view(self, name: str = "recent-invoices") -> RecentInvoicesView:
        view = RecentInvoicesView(
            self.invoices.list_all, limit=self.settings.recent_invoices_limit, name=name
        )
        self.controller.register(view)
        return view

    def dashboard_stats_view(self, name: str = "dashboard-stats") -> DashboardStatsView:
        view = DashboardStatsView(self.invoices.list_all, name=name)
        self.controller.register(view)
        return view

    async def aclose(self) -> None:
        await self.controller.wait_for_refreshes()
        await self.backend.aclose()


def create_billing_services(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> BillingServices:
    """Build the billing client object graph.

    Args:
        settings: Application settings
        http_client: Optional pre-configured client (tests mount a fake backend here)

    Returns:
        Wired services
    """
    token = settings.api_token.get_secret_value() if settings.api_token else None
    session = Session(token)
    backend = BackendClient(settings, session, http_client=http_client)

    clients = ClientRepository(backend)
    invoices = InvoiceRepository(backend)
    company = CompanyRepository(backend)

    services = BillingServices(
        settings=settings,
        session=session,
        backend=backend,
        auth=AuthService(backend, session),
        clients=clients,
        invoices=invoices,
        company=company,
        documents=InvoiceDocuments(backend, settings),
        controller=ViewSyncController(clients, invoices, company),
    )
    logger.info(
        f"Billing client ready (backend={settings.api_base_url}, "
        f"authenticated={session.is_authenticated})"
    )
    return services
