"""End-to-end flows against the in-memory fake backend.

Exercises the full stack (factory, session, backend client, repositories,
views and controller) over ASGITransport.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
from fake_backend import OWNER_EMAIL, OWNER_PASSWORD, FakeBackend

from billing.domain.schema import ClientDraft, CompanyProfile, InvoiceDraft, InvoicePatch, InvoiceStatus
from billing.factory import BillingServices, create_billing_services
from billing.shared.config import Settings
from billing.shared.errors import NoOpTransition, NotFound, Unauthorized


@pytest.mark.asyncio
async def test_login_then_list(fake_backend: FakeBackend, settings: Settings) -> None:
    http_client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=fake_backend.app), base_url=settings.api_base_url
    )
    services = create_billing_services(settings, http_client=http_client)

    with pytest.raises(Unauthorized):
        await services.invoices.list_all()

    await services.auth.login(OWNER_EMAIL, OWNER_PASSWORD)
    invoices = await services.invoices.list_all()

    assert [invoice.invoice_number for invoice in invoices] == ["INV-0001", "INV-0002", "INV-0003"]
    assert invoices[0].client_name == "Acme Corp"
    assert invoices[0].total == Decimal("26")

    await services.auth.logout()
    assert fake_backend.logged_out is True
    assert services.session.is_authenticated is False
    await services.aclose()


@pytest.mark.asyncio
async def test_rejected_token_expires_session(services: BillingServices) -> None:
    expired: list[bool] = []
    services.session.on_expired(lambda: expired.append(True))
    services.session.set_token("stale-token")

    with pytest.raises(Unauthorized) as exc_info:
        await services.clients.list_all()

    assert exc_info.value.message == "Token is not valid"
    assert expired == [True]
    assert services.session.is_authenticated is False


@pytest.mark.asyncio
async def test_create_invoice_refreshes_dashboard(services: BillingServices, fake_backend: FakeBackend) -> None:
    page = services.invoice_list_view()
    recent = services.recent_invoices_view()
    dashboard = services.dashboard_stats_view()
    for view in (page, recent, dashboard):
        await view.mount()
    clients = await services.clients.list_all()

    result = await services.controller.create_invoice(
        InvoiceDraft(
            client_id=clients[1].id,
            items=[{"name": "Support", "quantity": 3, "price": "40"}, {"name": "", "quantity": 1, "price": 0}],
            tax=12,
            due_date=date(2026, 12, 15),
        )
    )
    await services.controller.wait_for_refreshes()

    assert result.success is True
    assert result.refreshes_queued == 3
    assert result.entity.invoice_number == "INV-0004"
    assert result.entity.total == Decimal("132")
    assert len(page.items) == 4
    assert page.items[-1].client_name == "Globex"
    assert dashboard.stats.total_invoices == 4
    assert dashboard.stats.pending_invoices == 2


@pytest.mark.asyncio
async def test_status_change_in_place(services: BillingServices, fake_backend: FakeBackend) -> None:
    page = services.invoice_list_view()
    await page.mount()
    requests_before = len(fake_backend.requests)
    pending = page.items[1]

    result = await services.controller.change_invoice_status(pending, "Paid")

    assert result.success is True
    assert page.items[1].status is InvoiceStatus.PAID
    assert page.items[1].client_name == "Globex"
    assert fake_backend.requests[requests_before:] == [("PATCH", f"/api/invoices/{pending.id}/status")]

    with pytest.raises(NoOpTransition):
        await services.invoices.update_status(page.items[1], "Paid")
    assert len(fake_backend.requests) == requests_before + 1


@pytest.mark.asyncio
async def test_empty_invoice_never_reaches_backend(services: BillingServices, fake_backend: FakeBackend) -> None:
    requests_before = len(fake_backend.requests)

    result = await services.controller.create_invoice(
        InvoiceDraft(client_id="c-1", items=[{"name": "", "quantity": 0, "price": 0}], due_date="2026-12-01")
    )

    assert result.success is False
    assert result.error == "Please add at least one item with a name, quantity, and price"
    assert len(fake_backend.requests) == requests_before


@pytest.mark.asyncio
async def test_update_invoice(services: BillingServices) -> None:
    [first, *_] = await services.invoices.list_all()

    result = await services.controller.update_invoice(
        first.id, InvoicePatch(discount=5, notes="Loyalty discount"), current=first
    )

    assert result.success is True
    assert result.entity.discount == Decimal("5")
    assert result.entity.total == Decimal("18")
    assert result.entity.notes == "Loyalty discount"


@pytest.mark.asyncio
async def test_delete_client_keeps_invoices(services: BillingServices) -> None:
    client_view = services.client_list_view()
    invoice_view = services.invoice_list_view()
    await client_view.mount()
    await invoice_view.mount()
    acme = client_view.items[0]
    prompts: list[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return True

    result = await services.controller.delete_client(acme.id, confirm)
    await services.controller.wait_for_refreshes()

    assert result.success is True
    assert prompts == ["Are you sure you want to delete this client?"]
    assert acme.id not in [client.id for client in await services.clients.list_all()]
    assert acme.id not in [client.id for client in client_view.items]

    invoices = await services.invoices.list_all()
    assert [invoice.client_id for invoice in invoices].count(acme.id) == 2
    assert len(invoice_view.items) == 3


@pytest.mark.asyncio
async def test_delete_invoice_declined_and_missing(services: BillingServices, fake_backend: FakeBackend) -> None:
    page = services.invoice_list_view()
    await page.mount()
    requests_before = len(fake_backend.requests)

    declined = await services.controller.delete_invoice(page.items[0].id, lambda prompt: False)

    assert declined.cancelled is True
    assert len(fake_backend.requests) == requests_before

    missing = await services.controller.delete_invoice("inv-404", lambda prompt: True)

    assert missing.success is False
    assert missing.error == "Invoice not found"
    assert len(page.items) == 3


@pytest.mark.asyncio
async def test_update_missing_client_is_not_found(services: BillingServices) -> None:
    with pytest.raises(NotFound):
        await services.clients.update("c-404", ClientDraft(name="Ghost", email="ghost@acme.io"))


@pytest.mark.asyncio
async def test_company_profile_round_trip(services: BillingServices) -> None:
    assert await services.company.get() == CompanyProfile()

    result = await services.controller.save_company(
        CompanyProfile(business_name="Acme Studio", address="1 Main St", phone="555-0100")
    )
    profile = await services.company.get()

    assert result.success is True
    assert profile.business_name == "Acme Studio"
    assert profile.phone == "555-0100"


@pytest.mark.asyncio
async def test_download_pdf(services: BillingServices, settings: Settings) -> None:
    [first, *_] = await services.invoices.list_all()

    download = await services.documents.download_pdf(first)

    assert download.path == Path(settings.pdf_download_dir) / "invoice-INV-0001.pdf"
    assert download.path.read_bytes().startswith(b"%PDF")
    assert download.size == download.path.stat().st_size


@pytest.mark.asyncio
async def test_download_missing_pdf(services: BillingServices, settings: Settings) -> None:
    [first, *_] = await services.invoices.list_all()
    ghost = first.model_copy(update={"id": "inv-404"})

    with pytest.raises(NotFound):
        await services.documents.download_pdf(ghost)
    assert not (Path(settings.pdf_download_dir) / "invoice-INV-0001.pdf").exists()
