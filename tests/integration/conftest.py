"""Fixtures wiring the billing services to the in-memory fake backend."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fake_backend import VALID_TOKEN, FakeBackend

from billing.factory import BillingServices, create_billing_services
from billing.shared.config import Settings


@pytest.fixture
def fake_backend() -> FakeBackend:
    backend = FakeBackend()
    acme = backend.add_client("Acme Corp", "billing@acme.io")
    globex = backend.add_client("Globex", "ap@globex.io")
    backend.add_invoice(acme["_id"], [{"name": "Consulting", "quantity": 2, "price": 10}], tax=3, discount=2, status="Paid")
    backend.add_invoice(globex["_id"], [{"name": "Hosting", "quantity": 1, "price": 50}])
    backend.add_invoice(acme["_id"], [{"name": "Audit", "quantity": 1, "price": 70}], status="Overdue")
    return backend


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        api_base_url="http://testserver/api",
        pdf_download_dir=tmp_path,
        backend_retry_wait_seconds=0,
    )


@pytest_asyncio.fixture
async def services(fake_backend: FakeBackend, settings: Settings) -> AsyncGenerator[BillingServices, None]:
    """Billing services signed in against the fake backend."""
    http_client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=fake_backend.app), base_url=settings.api_base_url
    )
    services = create_billing_services(settings, http_client=http_client)
    services.session.set_token(VALID_TOKEN)
    yield services
    await services.aclose()
