"""Client repository (``/clients``)."""

from typing import Any

from billing.domain.schema import Client, ClientDraft
from billing.invoices.validation import validate_client_draft
from billing.repositories.base import Repository


class ClientRepository(Repository[Client, ClientDraft, ClientDraft]):
    """CRUD over the account's clients.

    Deleting a client never touches invoices that reference it.
    """

    resource = "/clients"
    entity_name = "client"
    model = Client

    def _create_body(self, draft: ClientDraft) -> dict[str, Any]:
        return validate_client_draft(draft).model_dump(mode="json", by_alias=True)

    def _update_body(self, patch: ClientDraft, current: Client | None = None) -> dict[str, Any]:
        return validate_client_draft(patch).model_dump(mode="json", by_alias=True)
