"""Abstract base class for entity repositories.

Each repository is a CRUD facade over one backend resource. Drafts are
validated client-side before any request is issued; responses are parsed
into domain models, and a malformed document surfaces as ServerError.

Based on Repository Pattern:
https://www.cosmicpython.com/book/chapter_02_repository.html
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from billing.backend.client import BackendClient
from billing.shared.errors import ServerError

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)
DraftT = TypeVar("DraftT")
PatchT = TypeVar("PatchT")

# Out-of-band confirmation step: receives a prompt, returns True to proceed.
Confirmer = Callable[[str], bool]


class Repository(ABC, Generic[EntityT, DraftT, PatchT]):
    """CRUD facade over a backend collection resource.

    Subclasses define the resource path, the entity model and how drafts
    and patches are validated into request bodies.
    """

    resource: str
    entity_name: str
    model: type[EntityT]

    def __init__(self, backend: BackendClient) -> None:
        """Initialize repository.

        Args:
            backend: Shared backend client
        """
        self.backend = backend

    @abstractmethod
    def _create_body(self, draft: DraftT) -> dict[str, Any]:
        """Validate a draft into a POST body.

        Raises:
            ValidationError: If the draft is not submittable
        """

    @abstractmethod
    def _update_body(self, patch: PatchT, current: EntityT | None = None) -> dict[str, Any]:
        """Validate a patch into a PUT body.

        Raises:
            ValidationError: If the patch is not submittable
        """

    def _item_path(self, entity_id: str) -> str:
        return f"{self.resource}/{entity_id}"

    def _parse(self, document: Any) -> EntityT:
        """Parse a backend document into the entity model."""
        if not isinstance(document, dict):
            raise ServerError(f"Malformed {self.entity_name} document from billing backend")
        try:
            return self.model.model_validate(document)
        except PydanticValidationError as e:
            logger.error(f"Invalid {self.entity_name} document: {e}")
            raise ServerError(f"Malformed {self.entity_name} document from billing backend") from e

    async def list_all(self) -> list[EntityT]:
        """Fetch the whole collection in server order.

        Returns:
            Entities, never None (empty list when the collection is empty)
        """
        data = await self.backend.get(self.resource, endpoint=self.resource)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ServerError(f"Expected a list of {self.entity_name}s from billing backend")
        return [self._parse(document) for document in data]

    async def create(self, draft: DraftT) -> EntityT:
        """Validate and create an entity.

        Raises:
            ValidationError: Before any request if the draft is invalid
        """
        body = self._create_body(draft)
        data = await self.backend.post(self.resource, body, endpoint=self.resource)
        entity = self._parse(data)
        logger.info(f"Created {self.entity_name} {getattr(entity, 'id', '')}")
        return entity

    async def update(self, entity_id: str, patch: PatchT, current: EntityT | None = None) -> EntityT:
        """Validate and update an entity.

        Args:
            entity_id: Entity identifier
            patch: Edited form state
            current: Entity as currently displayed (enables cross-field checks)

        Raises:
            ValidationError: Before any request if the patch is invalid
            NotFound: If the entity was deleted elsewhere
        """
        body = self._update_body(patch, current)
        data = await self.backend.put(
            self._item_path(entity_id), body, endpoint=f"{self.resource}/{{id}}"
        )
        entity = self._parse(data)
        logger.info(f"Updated {self.entity_name} {entity_id}")
        return entity

    async def delete(self, entity_id: str, confirm: Confirmer) -> bool:
        """Delete an entity after explicit confirmation.

        Args:
            entity_id: Entity identifier
            confirm: Confirmation step; declining sends nothing

        Returns:
            True if deleted, False if the user declined

        Raises:
            NotFound: If the entity no longer exists
        """
        if not confirm(f"Are you sure you want to delete this {self.entity_name}?"):
            logger.info(f"Delete of {self.entity_name} {entity_id} cancelled by user")
            return False

        await self.backend.delete(self._item_path(entity_id), endpoint=f"{self.resource}/{{id}}")
        logger.info(f"Deleted {self.entity_name} {entity_id}")
        return True
