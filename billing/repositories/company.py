"""Company profile repository (``/company``).

The profile is a per-account singleton: fetched on first need, upserted
on save, never deleted.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from billing.backend.client import BackendClient
from billing.domain.schema import CompanyProfile
from billing.shared.errors import ServerError

logger = logging.getLogger(__name__)


class CompanyRepository:
    """Read and upsert the company profile."""

    resource = "/company"

    def __init__(self, backend: BackendClient) -> None:
        self.backend = backend

    async def get(self) -> CompanyProfile:
        """Fetch the profile; an account without one gets an empty profile."""
        data = await self.backend.get(self.resource, endpoint=self.resource)
        if not data:
            return CompanyProfile()
        return self._parse(data)

    async def save(self, profile: CompanyProfile) -> CompanyProfile:
        """Create or replace the profile.

        Returns:
            Profile as stored by the backend (the submitted one if the response is empty)
        """
        body = profile.model_dump(mode="json", by_alias=True)
        data = await self.backend.put(self.resource, body, endpoint=self.resource)
        logger.info("Company profile saved")
        return self._parse(data) if data else profile

    def _parse(self, data: object) -> CompanyProfile:
        if not isinstance(data, dict):
            raise ServerError("Malformed company profile from billing backend")
        try:
            return CompanyProfile.model_validate(data)
        except PydanticValidationError as e:
            raise ServerError("Malformed company profile from billing backend") from e
