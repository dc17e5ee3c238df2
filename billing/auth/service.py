"""Login, registration and logout against the billing backend.

The token returned by the backend is opaque; it is stored on the Session
and attached to every later call. No silent refresh is attempted.
"""

import logging

from billing.auth.session import Session
from billing.backend.client import BackendClient
from billing.shared.errors import BillingError, ServerError, ValidationError

logger = logging.getLogger(__name__)


class AuthService:
    """Obtains and discards the session credential."""

    def __init__(self, backend: BackendClient, session: Session) -> None:
        self.backend = backend
        self.session = session

    async def login(self, email: str, password: str) -> str:
        """Sign in and store the issued token.

        Raises:
            ValidationError: If email or password is empty
            Unauthorized: If the backend rejects the credentials
        """
        self._require(email=email, password=password)
        payload = await self.backend.post(
            "/auth/login",
            {"email": email.strip(), "password": password},
            authenticated=False,
        )
        return self._store_token(payload)

    async def register(self, name: str, email: str, password: str) -> str:
        """Create an account and store the issued token.

        Raises:
            ValidationError: If a field is empty
            ServerError: If the backend refuses the registration
        """
        self._require(name=name, email=email, password=password)
        payload = await self.backend.post(
            "/auth/register",
            {"name": name.strip(), "email": email.strip(), "password": password},
            authenticated=False,
        )
        return self._store_token(payload)

    async def logout(self) -> None:
        """Best-effort server logout; the local token is always cleared."""
        if not self.session.is_authenticated:
            return
        try:
            await self.backend.post("/auth/logout")
        except BillingError as e:
            logger.warning(f"Logout request failed: {e}")
        finally:
            self.session.clear()

    def _store_token(self, payload: object) -> str:
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise ServerError("Authentication response did not include a token")
        self.session.set_token(token)
        return token

    @staticmethod
    def _require(**fields: str) -> None:
        for name, value in fields.items():
            if not value or not value.strip():
                raise ValidationError(f"Please enter your {name}", field=name)
