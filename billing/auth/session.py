"""Bearer credential holder shared by every backend call.

Single writer (login/logout), many readers. Requests read the token at
send time; a request already in flight when the token is cleared simply
fails with Unauthorized when the backend rejects it.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ExpiryListener = Callable[[], None]


class Session:
    """Holds the opaque bearer token issued by the backend."""

    def __init__(self, token: str | None = None) -> None:
        """Initialize session.

        Args:
            token: Optional pre-issued token (e.g. from BILLING_API_TOKEN)
        """
        self._token = token or None
        self._listeners: list[ExpiryListener] = []

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        """Store a freshly issued token (login/register)."""
        if not token:
            raise ValueError("Token must be a non-empty string")
        self._token = token
        logger.info("Session token stored")

    def clear(self) -> None:
        """Drop the token (logout)."""
        self._token = None
        logger.info("Session token cleared")

    def on_expired(self, listener: ExpiryListener) -> None:
        """Register a callback fired when the backend rejects the credential."""
        self._listeners.append(listener)

    def expire(self) -> None:
        """Clear the token and notify listeners so the UI can force re-login."""
        was_authenticated = self.is_authenticated
        self._token = None
        if not was_authenticated:
            return

        logger.warning("Session expired, notifying listeners")
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Session expiry listener failed: {e}")

    def authorization_header(self) -> dict[str, str]:
        """Return the Authorization header for the current token (empty if none)."""
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}
