"""HTTP client for the billing REST backend.

Production-grade wrapper around httpx with:
- Bearer credential attached to every call (read at send time)
- Uniform unwrapping of the ``{data: ...}`` envelope
- Mapping of HTTP failures onto the billing error taxonomy
- Retry with exponential backoff for idempotent GET requests
- Streaming downloads for binary documents
- Prometheus request metrics

Writes are never retried: a retried POST could create a duplicate entity.

Based on HTTPX async client documentation:
https://www.python-httpx.org/async/
"""

import logging
import time
from pathlib import Path
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from billing.auth.session import Session
from billing.backend import metrics
from billing.shared.config import Settings
from billing.shared.errors import (
    NetworkError,
    NotFound,
    ServerError,
    Unauthorized,
)

logger = logging.getLogger(__name__)


class BackendClient:
    """Async client for the billing backend.

    All paths are relative to ``settings.api_base_url``. Every method
    returns the unwrapped envelope payload (or None for empty bodies).
    """

    def __init__(
        self,
        settings: Settings,
        session: Session,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize backend client.

        Args:
            settings: Client settings
            session: Session holding the bearer credential
            http_client: Optional pre-configured httpx client (tests, custom transports)
        """
        self.settings = settings
        self.session = session
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get(self, path: str, *, endpoint: str | None = None) -> Any:
        return await self._request("GET", path, endpoint=endpoint)

    async def post(
        self,
        path: str,
        json: Any = None,
        *,
        endpoint: str | None = None,
        authenticated: bool = True,
    ) -> Any:
        return await self._request(
            "POST", path, json=json, endpoint=endpoint, authenticated=authenticated
        )

    async def put(self, path: str, json: Any = None, *, endpoint: str | None = None) -> Any:
        return await self._request("PUT", path, json=json, endpoint=endpoint)

    async def patch(self, path: str, json: Any = None, *, endpoint: str | None = None) -> Any:
        return await self._request("PATCH", path, json=json, endpoint=endpoint)

    async def delete(self, path: str, *, endpoint: str | None = None) -> Any:
        return await self._request("DELETE", path, endpoint=endpoint)

    async def download(self, path: str, destination: Path, *, endpoint: str | None = None) -> int:
        """Stream a binary response to a file.

        The partially written file is removed if the download fails.

        Args:
            path: Resource path (e.g. '/invoices/abc/pdf')
            destination: Target file path
            endpoint: Path template for metrics

        Returns:
            Number of bytes written

        Raises:
            Unauthorized, NotFound, ServerError, NetworkError
        """
        endpoint = endpoint or path
        headers = self._auth_headers(authenticated=True)
        start_time = time.time()
        size = 0

        try:
            async with self._client.stream("GET", path, headers=headers) as response:
                metrics.backend_requests_total.labels(
                    method="GET", endpoint=endpoint, status=response.status_code
                ).inc()
                if response.is_error:
                    await response.aread()
                    self._raise_for_status(response, authenticated=True)

                destination.parent.mkdir(parents=True, exist_ok=True)
                with destination.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
                        size += len(chunk)

        except httpx.TransportError as e:
            metrics.backend_requests_total.labels(
                method="GET", endpoint=endpoint, status="error"
            ).inc()
            destination.unlink(missing_ok=True)
            logger.error(f"Download of {path} failed: {e}")
            raise NetworkError(f"Could not reach billing backend: {e}") from e
        except Exception:
            destination.unlink(missing_ok=True)
            raise
        finally:
            metrics.backend_request_duration_seconds.labels(
                method="GET", endpoint=endpoint
            ).observe(time.time() - start_time)

        logger.info(f"Downloaded {path} to {destination} ({size} bytes)")
        return size

    def _auth_headers(self, authenticated: bool) -> dict[str, str]:
        """Build request headers, refusing to send an unauthenticated call.

        Raises:
            Unauthorized: If the call needs a credential and none is held
        """
        if not authenticated:
            return {}
        headers = self.session.authorization_header()
        if not headers:
            raise Unauthorized("Not signed in")
        return headers

    def _retrying(self, method: str) -> AsyncRetrying:
        """Retry policy: GETs retry on transport errors, writes are sent once."""
        attempts = self.settings.backend_retry_attempts if method == "GET" else 1
        wait = self.settings.backend_retry_wait_seconds
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=wait, max=wait * 8) + wait_random(0, wait),
            stop=stop_after_attempt(attempts),
            reraise=True,
        )

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        headers: dict[str, str],
    ) -> httpx.Response:
        async for attempt in self._retrying(method):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying {method} {path} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                return await self._client.request(method, path, json=json, headers=headers)
        raise RuntimeError("Retry loop exited without a response")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        endpoint: str | None = None,
        authenticated: bool = True,
    ) -> Any:
        endpoint = endpoint or path
        headers = self._auth_headers(authenticated)
        start_time = time.time()

        try:
            response = await self._send(method, path, json, headers)
        except httpx.TransportError as e:
            metrics.backend_requests_total.labels(
                method=method, endpoint=endpoint, status="error"
            ).inc()
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(f"Could not reach billing backend: {e}") from e
        finally:
            metrics.backend_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(time.time() - start_time)

        metrics.backend_requests_total.labels(
            method=method, endpoint=endpoint, status=response.status_code
        ).inc()
        logger.debug(f"{method} {path} -> {response.status_code}")

        self._raise_for_status(response, authenticated)
        return self._unwrap(response)

    def _raise_for_status(self, response: httpx.Response, authenticated: bool) -> None:
        """Map non-2xx responses onto the error taxonomy.

        A rejected credential expires the session so listeners can force re-login.
        """
        if response.is_success:
            return

        message = self._error_message(response)
        status_code = response.status_code

        if status_code in (401, 403):
            if authenticated:
                self.session.expire()
            raise Unauthorized(message)
        if status_code == 404:
            raise NotFound(message)

        logger.error(f"Backend error {status_code}: {message}")
        raise ServerError(message, status_code=status_code)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the backend's error message, falling back to the status text."""
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            for key in ("message", "detail", "error"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value

        if payload is None and response.text:
            text = response.text.strip()[:200]
            if text:
                return text
        return f"Request failed with status {response.status_code}"

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """Unwrap the ``{data: ...}`` envelope.

        Returns:
            The envelope's data, the raw JSON if no envelope is present,
            or None for empty bodies

        Raises:
            ServerError: If a non-empty body is not valid JSON
        """
        if response.status_code == 204 or not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise ServerError(
                "Malformed response from billing backend", status_code=response.status_code
            ) from e

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload
