"""Error taxonomy for the billing client.

Every failure raised by the core derives from BillingError, so call sites
can catch one type and surface ``str(error)`` to the user:

- ValidationError: client-side, raised before any request is issued
- Unauthorized: missing, invalid or expired bearer credential
- NotFound: entity no longer exists (e.g. deleted by another session)
- NetworkError: transport failure after retries
- ServerError: any other non-2xx response or a malformed envelope
"""


class BillingError(Exception):
    """Base class for all billing client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BillingError):
    """Draft failed client-side validation; nothing was sent."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class EmptyInvoice(ValidationError):
    """No billable line item remained after filtering the draft."""

    def __init__(self, message: str = "Please add at least one item with a name, quantity, and price") -> None:
        super().__init__(message, field="items")


class NegativeTotal(ValidationError):
    """Discount exceeds subtotal plus tax."""

    def __init__(self, message: str = "Discount cannot exceed subtotal plus tax") -> None:
        super().__init__(message, field="discount")


class NoOpTransition(ValidationError):
    """Requested status equals the current status."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Invoice is already {status}", field="status")
        self.status = status


class Unauthorized(BillingError):
    """Credential missing, invalid or expired. Caller must re-authenticate."""

    def __init__(self, message: str = "Session expired. Please sign in again.") -> None:
        super().__init__(message)


class NotFound(BillingError):
    """Requested entity does not exist on the backend."""


class NetworkError(BillingError):
    """Backend could not be reached."""


class ServerError(BillingError):
    """Backend answered with a non-2xx status or an unexpected payload.

    Attributes:
        status_code: HTTP status code, or None for malformed 2xx payloads
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
