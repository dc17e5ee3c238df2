"""Billing domain models.

Entities mirror the backend's JSON documents (camelCase keys, Mongo-style
``_id``). Drafts hold unvalidated form state and are plain dataclasses;
validated payloads are Pydantic models and are the only thing serialized
onto the wire.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from billing.invoices.totals import ZERO, compute_subtotal, compute_total, line_amount, to_decimal


class InvoiceStatus(str, Enum):
    """Closed set of invoice payment states."""

    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


def _strip_time(value: Any) -> Any:
    """Accept ISO datetimes for date fields by dropping the time part."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return value.split("T")[0]
    return value


class BackendModel(BaseModel):
    """Base model for documents exchanged with the backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# Entities


class Client(BackendModel):
    """Client billed by the account."""

    id: str = Field(alias="_id")
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""


class ClientRef(BackendModel):
    """Weak reference from an invoice to its client.

    The backend sends either a bare id or a populated client document.
    """

    id: str = Field(alias="_id")
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class LineItem(BackendModel):
    """One billable entry on an invoice.

    Documents from the backend are read leniently: a missing name becomes
    blank, and a quantity or price that is non-numeric, negative or (for
    quantity) fractional counts as 0, so one bad row never drops the
    whole invoice. Outgoing items are filtered by billable_items first.
    """

    name: str = ""
    quantity: int = Field(default=1, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> int:
        quantity = to_decimal(value)
        if quantity < 0 or quantity != quantity.to_integral_value():
            return 0
        return int(quantity)

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> Decimal:
        price = to_decimal(value)
        return price if price >= 0 else ZERO

    @property
    def amount(self) -> Decimal:
        """quantity * price"""
        return line_amount(self)

    @field_serializer("price", when_used="json")
    def _price_as_number(self, value: Decimal) -> float:
        return float(value)


class Invoice(BackendModel):
    """Invoice as listed by the backend.

    ``subtotal`` and ``total`` are always derived from items, tax and
    discount; a total reported by the server is ignored.
    """

    id: str = Field(alias="_id")
    invoice_number: str = ""
    client: ClientRef | None = Field(default=None, alias="clientId")
    items: list[LineItem] = Field(default_factory=list)
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    status: InvoiceStatus = InvoiceStatus.PENDING
    invoice_date: date | None = None
    due_date: date | None = None
    notes: str | None = None

    @field_validator("client", mode="before")
    @classmethod
    def _coerce_client(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"_id": value} if value else None
        return value

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if isinstance(item, (Mapping, LineItem))]
        return value

    @field_validator("tax", "discount", mode="before")
    @classmethod
    def _default_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("invoice_date", "due_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _strip_time(value)

    @property
    def client_id(self) -> str | None:
        return self.client.id if self.client else None

    @property
    def client_name(self) -> str:
        return (self.client.name or "") if self.client else ""

    @property
    def subtotal(self) -> Decimal:
        return compute_subtotal(self.items)

    @property
    def total(self) -> Decimal:
        return compute_total(self.items, self.tax, self.discount)


class CompanyProfile(BackendModel):
    """Per-account business profile shown on invoices."""

    business_name: str = ""
    address: str = ""
    phone: str = ""
    logo: str = ""


# Drafts (unvalidated form state)


@dataclass
class ClientDraft:
    """Client form state."""

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @classmethod
    def from_client(cls, client: Client) -> "ClientDraft":
        """Prefill the edit form from an existing client."""
        return cls(name=client.name, email=client.email, phone=client.phone, address=client.address)


@dataclass
class InvoiceDraft:
    """New-invoice form state.

    Items are raw form rows (mappings or LineItem); blank rows are allowed
    and are dropped on submission.
    """

    client_id: str = ""
    items: list[Any] = field(default_factory=lambda: [{"name": "", "quantity": 1, "price": 0}])
    tax: Any = 0
    discount: Any = 0
    due_date: date | str | None = None
    invoice_date: date | str | None = None
    notes: str = ""

    @property
    def total(self) -> Decimal:
        """Running total shown while the form is edited."""
        return compute_total(self.items, self.tax, self.discount)


@dataclass
class InvoicePatch:
    """Edit-invoice form state; None means 'leave unchanged'."""

    items: list[Any] | None = None
    tax: Any = None
    discount: Any = None
    due_date: date | str | None = None
    notes: str | None = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoicePatch":
        """Prefill the edit form from an existing invoice."""
        return cls(
            items=[item.model_dump() for item in invoice.items],
            tax=invoice.tax,
            discount=invoice.discount,
            due_date=invoice.due_date,
            notes=invoice.notes or "",
        )


# Validated payloads (wire format)


class ClientPayload(BackendModel):
    """Validated client body for POST/PUT /clients."""

    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = ""
    address: str = ""

    @field_validator("name", "phone", "address", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class InvoicePayload(BackendModel):
    """Validated invoice body for POST /invoices. Never carries a total."""

    client_id: str
    items: list[LineItem] = Field(min_length=1)
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    due_date: date
    invoice_date: date | None = None
    notes: str = ""

    @field_serializer("tax", "discount", when_used="json")
    def _amount_as_number(self, value: Decimal) -> float:
        return float(value)
