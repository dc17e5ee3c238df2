"""Money and totals calculation for invoices.

Pure functions, safe to call on every keystroke while a draft is edited:
- Line items may be LineItem models or plain mappings (form rows)
- Quantities and prices are coerced to Decimal; anything unparsable counts as 0
- Totals are never clamped; a negative total is rejected by validation instead
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce a user-entered or server value to Decimal.

    Args:
        value: Number, numeric string, Decimal or anything else

    Returns:
        Decimal value, or 0 for None, blanks, booleans, NaN/Infinity and garbage
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


def item_field(item: Any, name: str) -> Any:
    """Read ``name`` from a LineItem model or a mapping form row."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def line_amount(item: Any) -> Decimal:
    """Return quantity * price for one line item."""
    return to_decimal(item_field(item, "quantity")) * to_decimal(item_field(item, "price"))


def compute_subtotal(items: Iterable[Any] | None) -> Decimal:
    """Sum quantity * price over all line items.

    Args:
        items: LineItem models or mappings with 'quantity' and 'price'

    Returns:
        Subtotal as Decimal (0 for no items)
    """
    return sum((line_amount(item) for item in items or ()), ZERO)


def compute_total(items: Iterable[Any] | None, tax: Any = 0, discount: Any = 0) -> Decimal:
    """Compute subtotal + tax - discount.

    Tax and discount are absolute currency amounts.

    Args:
        items: LineItem models or mappings
        tax: Absolute tax amount
        discount: Absolute discount amount

    Returns:
        Grand total as Decimal, possibly negative
    """
    return compute_subtotal(items) + to_decimal(tax) - to_decimal(discount)


def format_amount(value: Any, symbol: str = "$") -> str:
    """Format an amount for display, e.g. '$1,234.50' or '-$20.00'."""
    amount = to_decimal(value).quantize(Decimal("0.01"))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
