from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .models.sales import PAYMENT_METHODS, PAYMENT_STATUSES, STATUS_CANCELLED, STATUS_PENDING


@dataclass(frozen=True)
class SaleItemRequest:
    product: Any
    quantity: int
    discount: Decimal | None = None


@dataclass(frozen=True)
class SaleRequest:
    """
    Normalized sale creation payload.

    Built by parse_sale_request before any database work, so a malformed
    request never reaches the unit of work.
    """
    items: list[SaleItemRequest]
    payment_method: str
    payment_status: str = STATUS_PENDING
    customer_id: int | None = None
    notes: str | None = None
    tax: Decimal = field(default_factory=lambda: Decimal("0"))


def coerce_int(value: Any, name: str) -> int:
    """Strict integer: rejects bools, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number")
    try:
        # str() keeps floats like 0.1 from dragging binary noise along
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{name} must be a number")
    return number


def coerce_percentage(value: Any, name: str) -> Decimal:
    pct = coerce_decimal(value, name)
    if pct < 0 or pct > 100:
        raise ValidationError(f"{name} must be between 0 and 100")
    return pct


def require_choice(value: Any, name: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(
            f"{name} must be one of: {', '.join(choices)}",
            details={name: value},
        )
    return value


def _parse_item(index: int, raw: Any) -> SaleItemRequest:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    product = raw.get("product")
    if product is None or (isinstance(product, str) and not product.strip()) or isinstance(product, bool):
        raise ValidationError(f"items[{index}].product is required")

    if raw.get("quantity") is None:
        raise ValidationError(f"items[{index}].quantity is required")
    quantity = coerce_int(raw.get("quantity"), f"items[{index}].quantity")
    if quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be at least 1")

    discount = None
    if raw.get("discount") is not None:
        discount = coerce_percentage(raw["discount"], f"items[{index}].discount")

    return SaleItemRequest(product=product, quantity=quantity, discount=discount)


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Validate a sale creation payload.

    Shape: {items: [{product, quantity, discount?}], paymentMethod,
    paymentStatus?, customer?, notes?, tax?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("A sale must have at least one item")

    if not payload.get("paymentMethod"):
        raise ValidationError("paymentMethod is required")
    payment_method = require_choice(payload["paymentMethod"], "paymentMethod", PAYMENT_METHODS)

    payment_status = payload.get("paymentStatus") or STATUS_PENDING
    require_choice(payment_status, "paymentStatus", PAYMENT_STATUSES)
    if payment_status == STATUS_CANCELLED:
        raise ValidationError("A sale cannot be created as cancelled")

    items = [_parse_item(i, raw) for i, raw in enumerate(raw_items)]

    customer_id = None
    if payload.get("customer") is not None:
        customer_id = coerce_int(payload["customer"], "customer")

    tax = Decimal("0")
    if payload.get("tax") is not None:
        tax = coerce_decimal(payload["tax"], "tax")
        if tax < 0:
            raise ValidationError("tax must not be negative")

    notes = payload.get("notes")
    if notes is not None:
        notes = str(notes).strip() or None

    return SaleRequest(
        items=items,
        payment_method=payment_method,
        payment_status=payment_status,
        customer_id=customer_id,
        notes=notes,
        tax=tax,
    )
