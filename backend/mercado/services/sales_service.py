"""
Sales Service - Sale Transaction Engine

create_sale, cancel_sale and update_payment_status are the only writers of
the sale ledger. Create and cancel change stock and the ledger inside one
unit of work: either everything commits or nothing does.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InsufficientStock, InvalidState, NotFound, ValidationError
from ..extensions import db
from ..models import Sale, SaleLine, User
from ..models.sales import PAYMENT_METHODS, PAYMENT_STATUSES, STATUS_CANCELLED
from ..time_utils import utcnow
from ..validation import SaleItemRequest, SaleRequest, parse_sale_request, require_choice
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .inventory_service import lookup_product, reserve_stock, restore_stock
from .sale_filters import SaleFilters, apply_sale_filters
from .sequence_service import next_sale_number, resync_sale_sequence

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def line_subtotal(quantity: int, unit_price: Decimal, discount: Decimal) -> Decimal:
    """quantity x unit_price x (1 - discount/100), rounded to cents."""
    gross = Decimal(quantity) * Decimal(unit_price)
    return (gross * (1 - Decimal(discount) / HUNDRED)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _build_line(position: int, item: SaleItemRequest) -> SaleLine:
    """Resolve, check, snapshot and reserve one requested item."""
    product = lookup_product(item.product, for_update=True)
    if product is None:
        raise NotFound(
            f"Product {item.product} not found",
            details={"product": item.product},
        )

    # reserve_stock re-checks atomically at the database
    if product.stock < item.quantity:
        logger.warning("Insufficient stock for %s: available %s, requested %s",
                       product.name, product.stock, item.quantity)
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=product.stock,
            requested=item.quantity,
        )

    if item.discount is not None:
        discount = item.discount
    elif product.discount is not None:
        discount = Decimal(product.discount)
    else:
        discount = Decimal("0")

    line = SaleLine(
        position=position,
        product_id=product.id,
        product_code=product.code,
        product_name=product.name,
        quantity=item.quantity,
        unit_price=product.price,
        discount=discount,
        subtotal=line_subtotal(item.quantity, product.price, discount),
    )

    reserve_stock(product, item.quantity)
    return line


def _insert_sale(request: SaleRequest, seller_id: int) -> Sale:
    if request.customer_id is not None and db.session.get(User, request.customer_id) is None:
        raise NotFound("Customer not found", details={"customer": request.customer_id})

    lines = [_build_line(position, item) for position, item in enumerate(request.items)]
    total = sum((line.subtotal for line in lines), Decimal("0"))

    now = utcnow()
    sale = Sale(
        sale_number=next_sale_number(now.year),
        customer_id=request.customer_id,
        seller_id=seller_id,
        total_amount=total,
        tax=request.tax,
        payment_method=request.payment_method,
        payment_status=request.payment_status,
        notes=request.notes,
        created_at=now,
        updated_at=now,
        lines=lines,
    )
    db.session.add(sale)
    db.session.flush()
    return sale


def create_sale(payload: dict, seller_id: int) -> Sale:
    """
    Create a sale and take its items out of stock.

    Validation errors are raised before any database work. Missing products,
    insufficient stock and storage errors roll back every stock decrement
    made so far; no sale row is left behind.

    A collision on sale_number (another creator took the same number)
    re-syncs the year's counter from the ledger and retries the whole unit.
    """
    request = parse_sale_request(payload)

    def _op() -> Sale:
        with unit_of_work():
            sale = _insert_sale(request, seller_id)
        return sale

    def _on_retry(exc):
        if isinstance(exc, IntegrityError):
            logger.warning("Sale number collision, re-syncing counter")
            resync_sale_sequence(utcnow().year)

    sale = run_with_retry(
        _op,
        attempts=current_app.config.get("SALE_NUMBER_MAX_ATTEMPTS", 3),
        retry_on=(OperationalError, StaleDataError, IntegrityError),
        on_retry=_on_retry,
    )
    logger.info("Sale %s created (id=%s, total=%s)", sale.sale_number, sale.id, sale.total_amount)
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(filters: SaleFilters | None = None) -> list[Sale]:
    """Sales matching filters, newest first."""
    query = apply_sale_filters(db.session.query(Sale), filters or SaleFilters())
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def cancel_sale(sale_id: int, actor_user_id: int | None = None) -> Sale:
    """
    Cancel a sale and put its items back in stock.

    Not idempotent: cancelling a cancelled sale raises InvalidState.
    A line whose product no longer exists is skipped, not fatal.
    """
    def _op() -> Sale:
        with unit_of_work():
            sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
            if sale is None:
                raise NotFound("Sale not found", details={"sale_id": sale_id})

            if sale.is_cancelled:
                raise InvalidState("Sale already cancelled", details={"sale_id": sale_id})

            for line in sale.lines:
                if restore_stock(line.product_id, line.quantity):
                    logger.info("Stock restored for %s: +%s", line.product_name, line.quantity)
                else:
                    logger.warning("Product %s not found, stock not restored for sale %s",
                                   line.product_id, sale.sale_number)

            sale.payment_status = STATUS_CANCELLED
            sale.cancelled_at = utcnow()
            sale.cancelled_by_user_id = actor_user_id
        return sale

    sale = run_with_retry(_op)
    logger.info("Sale %s cancelled", sale.sale_number)
    return sale


def update_payment_status(sale_id: int, payment_status: str | None, payment_method: str | None = None) -> Sale:
    """
    Change payment status (and optionally method) of a live sale.

    Never touches inventory. Setting "cancelled" here does NOT restore
    stock; only cancel_sale does. The skipped restoration is logged at
    WARNING.
    """
    if not payment_status:
        raise ValidationError("paymentStatus is required")
    require_choice(payment_status, "paymentStatus", PAYMENT_STATUSES)
    if payment_method:
        require_choice(payment_method, "paymentMethod", PAYMENT_METHODS)

    def _op() -> Sale:
        with unit_of_work():
            sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
            if sale is None:
                raise NotFound("Sale not found", details={"sale_id": sale_id})

            if sale.is_cancelled:
                raise InvalidState("Cannot modify a cancelled sale", details={"sale_id": sale_id})

            if payment_status == STATUS_CANCELLED:
                logger.warning(
                    "Sale %s set to cancelled via payment status update; stock was not restored",
                    sale.sale_number,
                )
                sale.cancelled_at = utcnow()

            sale.payment_status = payment_status
            if payment_method:
                sale.payment_method = payment_method
        return sale

    return run_with_retry(_op)
