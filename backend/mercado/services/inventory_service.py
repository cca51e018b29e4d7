# Overview: Service-layer operations for inventory; product lookup and stock mutation.

"""
Inventory Store

Stock lives on Product.stock. Every mutation is a single UPDATE statement
evaluated by the database, never a read-compare-write in Python:

- reserve_stock: decrement only if stock >= quantity (sale creation)
- restore_stock: unconditional increment (sale cancellation)
- adjust_stock: manual add/subtract/set (back office)

reserve_stock and restore_stock do not commit; they run inside the caller's
unit of work so stock and the sale ledger change together.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm.util import identity_key

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update, run_with_retry, unit_of_work

logger = logging.getLogger(__name__)

STOCK_OPERATIONS = ("add", "subtract", "set")


def lookup_product(reference, *, for_update: bool = False) -> Product | None:
    """
    Resolve a product by storage id or business code.

    JSON integers are ids; strings are always codes, even all-digit ones.
    """
    query = db.session.query(Product)
    if isinstance(reference, int) and not isinstance(reference, bool):
        query = query.filter(Product.id == reference)
    elif isinstance(reference, str) and reference.strip():
        query = query.filter(Product.code == reference.strip())
    else:
        return None

    if for_update:
        query = lock_for_update(query)
    return query.first()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found", details={"product_id": product_id})
    return product


def reserve_stock(product: Product, quantity: int) -> None:
    """
    Decrement stock only if enough remains, as one conditional UPDATE.

    Zero affected rows means another writer took the stock first.
    """
    stmt = (
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    # Reload on next access so later lines see this decrement
    db.session.expire(product, ["stock"])

    if not result.rowcount:
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=product.stock,
            requested=quantity,
        )


def restore_stock(product_id: int | None, quantity: int) -> bool:
    """
    Increment stock unconditionally. Returns False if the product is gone.
    """
    if product_id is None:
        return False

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    product = db.session.identity_map.get(identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock"])

    return bool(result.rowcount)


def _coerce_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer")
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float) and value.is_integer():
        quantity = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        quantity = int(value.strip())
    else:
        raise ValidationError("quantity must be an integer")

    if quantity < 0:
        raise ValidationError("quantity must not be negative")
    return quantity


def adjust_stock(product_id: int, operation: str, quantity) -> Product:
    """
    Manually adjust a product's stock.

    - add: stock + quantity
    - subtract: stock - quantity, rejected if the result would be negative
    - set: stock = quantity
    """
    if operation not in STOCK_OPERATIONS:
        raise ValidationError(
            "operation must be one of: " + ", ".join(STOCK_OPERATIONS),
            details={"operation": operation},
        )
    qty = _coerce_quantity(quantity)

    def _op():
        with unit_of_work():
            product = lookup_product(product_id, for_update=True)
            if product is None:
                raise NotFound("Product not found", details={"product_id": product_id})

            if operation == "add":
                restore_stock(product.id, qty)
            elif operation == "subtract":
                reserve_stock(product, qty)
            else:
                product.stock = qty

        logger.info("Stock for product %s adjusted: %s %s -> %s", product.id, operation, qty, product.stock)
        return product

    return run_with_retry(_op)
