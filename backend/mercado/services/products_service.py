# Overview: Catalog collaborator; product creation and listing used by the CLI, tests and read endpoints.

from __future__ import annotations

from datetime import date

from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import Product
from ..models.inventory import PRODUCT_CATEGORIES
from ..validation import coerce_decimal, coerce_int, coerce_percentage, require_choice


class ProductConflictError(ValidationError):
    """409-level business rule conflict (duplicate code)."""
    status_code = 409


def create_product(
    *,
    code: str,
    name: str,
    price,
    cost,
    category: str,
    stock=0,
    discount=0,
    description: str | None = None,
    barcode: str | None = None,
    supplier: str | None = None,
    expiration_date: date | None = None,
    is_active: bool = True,
) -> Product:
    code = (code or "").strip()
    name = (name or "").strip()
    if not code:
        raise ValidationError("code is required")
    if not name:
        raise ValidationError("name is required")

    price = coerce_decimal(price, "price")
    cost = coerce_decimal(cost, "cost")
    if price < 0 or cost < 0:
        raise ValidationError("price and cost must not be negative")

    stock = coerce_int(stock, "stock")
    if stock < 0:
        raise ValidationError("stock must not be negative")

    product = Product(
        code=code,
        name=name,
        description=description,
        price=price,
        cost=cost,
        stock=stock,
        category=require_choice(category, "category", PRODUCT_CATEGORIES),
        discount=coerce_percentage(discount, "discount"),
        barcode=barcode,
        supplier=supplier,
        expiration_date=expiration_date,
        is_active=is_active,
    )
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ProductConflictError(f"Product code '{code}' already exists", details={"code": code})
    return product


def list_products(
    *,
    category: str | None = None,
    active: bool | None = None,
    min_price=None,
    max_price=None,
    search: str | None = None,
) -> list[Product]:
    """
    Catalog listing, by name.

    search is a case-insensitive substring match on name, description or code.
    """
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == require_choice(category, "category", PRODUCT_CATEGORIES))
    if active is not None:
        query = query.filter(Product.is_active.is_(active))

    low = coerce_decimal(min_price, "minPrice") if min_price is not None else None
    high = coerce_decimal(max_price, "maxPrice") if max_price is not None else None
    if low is not None and high is not None and low > high:
        raise ValidationError("minPrice must not be greater than maxPrice")
    if low is not None:
        query = query.filter(Product.price >= low)
    if high is not None:
        query = query.filter(Product.price <= high)

    if search:
        search_term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Product.name.ilike(search_term),
                Product.description.ilike(search_term),
                Product.code.ilike(search_term),
            )
        )
    return query.order_by(Product.name.asc()).all()
