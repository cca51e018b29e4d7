from __future__ import annotations

from ..extensions import db
from mercado.time_utils import to_utc_z, utcnow


PRODUCT_CATEGORIES = (
    "dairy",
    "beverages",
    "cleaning",
    "fruits",
    "vegetables",
    "meat",
    "bakery",
    "other",
)


def money(value) -> float | None:
    """Render a Numeric column for JSON."""
    if value is None:
        return None
    return float(value)


class Product(db.Model):
    """
    Product master data.

    CODE: Product.code is the business identifier printed on shelves and
    receipts. It is distinct from the storage key (id) and unique.

    STOCK: Integer on-hand count, never negative (CHECK constraint). The sale
    engine only reads products and adjusts stock; it never creates or
    deletes them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_products_discount_range"),
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(32), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    barcode = db.Column(db.String(64), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)

    # Flat percentage (0-100) applied when a sale line has no override
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    expiration_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "price": money(self.price),
            "cost": money(self.cost),
            "stock": self.stock,
            "category": self.category,
            "isActive": self.is_active,
            "barcode": self.barcode,
            "supplier": self.supplier,
            "discount": money(self.discount),
            "expirationDate": self.expiration_date.isoformat() if self.expiration_date else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
