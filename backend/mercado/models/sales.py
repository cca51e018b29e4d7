from __future__ import annotations

from ..extensions import db
from .inventory import money
from mercado.time_utils import to_utc_z, utcnow


PAYMENT_CASH = "cash"
PAYMENT_CREDIT_CARD = "credit_card"
PAYMENT_DEBIT_CARD = "debit_card"
PAYMENT_TRANSFER = "transfer"

PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CREDIT_CARD, PAYMENT_DEBIT_CARD, PAYMENT_TRANSFER)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

PAYMENT_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)


class Sale(db.Model):
    """
    Sale record in the ledger.

    LIFECYCLE: pending -> completed, either -> cancelled. Cancelled is
    terminal: payment status, payment method and lines are frozen.

    TOTALS: total_amount is the sum of line subtotals computed once at
    creation. It is never recomputed.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "payment_status", "created_at"),
        db.Index("ix_sales_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "V2024-007"), assigned once
    sale_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Cancellation audit trail
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("User", foreign_keys=[customer_id])
    seller = db.relationship("User", foreign_keys=[seller_id])
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_cancelled(self) -> bool:
        return self.payment_status == STATUS_CANCELLED

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number!r} status={self.payment_status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleNumber": self.sale_number,
            "customer": self.customer.to_summary() if self.customer else None,
            "seller": self.seller.to_summary() if self.seller else None,
            "items": [line.to_dict() for line in self.lines],
            "totalAmount": money(self.total_amount),
            "tax": money(self.tax),
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "cancelledAt": to_utc_z(self.cancelled_at),
            "cancelledByUserId": self.cancelled_by_user_id,
        }


class SaleLine(db.Model):
    """
    Line item embedded in a sale.

    SNAPSHOT: product_code, product_name, unit_price and discount are copied
    from the catalog at sale time so history survives catalog edits and
    product deletion. product_id is a non-owning reference.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_lines_quantity_positive"),
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_sale_lines_discount_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_code = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product_id,
            "productCode": self.product_code,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": money(self.unit_price),
            "discount": money(self.discount),
            "subtotal": money(self.subtotal),
        }


class SaleSequence(db.Model):
    """
    Per-year sale number counter.

    next_number is the sequence the next sale of that year receives. Sales
    advance it with a single UPDATE inside their own transaction; a missing
    or stale row is re-derived from the ledger.
    """
    __tablename__ = "sale_sequences"
    __table_args__ = (
        db.UniqueConstraint("year", name="uq_sale_sequences_year"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
