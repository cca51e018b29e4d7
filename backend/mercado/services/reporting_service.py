# Overview: Service-layer operations for reporting; read-only rollups over the sale ledger.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Sale, SaleLine
from ..models.inventory import money
from ..models.sales import STATUS_CANCELLED
from .sale_filters import SaleFilters, apply_sale_filters


def _live_sales(filters: SaleFilters, *columns):
    """Query over non-cancelled sales matching filters. Cancelled sales never count."""
    query = (
        db.session.query(*columns)
        .select_from(Sale)
        .filter(Sale.payment_status != STATUS_CANCELLED)
    )
    return apply_sale_filters(query, filters)


def _day_label(value) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def sales_totals(filters: SaleFilters) -> tuple[int, float]:
    count, total = _live_sales(
        filters,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
    ).one()
    return int(count or 0), money(total or 0)


def payment_method_breakdown(filters: SaleFilters) -> list[dict]:
    total_expr = func.sum(Sale.total_amount)
    rows = (
        _live_sales(filters, Sale.payment_method, func.count(Sale.id).label("count"), total_expr.label("total"))
        .group_by(Sale.payment_method)
        .order_by(total_expr.desc(), Sale.payment_method.asc())
        .all()
    )
    return [
        {"paymentMethod": row.payment_method, "count": int(row.count), "total": money(row.total)}
        for row in rows
    ]


def payment_status_breakdown(filters: SaleFilters) -> list[dict]:
    rows = (
        _live_sales(
            filters,
            Sale.payment_status,
            func.count(Sale.id).label("count"),
            func.sum(Sale.total_amount).label("total"),
        )
        .group_by(Sale.payment_status)
        .order_by(Sale.payment_status.asc())
        .all()
    )
    return [
        {"paymentStatus": row.payment_status, "count": int(row.count), "total": money(row.total)}
        for row in rows
    ]


def top_products(filters: SaleFilters, limit: int = 5) -> list[dict]:
    """Products by total quantity sold, across every line of matching sales."""
    quantity_expr = func.sum(SaleLine.quantity)
    rows = (
        _live_sales(
            filters,
            SaleLine.product_id,
            SaleLine.product_name,
            quantity_expr.label("total_quantity"),
            func.sum(SaleLine.subtotal).label("total_amount"),
        )
        .join(SaleLine, SaleLine.sale_id == Sale.id)
        .group_by(SaleLine.product_id, SaleLine.product_name)
        .order_by(quantity_expr.desc(), SaleLine.product_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "productId": row.product_id,
            "productName": row.product_name,
            "totalQuantity": int(row.total_quantity),
            "totalAmount": money(row.total_amount),
        }
        for row in rows
    ]


def sales_by_day(filters: SaleFilters, limit: int = 30) -> list[dict]:
    """Daily count and total, most recent day first."""
    day_expr = func.date(Sale.created_at)
    rows = (
        _live_sales(
            filters,
            day_expr.label("day"),
            func.count(Sale.id).label("count"),
            func.sum(Sale.total_amount).label("total"),
        )
        .group_by(day_expr)
        .order_by(day_expr.desc())
        .limit(limit)
        .all()
    )
    return [
        {"date": _day_label(row.day), "count": int(row.count), "total": money(row.total)}
        for row in rows
    ]


def sales_stats(filters: SaleFilters | None = None) -> dict:
    """
    Aggregate statistics over the sale ledger.

    Scoping (who may see which sales) is the caller's job; pass filters
    through effective_sale_filters first.
    """
    filters = filters or SaleFilters()
    total_sales, total_amount = sales_totals(filters)

    return {
        "totalSales": total_sales,
        "totalAmount": total_amount,
        "paymentMethods": payment_method_breakdown(filters),
        "paymentStatus": payment_status_breakdown(filters),
        "topProducts": top_products(filters, limit=current_app.config.get("STATS_TOP_PRODUCTS", 5)),
        "salesByDay": sales_by_day(filters, limit=current_app.config.get("STATS_DAY_LIMIT", 30)),
    }
