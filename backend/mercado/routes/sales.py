# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/mercado/routes/sales.py
"""Sales API routes. Every route requires a bearer token."""

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service, sales_service
from ..services.sale_filters import effective_sale_filters, parse_sale_filters
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query: startDate, endDate, paymentStatus, paymentMethod, customerId, sellerId.
    Non-admins only see sales they sold.
    """
    filters = effective_sale_filters(g.principal, parse_sale_filters(request.args))
    sales = sales_service.list_sales(filters)
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.get("/stats")
@require_auth
def sales_stats_route():
    """
    Sales statistics. Cancelled sales never contribute.

    Same query parameters and scoping as the list route.
    """
    filters = effective_sale_filters(g.principal, parse_sale_filters(request.args))
    return jsonify(reporting_service.sales_stats(filters)), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Create a sale and take its items out of stock.

    Body: {items: [{product, quantity, discount?}], paymentMethod,
    paymentStatus?, customer?, notes?, tax?}
    The seller is the authenticated user.
    """
    data = request.get_json(silent=True)
    sale = sales_service.create_sale(data, seller_id=g.current_user.id)
    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.put("/<int:sale_id>/payment-status")
@require_auth
def update_payment_status_route(sale_id: int):
    """
    Body: {paymentStatus, paymentMethod?}. Does not touch inventory.
    """
    data = request.get_json(silent=True) or {}
    sale = sales_service.update_payment_status(
        sale_id,
        data.get("paymentStatus"),
        data.get("paymentMethod"),
    )
    return jsonify({"message": "Payment status updated", "sale": sale.to_dict()}), 200


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: int):
    """Cancel a sale and restore its stock. No body."""
    sale = sales_service.cancel_sale(sale_id, actor_user_id=g.current_user.id)
    return jsonify({"message": "Sale cancelled", "sale": sale.to_dict()}), 200
