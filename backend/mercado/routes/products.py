# Overview: Flask API routes for product reads and stock adjustment.

from flask import Blueprint, request, jsonify, g

from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import inventory_service, products_service
from ..decorators import require_auth, require_role


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
@require_auth
def list_products_route():
    """
    List products.

    Query: category, active (true/false), minPrice, maxPrice, search.
    Non-admins only see active products.
    """
    active = request.args.get("active")
    active_filter = None if active is None else active.lower() == "true"
    if not g.principal.is_admin:
        active_filter = True

    products = products_service.list_products(
        category=request.args.get("category") or None,
        active=active_filter,
        min_price=request.args.get("minPrice") or None,
        max_price=request.args.get("maxPrice") or None,
        search=request.args.get("search") or None,
    )
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = inventory_service.get_product(product_id)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("/<int:product_id>/stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def adjust_stock_route(product_id: int):
    """
    Adjust stock manually.

    Body: {operation: add|subtract|set, quantity}
    """
    data = request.get_json(silent=True) or {}
    product = inventory_service.adjust_stock(
        product_id,
        data.get("operation"),
        data.get("quantity"),
    )
    return jsonify({"message": "Stock updated", "product": product.to_dict()}), 200
