"""
HTTP tests for the sales, products and health routes.

Verifies:
- Unauthenticated requests return 401
- Sale creation attributes the authenticated seller
- Non-admins only see and aggregate their own sales
- Service errors map to JSON bodies with the right status
"""

import pytest

from mercado.extensions import db
from mercado.models import Product


def _sale_body(*items, method="cash", **extra):
    body = {
        "items": [{"product": product.id, "quantity": qty} for product, qty in items],
        "paymentMethod": method,
    }
    body.update(extra)
    return body


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales/"),
            ("GET", "/api/sales/stats"),
            ("GET", "/api/sales/1"),
            ("POST", "/api/sales/"),
            ("PUT", "/api/sales/1/payment-status"),
            ("POST", "/api/sales/1/cancel"),
            ("GET", "/api/products/"),
            ("POST", "/api/products/1/stock"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_token(self, client, db_session):
        resp = client.get("/api/sales/", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


# =============================================================================
# CREATE / READ
# =============================================================================


class TestCreateSaleRoute:

    def test_create_returns_201(self, client, employee, employee_headers, product_a, product_b):
        resp = client.post("/api/sales/", json=_sale_body((product_a, 2), (product_b, 1)), headers=employee_headers)

        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["totalAmount"] == 3350.0
        assert sale["seller"]["id"] == employee.id
        assert sale["paymentStatus"] == "pending"
        assert sale["saleNumber"].startswith("V")
        assert [item["quantity"] for item in sale["items"]] == [2, 1]
        assert db.session.get(Product, product_a.id).stock == 48

    def test_seller_cannot_be_spoofed(self, client, employee, admin, employee_headers, product_a):
        body = _sale_body((product_a, 1), seller=admin.id)
        resp = client.post("/api/sales/", json=body, headers=employee_headers)

        assert resp.status_code == 201
        assert resp.json["sale"]["seller"]["id"] == employee.id

    def test_validation_error_400(self, client, employee_headers, product_a):
        resp = client.post("/api/sales/", json={"items": [], "paymentMethod": "cash"}, headers=employee_headers)
        assert resp.status_code == 400
        assert "error" in resp.json

    def test_non_json_body_400(self, client, employee_headers):
        resp = client.post("/api/sales/", data="nope", headers=employee_headers)
        assert resp.status_code == 400

    def test_insufficient_stock_409(self, client, employee_headers, product_c):
        resp = client.post("/api/sales/", json=_sale_body((product_c, 10)), headers=employee_headers)

        assert resp.status_code == 409
        assert "available 5, requested 10" in resp.json["error"]
        assert resp.json["details"]["available"] == 5
        assert db.session.get(Product, product_c.id).stock == 5

    def test_missing_product_404(self, client, employee_headers):
        resp = client.post(
            "/api/sales/",
            json={"items": [{"product": 4040, "quantity": 1}], "paymentMethod": "cash"},
            headers=employee_headers,
        )
        assert resp.status_code == 404

    def test_get_sale(self, client, employee_headers, product_a):
        created = client.post("/api/sales/", json=_sale_body((product_a, 1)), headers=employee_headers).json["sale"]

        resp = client.get(f"/api/sales/{created['id']}", headers=employee_headers)

        assert resp.status_code == 200
        assert resp.json["sale"]["saleNumber"] == created["saleNumber"]

    def test_get_missing_sale_404(self, client, employee_headers):
        resp = client.get("/api/sales/999", headers=employee_headers)
        assert resp.status_code == 404


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycleRoutes:

    def test_cancel_then_cancel_again(self, client, employee_headers, product_a):
        sale = client.post("/api/sales/", json=_sale_body((product_a, 3)), headers=employee_headers).json["sale"]

        first = client.post(f"/api/sales/{sale['id']}/cancel", headers=employee_headers)
        second = client.post(f"/api/sales/{sale['id']}/cancel", headers=employee_headers)

        assert first.status_code == 200
        assert first.json["sale"]["paymentStatus"] == "cancelled"
        assert first.json["sale"]["cancelledAt"] is not None
        assert second.status_code == 409
        assert db.session.get(Product, product_a.id).stock == 50

    def test_update_payment_status(self, client, employee_headers, product_a):
        sale = client.post("/api/sales/", json=_sale_body((product_a, 1)), headers=employee_headers).json["sale"]

        resp = client.put(
            f"/api/sales/{sale['id']}/payment-status",
            json={"paymentStatus": "completed", "paymentMethod": "debit_card"},
            headers=employee_headers,
        )

        assert resp.status_code == 200
        assert resp.json["sale"]["paymentStatus"] == "completed"
        assert resp.json["sale"]["paymentMethod"] == "debit_card"

    def test_update_payment_status_invalid(self, client, employee_headers, product_a):
        sale = client.post("/api/sales/", json=_sale_body((product_a, 1)), headers=employee_headers).json["sale"]

        resp = client.put(
            f"/api/sales/{sale['id']}/payment-status",
            json={"paymentStatus": "refunded"},
            headers=employee_headers,
        )
        assert resp.status_code == 400


# =============================================================================
# SCOPING
# =============================================================================


class TestScoping:

    def _seed(self, client, employee_headers, other_employee_headers, product_a, product_b):
        client.post("/api/sales/", json=_sale_body((product_a, 1)), headers=employee_headers)
        client.post("/api/sales/", json=_sale_body((product_b, 2), method="transfer"), headers=employee_headers)
        client.post("/api/sales/", json=_sale_body((product_a, 4)), headers=other_employee_headers)

    def test_employee_sees_only_own_sales(
        self, client, employee, other_employee, employee_headers, other_employee_headers, product_a, product_b
    ):
        self._seed(client, employee_headers, other_employee_headers, product_a, product_b)

        resp = client.get(f"/api/sales/?sellerId={other_employee.id}", headers=employee_headers)

        assert resp.status_code == 200
        sellers = {sale["seller"]["id"] for sale in resp.json["sales"]}
        assert sellers == {employee.id}
        assert len(resp.json["sales"]) == 2

    def test_admin_sees_everything(
        self, client, admin_headers, employee_headers, other_employee_headers, product_a, product_b
    ):
        self._seed(client, employee_headers, other_employee_headers, product_a, product_b)

        resp = client.get("/api/sales/", headers=admin_headers)

        assert len(resp.json["sales"]) == 3

    def test_admin_can_filter_by_seller(
        self, client, other_employee, admin_headers, employee_headers, other_employee_headers, product_a, product_b
    ):
        self._seed(client, employee_headers, other_employee_headers, product_a, product_b)

        resp = client.get(f"/api/sales/?sellerId={other_employee.id}", headers=admin_headers)

        assert [sale["seller"]["id"] for sale in resp.json["sales"]] == [other_employee.id]

    def test_stats_are_scoped(
        self, client, admin_headers, employee_headers, other_employee_headers, product_a, product_b
    ):
        self._seed(client, employee_headers, other_employee_headers, product_a, product_b)

        own = client.get("/api/sales/stats", headers=employee_headers).json
        everything = client.get("/api/sales/stats", headers=admin_headers).json

        assert own["totalSales"] == 2
        assert own["totalAmount"] == 3100.0
        assert everything["totalSales"] == 3
        assert everything["totalAmount"] == 7900.0

    def test_invalid_filter_400(self, client, employee_headers):
        resp = client.get("/api/sales/?startDate=2024-05-01&endDate=2024-04-01", headers=employee_headers)
        assert resp.status_code == 400


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductRoutes:

    def test_employee_cannot_adjust_stock(self, client, employee_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/stock",
            json={"operation": "add", "quantity": 5},
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_manager_adjusts_stock(self, client, manager_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/stock",
            json={"operation": "add", "quantity": 5},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json["product"]["stock"] == 55

    def test_list_hides_inactive_for_non_admin(self, client, employee_headers, admin_headers, product_a, product_b):
        product_b.is_active = False
        db.session.commit()

        own = client.get("/api/products/?active=false", headers=employee_headers).json["products"]
        admin = client.get("/api/products/?active=false", headers=admin_headers).json["products"]

        assert [p["code"] for p in own] == ["LAC-001"]
        assert [p["code"] for p in admin] == ["PAN-001"]


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"


def test_product_list_filters(client, employee_headers, product_a, product_b, product_c):
    resp = client.get("/api/products/?minPrice=1000&search=leche", headers=employee_headers)
    assert resp.status_code == 200
    assert [p["code"] for p in resp.json["products"]] == ["LAC-001"]

    bad = client.get("/api/products/?minPrice=abc", headers=employee_headers)
    assert bad.status_code == 400
