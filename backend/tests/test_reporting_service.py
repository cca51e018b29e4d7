"""
Sales statistics tests.

Verifies:
- Cancelled sales never contribute to any aggregate
- Payment method breakdown is sorted by total, descending
- Top products count quantities across every line
- Daily rollup is most recent day first
- Filters narrow every aggregate
"""

from datetime import datetime

from mercado.extensions import db
from mercado.services import reporting_service, sales_service
from mercado.services.sale_filters import SaleFilters


def _create(seller, items, method="cash", status=None):
    payload = {
        "items": [{"product": product.id, "quantity": qty} for product, qty in items],
        "paymentMethod": method,
    }
    if status:
        payload["paymentStatus"] = status
    return sales_service.create_sale(payload, seller_id=seller.id)


def _backdate(sale, when):
    sale.created_at = when
    db.session.commit()


class TestSalesStats:

    def test_empty_ledger(self, db_session, app):
        stats = reporting_service.sales_stats()
        assert stats == {
            "totalSales": 0,
            "totalAmount": 0.0,
            "paymentMethods": [],
            "paymentStatus": [],
            "topProducts": [],
            "salesByDay": [],
        }

    def test_totals_exclude_cancelled(self, employee, product_a, product_b):
        _create(employee, [(product_a, 2), (product_b, 1)])
        cancelled = _create(employee, [(product_a, 5)])
        sales_service.cancel_sale(cancelled.id)

        stats = reporting_service.sales_stats()

        assert stats["totalSales"] == 1
        assert stats["totalAmount"] == 3350.0
        assert all(row["paymentStatus"] != "cancelled" for row in stats["paymentStatus"])

    def test_status_set_to_cancelled_is_excluded_too(self, employee, product_a):
        sale = _create(employee, [(product_a, 1)])
        sales_service.update_payment_status(sale.id, "cancelled")

        assert reporting_service.sales_stats()["totalSales"] == 0

    def test_cancelled_filter_yields_nothing(self, employee, product_a):
        sale = _create(employee, [(product_a, 1)])
        sales_service.cancel_sale(sale.id)

        stats = reporting_service.sales_stats(SaleFilters(payment_status="cancelled"))

        assert stats["totalSales"] == 0
        assert stats["totalAmount"] == 0.0

    def test_payment_methods_sorted_by_total(self, employee, product_a, product_b):
        _create(employee, [(product_b, 1)], method="cash")
        _create(employee, [(product_b, 1)], method="cash")
        _create(employee, [(product_a, 3)], method="credit_card")
        _create(employee, [(product_b, 1)], method="transfer")

        methods = reporting_service.sales_stats()["paymentMethods"]

        assert [row["paymentMethod"] for row in methods] == ["credit_card", "cash", "transfer"]
        assert methods[0] == {"paymentMethod": "credit_card", "count": 1, "total": 3600.0}
        assert methods[1] == {"paymentMethod": "cash", "count": 2, "total": 1900.0}

    def test_payment_status_breakdown(self, employee, product_a):
        _create(employee, [(product_a, 1)])
        _create(employee, [(product_a, 1)], status="completed")
        _create(employee, [(product_a, 2)], status="completed")

        statuses = reporting_service.sales_stats()["paymentStatus"]

        assert statuses == [
            {"paymentStatus": "completed", "count": 2, "total": 3600.0},
            {"paymentStatus": "pending", "count": 1, "total": 1200.0},
        ]

    def test_top_products_across_lines(self, employee, product_a, product_b, product_c):
        _create(employee, [(product_a, 2), (product_b, 1)])
        _create(employee, [(product_b, 4), (product_c, 1)])
        cancelled = _create(employee, [(product_c, 4)])
        sales_service.cancel_sale(cancelled.id)

        top = reporting_service.sales_stats()["topProducts"]

        assert [row["productName"] for row in top] == ["Pan de molde", "Leche entera", "Queso fresco"]
        assert top[0] == {
            "productId": product_b.id,
            "productName": "Pan de molde",
            "totalQuantity": 5,
            "totalAmount": 4750.0,
        }
        assert top[2]["totalQuantity"] == 1

    def test_top_products_limit(self, app, employee, product_a, product_b, product_c):
        _create(employee, [(product_a, 3), (product_b, 2), (product_c, 1)])

        assert len(reporting_service.top_products(SaleFilters(), limit=2)) == 2

    def test_sales_by_day_most_recent_first(self, employee, product_a, product_b):
        _backdate(_create(employee, [(product_a, 1)]), datetime(2024, 3, 1, 10, 0))
        _backdate(_create(employee, [(product_b, 1)]), datetime(2024, 3, 1, 18, 30))
        _backdate(_create(employee, [(product_a, 2)]), datetime(2024, 3, 3, 9, 0))

        by_day = reporting_service.sales_stats()["salesByDay"]

        assert by_day == [
            {"date": "2024-03-03", "count": 1, "total": 2400.0},
            {"date": "2024-03-01", "count": 2, "total": 2150.0},
        ]

    def test_filters_narrow_every_aggregate(self, employee, other_employee, product_a, product_b):
        _backdate(_create(employee, [(product_a, 1)]), datetime(2024, 3, 1, 10, 0))
        _backdate(_create(employee, [(product_b, 2)], method="transfer"), datetime(2024, 3, 5, 10, 0))
        _backdate(_create(other_employee, [(product_a, 3)]), datetime(2024, 3, 5, 11, 0))

        stats = reporting_service.sales_stats(SaleFilters(
            start_date=datetime(2024, 3, 2),
            seller_id=employee.id,
        ))

        assert stats["totalSales"] == 1
        assert stats["totalAmount"] == 1900.0
        assert stats["paymentMethods"] == [{"paymentMethod": "transfer", "count": 1, "total": 1900.0}]
        assert [row["productName"] for row in stats["topProducts"]] == ["Pan de molde"]
        assert stats["salesByDay"] == [{"date": "2024-03-05", "count": 1, "total": 1900.0}]
