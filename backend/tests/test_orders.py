"""
Order history, cancellation, dashboard and health tests.

Verifies:
- My Orders only lists the caller's orders
- All Orders search, status filter and sorting
- Order details visibility (owner or All Orders module)
- Cancelling restocks and is allowed once
- Single sale lines outside any order decrement stock or change nothing
- Dashboard aggregates exclude cancelled orders
"""

import pytest

from stockai.models import Order, Role, RolePermission
from stockai.services import checkout_service
from stockai.services.checkout_service import CartItem


@pytest.fixture
def shop(make_user, make_product):
    """Two customers, one admin and two stocked products."""
    return {
        "alice": make_user("alice"),
        "bob": make_user("bob"),
        "admin": make_user("ada", role="admin"),
        "lamp": make_product("Lamp", price="10.00", quantity=20, sku="LMP"),
        "mug": make_product("Mug", price="2.50", quantity=20, sku="MUG"),
    }


def _buy(user, *lines):
    items = [CartItem(product_id=p.id, quantity=q, price_cents=p.price_cents) for p, q in lines]
    order, _ = checkout_service.place_order(user.id, items)
    return order


class TestMyOrders:

    def test_only_own_orders(self, client, shop, auth_for):
        _buy(shop["alice"], (shop["lamp"], 1))
        _buy(shop["alice"], (shop["mug"], 2), (shop["lamp"], 1))
        _buy(shop["bob"], (shop["mug"], 1))

        data = client.get("/api/sales/my-orders", headers=auth_for(shop["alice"])).get_json()
        assert data["totalCount"] == 2
        assert {o["user_id"] for o in data["orders"]} == {shop["alice"].id}
        assert sorted(o["item_count"] for o in data["orders"]) == [1, 2]

    def test_empty_history(self, client, shop, auth_for):
        data = client.get("/api/sales/my-orders", headers=auth_for(shop["bob"])).get_json()
        assert data == {"orders": [], "totalCount": 0, "totalPages": 0, "currentPage": 1}


class TestAllOrders:

    def test_plain_user_denied(self, client, shop, auth_for):
        assert client.get("/api/sales/all-orders", headers=auth_for(shop["alice"])).status_code == 403

    def test_search_by_customer(self, client, shop, auth_for):
        _buy(shop["alice"], (shop["lamp"], 1))
        _buy(shop["bob"], (shop["mug"], 1))
        data = client.get("/api/sales/all-orders?search=bob", headers=auth_for(shop["admin"])).get_json()
        assert data["totalCount"] == 1
        assert data["orders"][0]["user_name"] == "bob"
        assert data["orders"][0]["user_email"] == "bob@stockai.test"

    def test_search_by_order_id(self, client, shop, auth_for):
        _buy(shop["alice"], (shop["lamp"], 1))
        order = _buy(shop["bob"], (shop["mug"], 1))
        data = client.get(f"/api/sales/all-orders?search={order.id}", headers=auth_for(shop["admin"])).get_json()
        assert order.id in [o["id"] for o in data["orders"]]

    def test_status_filter_and_sort(self, client, shop, auth_for):
        cheap = _buy(shop["alice"], (shop["mug"], 1))
        pricey = _buy(shop["alice"], (shop["lamp"], 3))
        cancelled = _buy(shop["bob"], (shop["lamp"], 1))
        checkout_service.cancel_order(cancelled.id)
        headers = auth_for(shop["admin"])

        data = client.get(
            "/api/sales/all-orders?status=completed&sortBy=total_amount&sortOrder=asc", headers=headers
        ).get_json()
        assert [o["id"] for o in data["orders"]] == [cheap.id, pricey.id]

        data = client.get("/api/sales/all-orders?status=cancelled", headers=headers).get_json()
        assert [o["id"] for o in data["orders"]] == [cancelled.id]

    def test_bad_date(self, client, shop, auth_for):
        resp = client.get("/api/sales/all-orders?startDate=soon", headers=auth_for(shop["admin"]))
        assert resp.status_code == 400


class TestOrderDetails:

    def test_owner_sees_lines(self, client, shop, auth_for):
        order = _buy(shop["alice"], (shop["lamp"], 2), (shop["mug"], 1))
        resp = client.get(f"/api/sales/orders/{order.id}", headers=auth_for(shop["alice"]))
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["order"]["total_amount"] == 22.5
        assert [(i["product_name"], i["sku"], i["quantity"]) for i in data["items"]] == [
            ("Lamp", "LMP", 2),
            ("Mug", "MUG", 1),
        ]

    def test_other_customer_gets_404(self, client, shop, auth_for):
        order = _buy(shop["alice"], (shop["lamp"], 1))
        resp = client.get(f"/api/sales/orders/{order.id}", headers=auth_for(shop["bob"]))
        assert resp.status_code == 404

    def test_staff_with_all_orders_can_view(self, client, shop, auth_for):
        order = _buy(shop["alice"], (shop["lamp"], 1))
        resp = client.get(f"/api/sales/orders/{order.id}", headers=auth_for(shop["admin"]))
        assert resp.status_code == 200

    def test_missing_order(self, client, shop, auth_for):
        assert client.get("/api/sales/orders/999", headers=auth_for(shop["admin"])).status_code == 404


class TestCancel:

    def test_cancel_restocks(self, client, shop, auth_for, stock_of):
        order = _buy(shop["alice"], (shop["lamp"], 4), (shop["mug"], 3))
        assert stock_of(shop["lamp"].id) == 16
        assert stock_of(shop["mug"].id) == 17

        resp = client.post(f"/api/sales/orders/{order.id}/cancel", headers=auth_for(shop["admin"]))
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == "cancelled"
        assert stock_of(shop["lamp"].id) == 20
        assert stock_of(shop["mug"].id) == 20

    def test_cancel_twice_conflicts(self, client, shop, auth_for, stock_of):
        order = _buy(shop["alice"], (shop["lamp"], 4))
        headers = auth_for(shop["admin"])
        assert client.post(f"/api/sales/orders/{order.id}/cancel", headers=headers).status_code == 200
        resp = client.post(f"/api/sales/orders/{order.id}/cancel", headers=headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Cannot cancel order with status cancelled"
        assert stock_of(shop["lamp"].id) == 20

    def test_customer_cannot_cancel(self, client, shop, auth_for):
        order = _buy(shop["alice"], (shop["lamp"], 1))
        resp = client.post(f"/api/sales/orders/{order.id}/cancel", headers=auth_for(shop["alice"]))
        assert resp.status_code == 403

    def test_cancel_missing(self, client, shop, auth_for):
        assert client.post("/api/sales/orders/999/cancel", headers=auth_for(shop["admin"])).status_code == 404


class TestSalesListing:

    def test_sales_lines(self, client, shop, auth_for):
        _buy(shop["alice"], (shop["lamp"], 2), (shop["mug"], 1))
        data = client.get("/api/sales", headers=auth_for(shop["admin"])).get_json()
        assert data["totalCount"] == 2
        assert {s["product_name"] for s in data["sales"]} == {"Lamp", "Mug"}

    def test_record_single_sale(self, client, shop, auth_for, stock_of, db_session):
        resp = client.post(
            "/api/sales",
            json={"product_id": shop["lamp"].id, "quantity": 3, "total_amount": "30.00"},
            headers=auth_for(shop["admin"]),
        )
        assert resp.status_code == 201
        sale = resp.get_json()
        assert sale["order_id"] is None
        assert sale["quantity"] == 3
        assert sale["total_amount"] == 30.0
        assert stock_of(shop["lamp"].id) == 17
        assert db_session.query(Order).count() == 0

        stats = client.get("/api/stats", headers=auth_for(shop["admin"])).get_json()
        assert stats["revenue"] == 30.0

    def test_single_sale_shortage_changes_nothing(self, client, shop, auth_for, stock_of, table_counts):
        resp = client.post(
            "/api/sales",
            json={"product_id": shop["mug"].id, "quantity": 21, "total_amount": 52.5},
            headers=auth_for(shop["admin"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == f"Insufficient stock for product id {shop['mug'].id}"
        assert table_counts()["sales"] == 0
        assert stock_of(shop["mug"].id) == 20

    @pytest.mark.parametrize("payload", [
        {},
        {"product_id": 1, "quantity": 0, "total_amount": 1},
        {"product_id": 1, "quantity": 1},
        {"product_id": 1, "quantity": 1, "total_amount": -5},
    ])
    def test_single_sale_validation(self, client, shop, auth_for, payload):
        resp = client.post("/api/sales", json=payload, headers=auth_for(shop["admin"]))
        assert resp.status_code == 400

    def test_single_sale_requires_sales_module(self, client, shop, auth_for, table_counts):
        resp = client.post(
            "/api/sales",
            json={"product_id": shop["lamp"].id, "quantity": 1, "total_amount": 10},
            headers=auth_for(shop["alice"]),
        )
        assert resp.status_code == 403
        assert table_counts()["sales"] == 0


class TestDashboard:

    def test_stats_exclude_cancelled(self, client, shop, make_product, auth_for):
        make_product("Spare", quantity=1)
        _buy(shop["alice"], (shop["lamp"], 2))
        cancelled = _buy(shop["bob"], (shop["mug"], 4))
        checkout_service.cancel_order(cancelled.id)

        data = client.get("/api/stats", headers=auth_for(shop["admin"])).get_json()
        assert data["revenue"] == 20.0
        assert data["orders"] == 1
        assert data["users"] == 3
        assert data["lowStock"] == 1
        assert len(data["salesTrend"]) == 7
        assert data["salesTrend"][-1]["demand"] == 2
        assert sum(day["demand"] for day in data["salesTrend"]) == 2

    def test_dashboard_requires_module(self, client, make_user, auth_for, db_session):
        guest = Role(name="Guest", slug="guest")
        db_session.add(guest)
        db_session.commit()
        headers = auth_for(make_user("gina", role="guest"))
        assert db_session.query(RolePermission).filter_by(role_id=guest.id).count() == 0
        assert client.get("/api/stats", headers=headers).status_code == 403


class TestHealth:

    def test_healthy_when_seeded(self, client, setup_roles):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["access_control"]["details"]["super_admin_role"] is True

    def test_degraded_before_init(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"
