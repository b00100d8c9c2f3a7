"""
Gateway-mediated checkout tests (in-process gateway).

Verifies:
- Phase 1 checks stock, opens a session carrying the cart, creates nothing locally
- Phase 2 refuses unpaid sessions without side effects
- Phase 2 places the order with the gateway-confirmed total
- Replaying a verified session places a second order (known defect, asserted as-is)
"""

import json

import pytest

from stockai.models import Order
from stockai.services import checkout_service
from stockai.services.checkout_service import CartItem, CheckoutError, InsufficientStockError
from stockai.services.payment_gateway import InMemoryGateway, PaymentGatewayError, build_gateway, StripeGateway


@pytest.fixture
def buyer(make_user):
    return make_user("bea", role="user")


@pytest.fixture
def buyer_headers(buyer, auth_for):
    return auth_for(buyer)


@pytest.fixture
def widget(make_product):
    return make_product("Widget", price="10.00", quantity=5, product_id=7)


def _open_session(client, headers, items):
    resp = client.post("/api/sales/create-checkout-session", json={"items": items}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


class TestCreateSession:

    def test_returns_id_and_url_and_creates_nothing(self, client, buyer, buyer_headers, widget, gateway, table_counts):
        before = table_counts()
        body = _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])

        assert body["id"].startswith("cs_test_")
        assert body["url"].endswith(body["id"])
        assert table_counts() == before

        session = gateway.retrieve_session(body["id"])
        assert session.payment_status == "unpaid"
        assert session.amount_total_cents == 3000
        assert session.metadata["user_id"] == str(buyer.id)
        assert json.loads(session.metadata["items"]) == [
            {"product_id": 7, "quantity": 3, "price_cents": 1000}
        ]

    def test_insufficient_stock_blocks_session(self, client, buyer_headers, widget, gateway):
        resp = client.post(
            "/api/sales/create-checkout-session",
            json={"items": [{"product_id": 7, "quantity": 6, "price": 10}]},
            headers=buyer_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Insufficient stock for product id 7"
        assert gateway.sessions == {}

    def test_stock_is_not_reserved(self, client, buyer_headers, widget, gateway, stock_of):
        _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])
        assert stock_of(7) == 5

    def test_redirect_urls_use_client_url(self, app, buyer, widget, gateway, monkeypatch):
        captured = {}
        original = gateway.create_session

        def spy(line_items, success_url, cancel_url, metadata):
            captured.update(success_url=success_url, cancel_url=cancel_url, names=[i.name for i in line_items])
            return original(line_items, success_url, cancel_url, metadata)

        monkeypatch.setattr(gateway, "create_session", spy)
        checkout_service.create_checkout_session(buyer.id, [CartItem(7, 1, 1000)], gateway)

        assert captured["success_url"].startswith("http://testclient.local/payment-success")
        assert "{CHECKOUT_SESSION_ID}" in captured["success_url"]
        assert captured["cancel_url"] == "http://testclient.local/cart"
        assert captured["names"] == ["Widget"]


class TestVerifyPayment:

    def test_unpaid_session_fails_without_side_effects(self, client, buyer_headers, widget, gateway, table_counts, stock_of):
        body = _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])
        before = table_counts()

        resp = client.post("/api/sales/verify-payment", json={"sessionId": body["id"]}, headers=buyer_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Payment not completed"
        assert table_counts() == before
        assert stock_of(7) == 5

    def test_paid_session_places_order_with_gateway_total(self, client, buyer, buyer_headers, widget, gateway, stock_of, db_session):
        body = _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])
        session = gateway.mark_paid(body["id"])
        # Gateway-confirmed total wins over the cart's own prices
        session.amount_total_cents = 2700

        resp = client.post("/api/sales/verify-payment", json={"sessionId": body["id"]}, headers=buyer_headers)

        assert resp.status_code == 201
        data = resp.get_json()
        order = db_session.get(Order, data["orderId"])
        assert order.total_amount_cents == 2700
        assert order.payment_session_id == body["id"]
        assert order.user_id == buyer.id
        assert [(s["product_id"], s["quantity"]) for s in data["sales"]] == [(7, 3)]
        assert stock_of(7) == 2

    def test_stock_gone_between_phases_fails_atomically(self, client, buyer_headers, widget, gateway, db_session, table_counts, stock_of):
        body = _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])
        gateway.mark_paid(body["id"])
        widget.inventory.quantity = 1
        db_session.commit()
        before = table_counts()

        resp = client.post("/api/sales/verify-payment", json={"sessionId": body["id"]}, headers=buyer_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Insufficient stock for product id 7"
        assert table_counts() == before
        assert stock_of(7) == 1

    def test_replay_creates_second_order(self, client, buyer_headers, make_product, gateway, db_session, stock_of):
        """
        Documented defect: no "already processed" marker exists, so the same
        paid session can be verified twice. This asserts current behavior.
        """
        make_product("Widget", price="10.00", quantity=10, product_id=7)
        body = _open_session(client, buyer_headers, [{"product_id": 7, "quantity": 3, "price": 10}])
        gateway.mark_paid(body["id"])

        first = client.post("/api/sales/verify-payment", json={"sessionId": body["id"]}, headers=buyer_headers)
        second = client.post("/api/sales/verify-payment", json={"sessionId": body["id"]}, headers=buyer_headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.get_json()["orderId"] != second.get_json()["orderId"]
        assert db_session.query(Order).filter_by(payment_session_id=body["id"]).count() == 2
        assert stock_of(7) == 4

    def test_missing_session_id(self, client, buyer_headers, gateway):
        resp = client.post("/api/sales/verify-payment", json={}, headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Session ID is required"

    def test_unknown_session_is_gateway_error(self, client, buyer_headers, gateway):
        resp = client.post("/api/sales/verify-payment", json={"sessionId": "cs_test_nope"}, headers=buyer_headers)
        assert resp.status_code == 502

    def test_corrupt_metadata_rejected(self, buyer, gateway, table_counts):
        session = gateway.create_session([], "s", "c", {"user_id": str(buyer.id), "items": "{not json"})
        gateway.mark_paid(session.id)
        before = table_counts()
        with pytest.raises(CheckoutError):
            checkout_service.verify_payment(session.id, gateway)
        assert table_counts() == before


class TestGatewayFactory:

    def test_memory_gateway_by_default(self):
        assert isinstance(build_gateway({"PAYMENT_GATEWAY": "memory"}), InMemoryGateway)

    def test_stripe_requires_key(self):
        with pytest.raises(PaymentGatewayError):
            build_gateway({"PAYMENT_GATEWAY": "stripe", "STRIPE_SECRET_KEY": None})

    def test_stripe_gateway_built_with_key(self):
        gw = build_gateway({"PAYMENT_GATEWAY": "stripe", "STRIPE_SECRET_KEY": "sk_test_x", "PAYMENT_CURRENCY": "eur"})
        assert isinstance(gw, StripeGateway)
        assert gw.currency == "eur"

    def test_unknown_gateway_rejected(self):
        with pytest.raises(ValueError):
            build_gateway({"PAYMENT_GATEWAY": "carrier-pigeon"})

    def test_insufficient_stock_error_is_a_checkout_error(self):
        assert issubclass(InsufficientStockError, CheckoutError)
