# Overview: Flask API routes for checkout and orders; parses input and returns JSON responses.

# backend/stockai/routes/sales.py
"""Checkout and order API routes with module enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service, permission_service
from ..services.checkout_service import CheckoutError
from ..services.payment_gateway import PaymentGatewayError, get_gateway
from ..decorators import require_auth, require_module
from ..permissions import MODULE_CART, MODULE_SALES, MODULE_MY_ORDERS, MODULE_ALL_ORDERS


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _order_response(message: str, order, sales, status: int = 201):
    return jsonify({
        "message": message,
        "orderId": order.id,
        "order": order.to_dict(),
        "sales": [s.to_dict() for s in sales],
    }), status


@sales_bp.post("/checkout")
@require_auth
@require_module(MODULE_CART)
def checkout_route():
    """
    Direct checkout.

    Body: {"items": [{"product_id", "quantity", "price"}]}
    Invalid rows are skipped; any stock shortage aborts the whole order.
    """
    try:
        data = request.get_json(silent=True) or {}
        items = checkout_service.parse_cart_items(data.get("items"))
        order, sales = checkout_service.place_order(g.current_user.id, items)
        return _order_response("Order placed successfully", order, sales)

    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/create-checkout-session")
@require_auth
@require_module(MODULE_CART)
def create_checkout_session_route():
    """Gateway checkout, phase 1: returns {id, url} of the hosted payment page."""
    try:
        data = request.get_json(silent=True) or {}
        items = checkout_service.parse_cart_items(data.get("items"))
        session = checkout_service.create_checkout_session(g.current_user.id, items, get_gateway())
        return jsonify(session), 200

    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except PaymentGatewayError as e:
        current_app.logger.error("Payment gateway error: %s %s", e, e.details)
        return jsonify({"error": str(e)}), 502
    except Exception:
        current_app.logger.exception("Failed to create checkout session")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/verify-payment")
@require_auth
@require_module(MODULE_CART)
def verify_payment_route():
    """
    Gateway checkout, phase 2.

    Body: {"sessionId"}. Places the order when the session is paid.
    Submitting the same paid session again places another order.
    """
    try:
        data = request.get_json(silent=True) or {}
        session_id = data.get("sessionId") or data.get("session_id")
        order, sales = checkout_service.verify_payment(session_id, get_gateway())
        return _order_response("Payment verified and order placed", order, sales)

    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except PaymentGatewayError as e:
        current_app.logger.error("Payment gateway error: %s %s", e, e.details)
        return jsonify({"error": str(e)}), 502
    except Exception:
        current_app.logger.exception("Failed to verify payment")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_module(MODULE_SALES)
def list_sales_route():
    try:
        result = checkout_service.list_sales(request.args.get("page"), request.args.get("limit"))
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
@require_module(MODULE_SALES)
def record_sale_route():
    """Single sale line outside any order. Body: {"product_id", "quantity", "total_amount"}"""
    try:
        sale = checkout_service.record_sale(g.current_user.id, request.get_json(silent=True))
        return jsonify(sale.to_dict()), 201
    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/my-orders")
@require_auth
@require_module(MODULE_MY_ORDERS)
def my_orders_route():
    try:
        result = checkout_service.my_orders(
            g.current_user.id,
            request.args.get("page"),
            request.args.get("limit"),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/all-orders")
@require_auth
@require_module(MODULE_ALL_ORDERS)
def all_orders_route():
    """
    Query params: search, status, startDate, endDate, sortBy
    (created_at|total_amount|status|id), sortOrder (asc|desc), page, limit.
    """
    try:
        args = request.args
        result = checkout_service.all_orders(
            search=args.get("search"),
            status=args.get("status"),
            start_date=args.get("startDate"),
            end_date=args.get("endDate"),
            sort_by=args.get("sortBy"),
            sort_order=args.get("sortOrder"),
            page=args.get("page"),
            limit=args.get("limit"),
        )
        return jsonify(result), 200
    except CheckoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list all orders")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/orders/<int:order_id>")
@require_auth
def order_details_route(order_id: int):
    """Visible to the order's owner and to roles with the All Orders module."""
    try:
        details = checkout_service.get_order_details(order_id)
        if details["order"]["user_id"] != g.current_user.id and not permission_service.role_has_module(
            g.role, MODULE_ALL_ORDERS
        ):
            # Same response as a missing order
            return jsonify({"error": "Order not found"}), 404
        return jsonify(details), 200

    except CheckoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/orders/<int:order_id>/cancel")
@require_auth
@require_module(MODULE_ALL_ORDERS)
def cancel_order_route(order_id: int):
    try:
        order = checkout_service.cancel_order(order_id, actor_id=g.current_user.id)
        return jsonify({"message": "Order cancelled", "order": order.to_dict()}), 200
    except CheckoutError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
