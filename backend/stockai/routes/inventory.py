# Overview: Flask API routes for inventory; parses input and returns JSON responses.

# backend/stockai/routes/inventory.py
from flask import Blueprint, jsonify, request, g, current_app

from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..validation import ValidationError
from ..decorators import require_auth, require_module
from ..permissions import MODULE_INVENTORY


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_module(MODULE_INVENTORY)
def list_inventory_route():
    try:
        result = inventory_service.list_inventory(
            g.current_user,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/product/<int:product_id>")
@require_auth
def product_stock_route(product_id: int):
    """Stock for one product; the cart uses this before adding items."""
    try:
        quantity = inventory_service.get_stock_for_product(product_id)
        return jsonify({"product_id": product_id, "quantity": quantity}), 200
    except InventoryError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/<int:inventory_id>")
@require_auth
@require_module(MODULE_INVENTORY)
def update_inventory_route(inventory_id: int):
    """Body: {"quantity"?, "low_stock_threshold"?}"""
    try:
        inv = inventory_service.update_inventory(inventory_id, request.get_json(silent=True), g.current_user)
        return jsonify(inv.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update inventory")
        return jsonify({"error": "Internal server error"}), 500
