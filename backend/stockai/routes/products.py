# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/stockai/routes/products.py
from flask import Blueprint, jsonify, request, g, current_app

from ..services import products_service
from ..services.products_service import ProductError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_module
from ..permissions import MODULE_PRODUCTS


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_module(MODULE_PRODUCTS)
def list_products_route():
    """
    List products newest first.

    Query params: page, limit, startDate, endDate (ISO dates on created_at).
    Tenants only see their own products.
    """
    try:
        result = products_service.list_products(
            g.current_user,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return jsonify(result), 200
    except ProductError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/stats")
@require_auth
@require_module(MODULE_PRODUCTS)
def product_stats_route():
    try:
        return jsonify(products_service.product_stats(g.current_user)), 200
    except Exception:
        current_app.logger.exception("Failed to compute product stats")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_module(MODULE_PRODUCTS)
def create_product_route():
    try:
        product = products_service.create_product(request.get_json(silent=True), g.current_user)
        return jsonify(products_service.product_with_stock(product)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ProductError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_module(MODULE_PRODUCTS)
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id, g.current_user)
        return jsonify(products_service.product_with_stock(product)), 200
    except ProductError as e:
        return jsonify({"error": str(e)}), e.status_code


@products_bp.put("/<int:product_id>")
@require_auth
@require_module(MODULE_PRODUCTS)
def update_product_route(product_id: int):
    try:
        product = products_service.update_product(product_id, request.get_json(silent=True), g.current_user)
        return jsonify(products_service.product_with_stock(product)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ProductError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_module(MODULE_PRODUCTS)
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id, g.current_user)
        return jsonify({"message": "Product deleted successfully"}), 200
    except ProductError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
