# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockpos/routes/products.py
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..services.products_service import ProductPersistenceError
from ..services.state_store import get_state_store
from ..validation import ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """List all products. No filtering or pagination."""
    products = products_service.list_products(get_state_store())
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    product = products_service.get_product(get_state_store(), product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    lowStockThreshold defaults to DEFAULT_LOW_STOCK_THRESHOLD when omitted.
    """
    payload = request.get_json(silent=True) or {}

    try:
        created = products_service.create_product(
            get_state_store(),
            payload,
            default_low_stock_threshold=current_app.config["DEFAULT_LOW_STOCK_THRESHOLD"],
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductPersistenceError as e:
        current_app.logger.error("Product not persisted: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict()), 201
