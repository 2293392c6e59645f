# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockpos/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service
from ..services.sales_service import SaleError, PersistenceError
from ..services.state_store import get_state_store


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """List every recorded sale, oldest first."""
    sales = sales_service.list_sales(get_state_store())
    return jsonify([sale.to_dict() for sale in sales]), 200


@sales_bp.post("")
def record_sale_route():
    """
    Record a sale: decrements stock and appends one ledger entry per item.

    The whole sale is stored or none of it is.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.record_sale(get_state_store(), data)
        return jsonify({"message": "Sale recorded", "sale": sale.to_dict()}), 201

    except PersistenceError as e:
        current_app.logger.error("Sale not persisted: %s", e)
        return jsonify({"error": str(e)}), 500
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500
