# Overview: Flask API routes for the stock ledger; read-only.

from flask import Blueprint, request, jsonify

from ..services.ledger_service import list_stock_transactions
from ..services.state_store import get_state_store

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/stock-transactions")


@ledger_bp.get("")
def list_stock_transactions_route():
    """Ledger entries in append order, optionally filtered by ?productId=."""
    product_id = request.args.get("productId") or None
    entries = list_stock_transactions(get_state_store(), product_id=product_id)
    return jsonify([t.to_dict() for t in entries]), 200
