# backend/stockpos/routes/system.py
"""
System health endpoint and the static front-end.
"""

import os
import time
from flask import Blueprint, current_app, jsonify

from ..services.state_store import StateReadError, get_state_store

system_bp = Blueprint("system", __name__)


def check_store_health() -> dict:
    """
    Read the state document strictly and count its collections.
    An unreadable document is unhealthy even though load() would fail open.

    Returns dict with status and details.
    """
    start_time = time.time()
    store = get_state_store()
    try:
        state = store.load(strict=True)
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "backend": store.describe(),
            "details": {
                "products": len(state.products),
                "sales": len(state.sales),
                "customers": len(state.customers),
                "stock_transactions": len(state.stockTransactions),
            },
        }
    except StateReadError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("State store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "backend": store.describe(),
            "error": "State store error",
        }


@system_bp.get("/api/health")
def health():
    store_health = check_store_health()
    healthy = store_health["status"] == "healthy"
    body = {"status": "ok" if healthy else "error", "store": store_health}
    return jsonify(body), 200 if healthy else 503


@system_bp.get("/")
def index():
    """Serve the front-end entry page when one is deployed."""
    static_folder = current_app.static_folder
    if not static_folder or not os.path.isfile(os.path.join(static_folder, "index.html")):
        return jsonify({"error": "Not found"}), 404
    return current_app.send_static_file("index.html")
