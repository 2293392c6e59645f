# backend/stockpos/__init__.py
from __future__ import annotations

import logging

from flask import Flask, request

from .config import Config
from .extensions import db
from .services.state_store import STORE_EXTENSION_KEY, StateStore, build_state_store


def create_app(config: dict | None = None, store: StateStore | None = None) -> Flask:
    """
    Application factory.

    config overrides values from Config; store replaces the configured
    state store (tests pass an InMemoryStateStore).
    """
    settings = {k: getattr(Config, k) for k in dir(Config) if k.isupper()}
    settings.update(config or {})

    app = Flask(
        __name__,
        instance_relative_config=True,
        static_folder=settings["PUBLIC_DIR"],
        static_url_path="",
    )
    app.config.update(settings)

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    # Initialize extensions
    db.init_app(app)

    # Import models so create_all() sees state_documents
    from . import models  # noqa: F401

    state_store = store if store is not None else build_state_store(app.config)
    app.extensions[STORE_EXTENSION_KEY] = state_store
    with app.app_context():
        state_store.initialize()
    app.logger.info("State store ready: %s", state_store.describe())

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(ledger_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = app.config["CORS_ALLOWED_ORIGINS"]
        if "*" in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        else:
            return response
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
