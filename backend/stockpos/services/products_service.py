# backend/stockpos/services/products_service.py
"""
Products Service

Products are created here and only ever mutated afterwards by the sales
service (quantity/updatedAt).
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..config import Config
from ..models import Product
from ..time_utils import now_iso
from ..validation import (
    parse_int,
    parse_number,
    parse_optional_str,
    parse_required_str,
)
from .concurrency import state_lock
from .identifier_service import IdGenerator, new_id

logger = logging.getLogger(__name__)


class ProductPersistenceError(Exception):
    """The store refused the write; the product was not created."""


def list_products(store) -> list[Product]:
    return list(store.load().products)


def get_product(store, product_id: str) -> Product | None:
    return store.load().find_product(product_id)


def build_product(
    payload: Any,
    *,
    now: datetime | None = None,
    id_factory: IdGenerator = new_id,
    default_low_stock_threshold: int | None = None,
) -> Product:
    """
    Strictly parse a create payload into a new Product.

    Raises ValidationError for missing names, non-numeric or negative
    prices, and non-integer or negative quantities/thresholds.
    """
    if not isinstance(payload, dict):
        payload = {}

    threshold_raw = payload.get("lowStockThreshold")
    if threshold_raw is None or threshold_raw == "":
        threshold = (
            Config.DEFAULT_LOW_STOCK_THRESHOLD
            if default_low_stock_threshold is None
            else default_low_stock_threshold
        )
    else:
        threshold = parse_int(threshold_raw, "lowStockThreshold", minimum=0)

    stamp = now_iso(now)
    return Product(
        id=id_factory(),
        name=parse_required_str(payload.get("name"), "name"),
        category=parse_optional_str(payload.get("category"), "category"),
        price=parse_number(payload.get("price"), "price", minimum=0),
        quantity=parse_int(payload.get("quantity"), "quantity", minimum=0),
        lowStockThreshold=threshold,
        createdAt=stamp,
        updatedAt=stamp,
    )


def create_product(
    store,
    payload: Any,
    *,
    now: datetime | None = None,
    id_factory: IdGenerator = new_id,
    default_low_stock_threshold: int | None = None,
) -> Product:
    """Validate, append and persist one product."""
    product = build_product(
        payload,
        now=now,
        id_factory=id_factory,
        default_low_stock_threshold=default_low_stock_threshold,
    )

    with state_lock(store):
        state = store.load()
        next_state = replace(state, products=state.products + (product,))
        if not store.save(next_state):
            raise ProductPersistenceError("Failed to persist product")

    logger.info("Created product %s (%s) with quantity %d", product.id, product.name, product.quantity)
    return product
