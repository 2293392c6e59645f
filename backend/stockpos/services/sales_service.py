"""
Sales Service - atomic sale recording

WHY: The state store only replaces whole documents, so a multi-item sale is
made atomic by computing the complete next State in memory and handing it to
a single save() call. Either every quantity decrement, every ledger entry and
the sale record land together, or none of them do.

ORDER: each item is parsed, looked up and stock-checked in array order against
the current snapshot, and the first violation is reported. Nothing is mutated
until every item passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..models import Number, Product, Sale, SaleItem, State
from ..time_utils import now_iso
from ..validation import (
    ValidationError,
    parse_int,
    parse_number,
    parse_optional_str,
    parse_required_str,
)
from .concurrency import state_lock
from .identifier_service import IdGenerator, new_id
from .ledger_service import append_entries, sale_stock_out

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Walk-in Customer"
DEFAULT_PAYMENT_METHOD = "cash"


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidInput(SaleError):
    """Malformed or missing request fields."""


class ProductNotFound(SaleError):
    def __init__(self, product_id: Any):
        super().__init__(
            f"Product with ID {product_id} not found",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(SaleError):
    def __init__(self, product_id: str, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class PersistenceError(SaleError):
    """The store refused the write. Nothing was recorded; safe to retry."""


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: str
    name: str | None
    price: Number
    quantity: int


@dataclass(frozen=True)
class SaleRequest:
    # raw item objects; each is parsed by parse_sale_line when its turn comes
    items: tuple[Any, ...]
    total_amount: Number
    customer_name: str
    payment_method: str


def parse_sale_line(raw: Any, index: int) -> SaleLineRequest:
    """Strictly parse items[index]. Raises InvalidInput."""
    prefix = f"items[{index}]"
    if not isinstance(raw, dict):
        raise InvalidInput(f"{prefix} must be an object")

    name = raw.get("name")
    if name is not None and not isinstance(name, str):
        raise InvalidInput(f"{prefix}.name must be a string")

    try:
        return SaleLineRequest(
            product_id=parse_required_str(raw.get("productId"), f"{prefix}.productId"),
            name=name.strip() if name and name.strip() else None,
            price=parse_number(raw.get("price", 0), f"{prefix}.price", minimum=0),
            quantity=parse_int(raw.get("quantity"), f"{prefix}.quantity", minimum=1),
        )
    except ValidationError as e:
        raise InvalidInput(str(e))


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Parse the sale envelope. Raises InvalidInput on the first problem.

    Check order: items present, totalAmount valid, customerName and
    paymentMethod. Items themselves are parsed one at a time by _check_stock.
    """
    if not isinstance(payload, dict):
        payload = {}

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise InvalidInput("items array required")

    try:
        total_amount = parse_number(payload.get("totalAmount"), "totalAmount", minimum=0, exclusive=True)
    except ValidationError:
        raise InvalidInput("valid totalAmount required")

    try:
        customer_name = parse_optional_str(payload.get("customerName"), "customerName", default=DEFAULT_CUSTOMER_NAME)
        payment_method = parse_optional_str(payload.get("paymentMethod"), "paymentMethod", default=DEFAULT_PAYMENT_METHOD)
    except ValidationError as e:
        raise InvalidInput(str(e))

    return SaleRequest(
        items=tuple(items),
        total_amount=total_amount,
        customer_name=customer_name,
        payment_method=payment_method,
    )


def _check_stock(state: State, request: SaleRequest) -> tuple[list[SaleLineRequest], dict[str, Product]]:
    """
    Dry run over the snapshot. Returns the parsed lines and the products
    touched, keyed by id.

    Repeated lines for one product draw down the same remaining quantity.
    """
    lines: list[SaleLineRequest] = []
    remaining: dict[str, int] = {}
    touched: dict[str, Product] = {}

    for index, raw in enumerate(request.items):
        line = parse_sale_line(raw, index)
        product = touched.get(line.product_id) or state.find_product(line.product_id)
        if product is None:
            raise ProductNotFound(line.product_id)

        available = remaining.get(product.id, product.quantity)
        if available < line.quantity:
            raise InsufficientStock(product.id, product.name, available, line.quantity)

        remaining[product.id] = available - line.quantity
        touched[product.id] = product
        lines.append(line)

    return lines, touched


def _next_state(
    state: State,
    request: SaleRequest,
    lines: list[SaleLineRequest],
    touched: dict[str, Product],
    *,
    now: datetime | None,
    id_factory: IdGenerator,
) -> tuple[State, Sale]:
    stamp = now_iso(now)
    sale_id = id_factory()

    quantities = {pid: p.quantity for pid, p in touched.items()}
    sale_items = []
    ledger_entries = []

    for line in lines:
        product = touched[line.product_id]
        quantities[product.id] -= line.quantity

        sale_items.append(SaleItem(
            productId=product.id,
            name=line.name or product.name,
            price=line.price,
            quantity=line.quantity,
        ))
        ledger_entries.append(sale_stock_out(
            product_id=product.id,
            quantity=line.quantity,
            sale_id=sale_id,
            occurred_at=stamp,
            id_factory=id_factory,
        ))

    sale = Sale(
        id=sale_id,
        customerName=request.customer_name,
        items=tuple(sale_items),
        totalAmount=request.total_amount,
        paymentMethod=request.payment_method,
        date=stamp,
    )

    # only the first product with a given id is ever sold from
    products = []
    for p in state.products:
        if p.id in quantities:
            p = p.with_quantity(quantities.pop(p.id), stamp)
        products.append(p)

    next_state = replace(
        state,
        products=tuple(products),
        sales=state.sales + (sale,),
        stockTransactions=append_entries(state.stockTransactions, ledger_entries),
    )
    return next_state, sale


def record_sale(
    store,
    payload: Any,
    *,
    now: datetime | None = None,
    id_factory: IdGenerator = new_id,
) -> Sale:
    """
    Validate and record a multi-item sale in one store write.

    Raises InvalidInput, ProductNotFound, InsufficientStock or
    PersistenceError. On any error the stored document is unchanged.
    """
    request = parse_sale_request(payload)

    with state_lock(store):
        state = store.load()
        try:
            lines, touched = _check_stock(state, request)
        except SaleError as e:
            logger.info("Sale rejected: %s", e)
            raise

        next_state, sale = _next_state(state, request, lines, touched, now=now, id_factory=id_factory)

        if not store.save(next_state):
            raise PersistenceError("Failed to persist sale")

    logger.info(
        "Recorded sale %s: %d item(s), total %s, %s",
        sale.id, len(sale.items), sale.totalAmount, sale.paymentMethod,
    )
    return sale


def list_sales(store) -> list[Sale]:
    return list(store.load().sales)
