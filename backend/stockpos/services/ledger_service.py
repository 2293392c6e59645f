# Overview: Stock ledger entries; one immutable movement per line of inventory change.

from __future__ import annotations

from ..models import STOCK_IN, STOCK_OUT, StockTransaction
from .identifier_service import IdGenerator, new_id
"""
Stock Ledger Invariants (authoritative)

- Append-only. Entries are never updated or deleted.
- One entry per sale line item, not per unit.
- quantity is always > 0; direction lives in type ("in" / "out").
- reason is a weak back-reference ("Sale #<id>"); nothing cascades from it.
"""

STOCK_TYPES = (STOCK_IN, STOCK_OUT)


def sale_reason(sale_id: str) -> str:
    return f"Sale #{sale_id}"


def stock_movement(
    *,
    product_id: str,
    movement_type: str,
    quantity: int,
    reason: str,
    occurred_at: str,
    id_factory: IdGenerator = new_id,
) -> StockTransaction:
    """Build one ledger entry. Does not persist anything."""
    if movement_type not in STOCK_TYPES:
        raise ValueError(f"Unknown stock movement type {movement_type!r}")
    if quantity <= 0:
        raise ValueError("Stock movement quantity must be > 0")

    return StockTransaction(
        id=id_factory(),
        productId=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        date=occurred_at,
    )


def sale_stock_out(
    *,
    product_id: str,
    quantity: int,
    sale_id: str,
    occurred_at: str,
    id_factory: IdGenerator = new_id,
) -> StockTransaction:
    return stock_movement(
        product_id=product_id,
        movement_type=STOCK_OUT,
        quantity=quantity,
        reason=sale_reason(sale_id),
        occurred_at=occurred_at,
        id_factory=id_factory,
    )


def append_entries(state_entries: tuple[StockTransaction, ...], new_entries: list[StockTransaction]) -> tuple[StockTransaction, ...]:
    """Existing entries stay untouched and in order; new ones go on the end."""
    return tuple(state_entries) + tuple(new_entries)


def list_stock_transactions(store, product_id: str | None = None) -> list[StockTransaction]:
    entries = list(store.load().stockTransactions)
    if product_id is not None:
        entries = [t for t in entries if t.productId == product_id]
    return entries
