# backend/stockpos/models.py
"""
Domain records and the persisted state document.

Products, sales and stock transactions are plain frozen dataclasses; the
whole State is persisted as one JSON document. Field names in to_dict()
are the wire/persisted names and must not change.

Loading is lenient per record. Each record remembers the stored value it
came from (source), and to_dict() writes that value back for every field
that was not changed since load, so keys the record never had stay absent,
unknown keys survive, and rows that are not objects pass through as-is.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Union

from .extensions import db

Number = Union[int, float]

STOCK_IN = "in"
STOCK_OUT = "out"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(value: Any) -> Number:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return 0
        if not math.isfinite(parsed):
            return 0
        return int(parsed) if parsed.is_integer() else parsed
    return 0


def _count(value: Any) -> int:
    """Stored quantities that are missing or unusable (null, text) count as 0."""
    return int(_number(value))


def _fields(data: Any) -> dict:
    return data if isinstance(data, dict) else {}


class _Record:
    """Shared to_dict() for records loaded from a stored document."""

    source: Any

    def _values(self) -> dict:
        raise NotImplementedError

    def to_dict(self) -> dict:
        values = self._values()
        if self.source is None:
            return values
        loaded = type(self).from_dict(self.source)._values()
        if not isinstance(self.source, dict):
            return self.source if _same(values, loaded) else values
        out = dict(self.source)
        for key, value in values.items():
            if not _same(value, loaded[key]):
                out[key] = value
        return out


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_same(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


@dataclass(frozen=True)
class Product(_Record):
    id: str
    name: str
    category: str
    price: Number
    quantity: int
    lowStockThreshold: int
    createdAt: str
    updatedAt: str
    source: Any = field(default=None, compare=False, repr=False)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.lowStockThreshold

    def with_quantity(self, quantity: int, updated_at: str) -> "Product":
        return replace(self, quantity=quantity, updatedAt=updated_at)

    def _values(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "quantity": self.quantity,
            "lowStockThreshold": self.lowStockThreshold,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Product":
        d = _fields(data)
        return cls(
            id=_text(d.get("id")),
            name=_text(d.get("name")),
            category=_text(d.get("category")),
            price=_number(d.get("price")),
            quantity=_count(d.get("quantity")),
            lowStockThreshold=_count(d.get("lowStockThreshold")),
            createdAt=_text(d.get("createdAt")),
            updatedAt=_text(d.get("updatedAt")),
            source=data,
        )


@dataclass(frozen=True)
class SaleItem(_Record):
    productId: str
    name: str
    price: Number
    quantity: int
    source: Any = field(default=None, compare=False, repr=False)

    def _values(self) -> dict:
        return {
            "productId": self.productId,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SaleItem":
        d = _fields(data)
        return cls(
            productId=_text(d.get("productId")),
            name=_text(d.get("name")),
            price=_number(d.get("price")),
            quantity=_count(d.get("quantity")),
            source=data,
        )


@dataclass(frozen=True)
class Sale(_Record):
    """A completed sale. Never edited or deleted once written."""
    id: str
    customerName: str
    items: tuple[SaleItem, ...]
    totalAmount: Number
    paymentMethod: str
    date: str
    source: Any = field(default=None, compare=False, repr=False)

    def _values(self) -> dict:
        return {
            "id": self.id,
            "customerName": self.customerName,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.totalAmount,
            "paymentMethod": self.paymentMethod,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Sale":
        d = _fields(data)
        items = d.get("items")
        return cls(
            id=_text(d.get("id")),
            customerName=_text(d.get("customerName")),
            items=tuple(SaleItem.from_dict(i) for i in items) if isinstance(items, list) else (),
            totalAmount=_number(d.get("totalAmount")),
            paymentMethod=_text(d.get("paymentMethod")),
            date=_text(d.get("date")),
            source=data,
        )


@dataclass(frozen=True)
class StockTransaction(_Record):
    """
    Append-only stock movement.

    reason carries a weak reference to the causing document ("Sale #<id>");
    nothing cascades from it.
    """
    id: str
    productId: str
    type: str
    quantity: int
    reason: str
    date: str
    source: Any = field(default=None, compare=False, repr=False)

    def _values(self) -> dict:
        return {
            "id": self.id,
            "productId": self.productId,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "StockTransaction":
        d = _fields(data)
        return cls(
            id=_text(d.get("id")),
            productId=_text(d.get("productId")),
            type=_text(d.get("type")),
            quantity=_count(d.get("quantity")),
            reason=_text(d.get("reason")),
            date=_text(d.get("date")),
            source=data,
        )


def _rows(data: dict, key: str) -> list:
    rows = data.get(key)
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ValueError(f"{key} must be a JSON array")
    return rows


@dataclass(frozen=True)
class State:
    """The unit of persistence: every collection, saved and loaded together."""
    products: tuple[Product, ...] = ()
    sales: tuple[Sale, ...] = ()
    customers: tuple[Any, ...] = ()
    stockTransactions: tuple[StockTransaction, ...] = ()
    source: dict | None = field(default=None, compare=False, repr=False)

    def find_product(self, product_id: Any) -> Product | None:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def to_dict(self) -> dict:
        collections = {
            "products": [p.to_dict() for p in self.products],
            "sales": [s.to_dict() for s in self.sales],
            "customers": list(self.customers),
            "stockTransactions": [t.to_dict() for t in self.stockTransactions],
        }
        if self.source is None:
            return collections
        out = dict(self.source)
        for key, rows in collections.items():
            # an empty collection the document stored as null or never had stays that way
            if rows or (key in out and out[key] is not None):
                out[key] = rows
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "State":
        """Raises ValueError only when a collection is not a JSON array."""
        return cls(
            products=tuple(Product.from_dict(p) for p in _rows(data, "products")),
            sales=tuple(Sale.from_dict(s) for s in _rows(data, "sales")),
            customers=tuple(_rows(data, "customers")),
            stockTransactions=tuple(
                StockTransaction.from_dict(t) for t in _rows(data, "stockTransactions")
            ),
            source=data,
        )


class StateDocument(db.Model):
    """
    Whole-state JSON document for the database-backed store.

    One row per store key; every save replaces payload entirely.
    """
    __tablename__ = "state_documents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    payload = db.Column(db.Text, nullable=False)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StateDocument id={self.id} key={self.key!r} version_id={self.version_id}>"
