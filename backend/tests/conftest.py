"""
Pytest fixtures for stockpos backend tests.

Provides in-memory state stores, a deterministic id factory, the Flask app,
test client and CLI runner.
"""

import itertools
from datetime import datetime, timezone

import pytest

from stockpos import create_app
from stockpos.models import Product, State
from stockpos.services.state_store import InMemoryStateStore

FIXED_NOW = datetime(2026, 10, 17, 9, 30, 0, tzinfo=timezone.utc)
FIXED_NOW_ISO = "2026-10-17T09:30:00.000Z"
SEED_STAMP = "2026-01-01T00:00:00.000Z"


def make_product(product_id: str, name: str, quantity: int, price=5, threshold: int = 2) -> Product:
    return Product(
        id=product_id,
        name=name,
        category="General",
        price=price,
        quantity=quantity,
        lowStockThreshold=threshold,
        createdAt=SEED_STAMP,
        updatedAt=SEED_STAMP,
    )


def seed_state() -> State:
    return State(
        products=(
            make_product("p1", "Widget", 10, price=5),
            make_product("p2", "Gadget", 4, price=12.5),
            make_product("p3", "Gizmo", 0, price=3),
        ),
        customers=({"id": "c1", "name": "Regular"},),
    )


@pytest.fixture
def id_factory():
    """Deterministic ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStateStore()


@pytest.fixture
def seeded_store():
    """In-memory store holding Widget (10), Gadget (4) and Gizmo (0)."""
    return InMemoryStateStore(seed_state())


@pytest.fixture
def app(seeded_store):
    """Create application for testing."""
    app = create_app(
        {
            "TESTING": True,
            "STATE_STORE": "memory",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        },
        store=seeded_store,
    )
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Flask CLI runner bound to the test app."""
    return app.test_cli_runner()


def product_quantities(store) -> dict:
    return {p.id: p.quantity for p in store.load().products}
