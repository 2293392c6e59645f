"""
State store tests.

Verifies:
- Missing or unreadable documents load as an empty state
- save() replaces the whole document and reports failures by return value
- save(load()) leaves the persisted document byte-identical
- The database-backed store keeps the same contract
"""

import json

import pytest

from stockpos import create_app
from stockpos.models import State, StateDocument
from stockpos.extensions import db
from stockpos.services.products_service import create_product
from stockpos.services.sales_service import InsufficientStock, record_sale
from stockpos.services.state_store import (
    DatabaseStateStore,
    InMemoryStateStore,
    JsonFileStateStore,
    StateReadError,
    build_state_store,
    serialize_state,
)

from conftest import seed_state

COLLECTIONS = ["products", "sales", "customers", "stockTransactions"]


# =============================================================================
# JSON FILE STORE
# =============================================================================


class TestJsonFileStateStore:

    def test_missing_file_loads_empty_state(self, tmp_path):
        store = JsonFileStateStore(tmp_path / "data" / "database.json")
        assert store.load() == State()

    def test_initialize_creates_empty_document(self, tmp_path):
        path = tmp_path / "data" / "database.json"
        store = JsonFileStateStore(path)

        store.initialize()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert list(data.keys()) == COLLECTIONS
        assert all(data[k] == [] for k in COLLECTIONS)

    def test_initialize_keeps_existing_document(self, tmp_path):
        path = tmp_path / "database.json"
        store = JsonFileStateStore(path)
        assert store.save(seed_state())
        original = path.read_text(encoding="utf-8")

        store.initialize()

        assert path.read_text(encoding="utf-8") == original

    def test_save_then_load(self, tmp_path):
        store = JsonFileStateStore(tmp_path / "database.json")
        assert store.save(seed_state()) is True
        assert store.load() == seed_state()

    def test_document_uses_wire_field_names(self, tmp_path):
        path = tmp_path / "database.json"
        store = JsonFileStateStore(path)
        store.save(seed_state())
        record_sale(store, {"items": [{"productId": "p1", "name": "Widget", "price": 5, "quantity": 2}], "totalAmount": 10})

        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data["products"][0]) == {
            "id", "name", "category", "price", "quantity", "lowStockThreshold", "createdAt", "updatedAt",
        }
        assert set(data["sales"][0]) == {"id", "customerName", "items", "totalAmount", "paymentMethod", "date"}
        assert set(data["sales"][0]["items"][0]) == {"productId", "name", "price", "quantity"}
        assert set(data["stockTransactions"][0]) == {"id", "productId", "type", "quantity", "reason", "date"}

    def test_round_trip_is_byte_identical(self, tmp_path):
        path = tmp_path / "database.json"
        store = JsonFileStateStore(path)
        store.save(seed_state())
        record_sale(store, {
            "items": [
                {"productId": "p1", "name": "Widget", "price": 5, "quantity": 2},
                {"productId": "p2", "name": "Gadget", "price": "12.5", "quantity": 1},
            ],
            "totalAmount": 22.5,
            "customerName": "Zoë",
        })
        before = path.read_bytes()

        assert store.save(store.load())

        assert path.read_bytes() == before

    def test_corrupt_file_loads_empty_state(self, tmp_path):
        path = tmp_path / "database.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStateStore(path).load() == State()

    def test_non_object_document_loads_empty_state(self, tmp_path):
        path = tmp_path / "database.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert JsonFileStateStore(path).load() == State()

    def test_missing_collections_default_to_empty(self, tmp_path):
        path = tmp_path / "database.json"
        path.write_text(json.dumps({"products": []}), encoding="utf-8")
        state = JsonFileStateStore(path).load()
        assert state.sales == ()
        assert state.customers == ()
        assert state.stockTransactions == ()

    def test_failed_write_returns_false(self, tmp_path, caplog):
        # The target path is a directory, so the final replace fails
        path = tmp_path / "database.json"
        path.mkdir()
        store = JsonFileStateStore(path)

        assert store.save(seed_state()) is False
        assert "State document write failed" in caplog.text
        assert list(tmp_path.glob("*.tmp")) == []

    def test_customers_survive_round_trip(self, tmp_path):
        store = JsonFileStateStore(tmp_path / "database.json")
        store.save(seed_state())
        assert store.load().customers == ({"id": "c1", "name": "Regular"},)


# =============================================================================
# DOCUMENTS WRITTEN BY OTHER TOOLS
# =============================================================================


def write_document(path, data):
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def node_style_document():
    """Layout written by the earlier server: no category, extra keys, odd rows."""
    return {
        "products": [
            {
                "id": "lx1",
                "name": "Widget",
                "price": 5,
                "quantity": 10,
                "lowStockThreshold": 2,
                "createdAt": "2025-05-01T08:00:00.000Z",
                "updatedAt": "2025-05-01T08:00:00.000Z",
                "sku": "W-001",
            },
            {
                "id": "lx2",
                "name": "Loose",
                "category": "Misc",
                "price": None,
                "quantity": None,
                "lowStockThreshold": 10,
                "createdAt": "2025-05-01T08:00:00.000Z",
                "updatedAt": "2025-05-01T08:00:00.000Z",
            },
        ],
        "sales": [
            {
                "id": "ls1",
                "customerName": "Walk-in Customer",
                "items": [{"productId": "lx1", "name": "Widget", "price": "5", "quantity": "1"}],
                "totalAmount": "5",
                "paymentMethod": "cash",
                "date": "2025-05-02T10:00:00.000Z",
            },
        ],
        "customers": ["walk-in", {"id": "c1", "name": "Regular"}, None],
        "stockTransactions": [
            {
                "id": "lt1",
                "productId": "lx1",
                "type": "out",
                "quantity": 1,
                "reason": "Sale #ls1",
                "date": "2025-05-02T10:00:00.000Z",
            },
            "stray",
        ],
        "settings": {"currency": "EUR"},
    }


class TestForeignDocuments:

    def test_round_trip_keeps_layout(self, tmp_path):
        path = tmp_path / "database.json"
        write_document(path, node_style_document())
        before = path.read_bytes()

        store = JsonFileStateStore(path)
        assert store.save(store.load())

        assert path.read_bytes() == before

    def test_product_without_category_round_trips(self, tmp_path):
        path = tmp_path / "database.json"
        doc = {"products": [node_style_document()["products"][0]], "sales": [], "customers": [], "stockTransactions": []}
        write_document(path, doc)
        before = path.read_bytes()

        store = JsonFileStateStore(path)
        assert store.load().products[0].category == ""
        assert store.save(store.load())

        assert path.read_bytes() == before

    def test_odd_customer_does_not_erase_history(self, tmp_path):
        path = tmp_path / "database.json"
        write_document(path, node_style_document())
        store = JsonFileStateStore(path)

        create_product(store, {"name": "Gadget", "price": 2, "quantity": 3})

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [p["id"] for p in data["products"]][:2] == ["lx1", "lx2"]
        assert len(data["products"]) == 3
        assert data["sales"] == node_style_document()["sales"]
        assert data["customers"] == ["walk-in", {"id": "c1", "name": "Regular"}, None]
        assert data["stockTransactions"] == node_style_document()["stockTransactions"]
        assert data["settings"] == {"currency": "EUR"}

    def test_sale_updates_only_changed_fields(self, tmp_path):
        path = tmp_path / "database.json"
        write_document(path, node_style_document())
        store = JsonFileStateStore(path)

        record_sale(store, {"items": [{"productId": "lx1", "price": 5, "quantity": 4}], "totalAmount": 20})

        product = json.loads(path.read_text(encoding="utf-8"))["products"][0]
        assert "category" not in product
        assert product["sku"] == "W-001"
        assert product["quantity"] == 6
        assert product["updatedAt"] != "2025-05-01T08:00:00.000Z"
        assert list(product)[:3] == ["id", "name", "price"]

    def test_null_quantity_counts_as_out_of_stock(self, tmp_path):
        path = tmp_path / "database.json"
        write_document(path, node_style_document())
        store = JsonFileStateStore(path)
        before = path.read_bytes()

        assert store.load().find_product("lx2").quantity == 0
        with pytest.raises(InsufficientStock) as exc:
            record_sale(store, {"items": [{"productId": "lx2", "quantity": 1}], "totalAmount": 1})

        assert exc.value.available == 0
        assert path.read_bytes() == before

    def test_collection_that_is_not_a_list_is_unreadable(self, tmp_path):
        path = tmp_path / "database.json"
        write_document(path, {"products": {"lx1": {}}, "sales": []})
        store = JsonFileStateStore(path)

        assert store.load() == State()
        with pytest.raises(StateReadError):
            store.load(strict=True)

    def test_strict_load_of_missing_file_is_empty(self, tmp_path):
        assert JsonFileStateStore(tmp_path / "none.json").load(strict=True) == State()

    def test_strict_load_of_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "database.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StateReadError):
            JsonFileStateStore(path).load(strict=True)


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class TestInMemoryStateStore:

    def test_starts_empty(self):
        store = InMemoryStateStore()
        assert store.load() == State()
        assert store.document is None

    def test_fail_writes_keeps_document(self):
        store = InMemoryStateStore(seed_state(), fail_writes=True)
        before = store.document
        assert store.save(State()) is False
        assert store.document == before

    def test_document_matches_json_serialization(self):
        store = InMemoryStateStore()
        store.save(seed_state())
        assert store.document == serialize_state(seed_state())


# =============================================================================
# DATABASE STORE
# =============================================================================


@pytest.fixture
def db_app():
    app = create_app({
        "TESTING": True,
        "STATE_STORE": "database",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


class TestDatabaseStateStore:

    def test_initialize_creates_single_empty_row(self, db_app):
        rows = db.session.query(StateDocument).all()
        assert len(rows) == 1
        assert json.loads(rows[0].payload) == {k: [] for k in COLLECTIONS}

    def test_save_then_load(self, db_app):
        store = DatabaseStateStore()
        assert store.save(seed_state()) is True
        assert store.load() == seed_state()

    def test_save_replaces_whole_document(self, db_app):
        store = DatabaseStateStore()
        store.save(seed_state())
        store.save(State())
        assert store.load() == State()
        assert db.session.query(StateDocument).count() == 1

    def test_round_trip_is_byte_identical(self, db_app):
        store = DatabaseStateStore()
        store.save(seed_state())
        record_sale(store, {"items": [{"productId": "p1", "price": 5, "quantity": 4}], "totalAmount": 20})
        before = db.session.query(StateDocument).filter_by(key="default").one().payload

        store.save(store.load())

        assert db.session.query(StateDocument).filter_by(key="default").one().payload == before

    def test_unknown_key_loads_empty_state(self, db_app):
        assert DatabaseStateStore(key="elsewhere").load() == State()

    def test_corrupt_payload_loads_empty_state(self, db_app):
        row = db.session.query(StateDocument).filter_by(key="default").one()
        row.payload = "{broken"
        db.session.commit()
        assert DatabaseStateStore().load() == State()


# =============================================================================
# STORE SELECTION
# =============================================================================


class TestBuildStateStore:

    def test_json_store_uses_state_file(self, tmp_path):
        store = build_state_store({"STATE_STORE": "json", "STATE_FILE": str(tmp_path / "db.json")})
        assert isinstance(store, JsonFileStateStore)
        assert store.path == tmp_path / "db.json"

    def test_database_and_memory(self):
        assert isinstance(build_state_store({"STATE_STORE": "database"}), DatabaseStateStore)
        assert isinstance(build_state_store({"STATE_STORE": "memory"}), InMemoryStateStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown STATE_STORE"):
            build_state_store({"STATE_STORE": "redis"})
