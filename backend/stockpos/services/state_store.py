# Overview: Whole-document state persistence; JSON file, database row, or memory.

"""
State Store

CONTRACT (all implementations):
- load() never raises. A missing or unreadable document yields an empty
  State with all four collections empty. load(strict=True) raises
  StateReadError instead, for callers that must tell the two apart.
- Records are read leniently: one odd row never makes the document
  unreadable, and save(load()) writes the document back unchanged.
- save(state) replaces the whole document and returns True/False. Failures
  are logged, never raised; callers must check the return value.
- No locking and no versioning here. Last writer wins. Callers that need a
  read-modify-write cycle hold services.concurrency.state_lock(store).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import State, StateDocument
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

STORE_EXTENSION_KEY = "state_store"


class StateReadError(Exception):
    """The stored document exists but could not be read."""


def serialize_state(state: State) -> str:
    return json.dumps(state.to_dict(), indent=2, ensure_ascii=False)


def deserialize_state(text: str) -> State:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("state document must be a JSON object")
    return State.from_dict(data)


class StateStore:
    """Base class for state stores."""

    backend = "abstract"

    def load(self, strict: bool = False) -> State:
        try:
            return self._read()
        except StateReadError:
            if strict:
                raise
            logger.warning("Could not read state document %s; using empty state", self.describe(), exc_info=True)
            return State()

    def _read(self) -> State:
        """Return the stored State, or raise StateReadError."""
        raise NotImplementedError

    def save(self, state: State) -> bool:
        raise NotImplementedError

    def initialize(self) -> None:
        """Create whatever backing storage is needed. Idempotent."""

    def describe(self) -> str:
        return self.backend


class JsonFileStateStore(StateStore):
    backend = "json"

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def describe(self) -> str:
        return f"json:{self.path}"

    def initialize(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            if not self.save(State()):
                raise OSError(f"Could not initialize state file {self.path}")
            logger.info("Initialized empty state document at %s", self.path)

    def _read(self) -> State:
        if not self.path.exists():
            return State()
        try:
            return deserialize_state(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StateReadError(f"{self.path}: {e}") from e

    def save(self, state: State) -> bool:
        tmp_path = None
        try:
            payload = serialize_state(state)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, encoding="utf-8", dir=str(self.path.parent), suffix=".tmp"
            ) as tmp:
                tmp.write(payload)
                tmp_path = Path(tmp.name)
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError):
            logger.exception("State document write failed: %s", self.path)
            if tmp_path is not None and tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_path)
            return False


class DatabaseStateStore(StateStore):
    """
    Keeps the whole state as JSON text in one state_documents row.

    Must be used inside a Flask app context.
    """

    backend = "database"

    def __init__(self, key: str = "default"):
        self.key = key

    def describe(self) -> str:
        return f"database:{self.key}"

    def initialize(self) -> None:
        db.create_all()
        if self._row() is None and not self.save(State()):
            raise SQLAlchemyError(f"Could not initialize state document {self.key!r}")

    def _row(self) -> StateDocument | None:
        return db.session.query(StateDocument).filter_by(key=self.key).first()

    def _read(self) -> State:
        try:
            row = self._row()
            if row is None:
                return State()
            return deserialize_state(row.payload)
        except (SQLAlchemyError, ValueError) as e:
            db.session.rollback()
            raise StateReadError(f"state document {self.key!r}: {e}") from e

    def save(self, state: State) -> bool:
        payload = serialize_state(state)

        def _op():
            row = self._row()
            if row is None:
                row = StateDocument(key=self.key, payload=payload)
                db.session.add(row)
            else:
                row.payload = payload
            db.session.commit()

        try:
            run_with_retry(_op, on_retry=db.session.rollback)
            return True
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("State document write failed: %r", self.key)
            return False


class InMemoryStateStore(StateStore):
    """
    Process-local store. Holds the serialized document so the bytes a real
    store would write can be compared directly.
    """

    backend = "memory"

    def __init__(self, state: State | None = None, *, fail_writes: bool = False):
        self.document: str | None = serialize_state(state) if state is not None else None
        self.fail_writes = fail_writes
        self.save_calls = 0

    def _read(self) -> State:
        if self.document is None:
            return State()
        try:
            return deserialize_state(self.document)
        except ValueError as e:
            raise StateReadError(f"in-memory document: {e}") from e

    def save(self, state: State) -> bool:
        self.save_calls += 1
        if self.fail_writes:
            logger.error("State document write failed: in-memory store is set to fail writes")
            return False
        self.document = serialize_state(state)
        return True


def build_state_store(config) -> StateStore:
    """Pick the store implementation named by config['STATE_STORE']."""
    kind = config.get("STATE_STORE", "json")
    if kind == "json":
        return JsonFileStateStore(config["STATE_FILE"])
    if kind == "database":
        return DatabaseStateStore()
    if kind == "memory":
        return InMemoryStateStore()
    raise ValueError(f"Unknown STATE_STORE {kind!r}; expected json, database or memory")


def get_state_store() -> StateStore:
    """The store wired into the current app."""
    return current_app.extensions[STORE_EXTENSION_KEY]
