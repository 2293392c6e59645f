# Overview: Critical-section and retry helpers for state read-modify-write cycles.

from __future__ import annotations

import threading
import time
import weakref
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

_locks: "weakref.WeakKeyDictionary[object, threading.RLock]" = weakref.WeakKeyDictionary()
_locks_guard = threading.Lock()


def _lock_for(store) -> threading.RLock:
    with _locks_guard:
        lock = _locks.get(store)
        if lock is None:
            lock = threading.RLock()
            _locks[store] = lock
        return lock


@contextmanager
def state_lock(store):
    """
    Serialize read-modify-write cycles against one state store.

    Every caller that loads, mutates and saves the document must hold this
    for the whole cycle. Re-entrant, so nested service calls are fine.
    """
    lock = _lock_for(store)
    with lock:
        yield


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, on_retry=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locked database) and StaleDataError
    (optimistic locking conflicts). on_retry runs after every failed attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            if on_retry is not None:
                on_retry()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
