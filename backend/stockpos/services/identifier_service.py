# Overview: Identifier generation for products, sales and stock transactions.

"""
Identifier Service - opaque string ids

FORMAT: base-36 millisecond timestamp followed by a random base-36 suffix.
Ids sort roughly by creation time; the random suffix makes collisions within
one process negligible (but not impossible).
"""

from __future__ import annotations

import secrets
import time
from typing import Callable

IdGenerator = Callable[[], str]

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
RANDOM_SUFFIX_LENGTH = 11


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be >= 0")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def new_id() -> str:
    """Return a new identifier, unique with overwhelming probability."""
    stamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    return stamp + suffix
