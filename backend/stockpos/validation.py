from __future__ import annotations

import math
from typing import Any, Union

Number = Union[int, float]


class ValidationError(ValueError):
    """400-level input problem."""


def _plain_integer_string(value: str, field: str) -> int:
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{field} must be an integer")
    # Reject scientific notation (e.g., "1e3")
    if "e" in stripped.lower():
        raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
    if "." in stripped:
        raise ValidationError(f"{field} must be an integer (no decimals)")
    try:
        return int(stripped)
    except ValueError:
        raise ValidationError(f"{field} must be an integer")


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer parsing for quantities.

    Accepts ints and plain digit strings. Rejects bools, floats (even 2.0),
    decimals and scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        parsed = _plain_integer_string(value, field)
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return parsed


def parse_number(value: Any, field: str, *, minimum: Number | None = None, exclusive: bool = False) -> Number:
    """
    Strict numeric parsing for prices and amounts.

    Returns an int when the input is integral text or an int, otherwise a
    float. Bools, blanks, NaN and infinities are rejected.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, int):
        parsed: Number = value
    elif isinstance(value, float):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            parsed = int(stripped)
        except ValueError:
            try:
                parsed = float(stripped)
            except ValueError:
                raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if isinstance(parsed, float) and not math.isfinite(parsed):
        raise ValidationError(f"{field} must be a finite number")

    if minimum is not None:
        if exclusive and parsed <= minimum:
            raise ValidationError(f"{field} must be > {minimum}")
        if not exclusive and parsed < minimum:
            raise ValidationError(f"{field} must be >= {minimum}")
    return parsed


def parse_optional_str(value: Any, field: str, *, default: str = "") -> str:
    """Blank or missing strings fall back to default."""
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    return stripped if stripped else default


def parse_required_str(value: Any, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{field} cannot be blank")
    return stripped
