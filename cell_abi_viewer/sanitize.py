"""
sanitize.py - Convert decoded values into JSON-safe data

Cells become BOC hex, addresses their user-friendly form, bytes hex, and
integers outside the range a JSON double holds exactly become decimal
strings. Callables are dropped. Always builds a fresh structure.
"""

import math
from typing import Any

from pytoniq_core import Address, Cell, HashMap

from .cell_values import TAGGED_TYPES, CellDictionary

# Largest integer a JSON number (IEEE double) represents exactly
MAX_SAFE_INTEGER = 2 ** 53 - 1


def _sanitize_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    value = sanitize(key)
    return value if isinstance(value, str) else str(value)


def sanitize(value: Any) -> Any:
    """Return a JSON-safe copy of a decoded value. Never raises."""
    if value is None or isinstance(value, (str, bool)):
        return value

    if isinstance(value, int):
        if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
            return value
        return str(value)

    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)

    if isinstance(value, Cell):
        return value.to_boc().hex()

    if isinstance(value, Address):
        return value.to_str()

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()

    if isinstance(value, TAGGED_TYPES):
        return sanitize(value.to_dict())

    if isinstance(value, CellDictionary):
        return sanitize(value.entries)

    if isinstance(value, HashMap):
        return sanitize(value.map)

    if isinstance(value, dict):
        return {
            _sanitize_key(key): sanitize(item)
            for key, item in value.items()
            if not callable(item)
        }

    if isinstance(value, (list, tuple, set, frozenset)):
        return [None if callable(item) else sanitize(item) for item in value]

    if callable(value):
        return None

    # Bit strings (bitarray) read by pytoniq
    if hasattr(value, 'to01'):
        return value.to01()

    return str(value)
