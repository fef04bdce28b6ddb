"""
cell_input.py - Parse user input into a root cell

Input is tried as standard base64 first, then as hex; both must hold a
bag-of-cells whose first root is returned.
"""

import base64
import logging

from pytoniq_core import Cell

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = 'Please enter a cell to parse'
INVALID_INPUT_MESSAGE = 'Invalid cell format. Please provide a valid base64 or hex encoded cell.'


class InputFormatError(ValueError):
    """Input is neither a base64 nor a hex encoded bag of cells."""
    pass


def _first_root(data: bytes) -> Cell:
    roots = Cell.from_boc(data)
    if not roots:
        raise ValueError("Bag of cells has no roots")
    return roots[0]


def parse_cell_input(text: str) -> Cell:
    """Decode base64 or hex text into the first root cell."""
    text = (text or '').strip()
    if not text:
        raise InputFormatError(EMPTY_INPUT_MESSAGE)

    try:
        return _first_root(base64.b64decode(text, validate=True))
    except Exception as e:
        logger.debug("Input is not a base64 cell: %s", e)

    try:
        data = bytes.fromhex(text)
    except ValueError as e:
        raise InputFormatError(INVALID_INPUT_MESSAGE) from e

    try:
        return _first_root(data)
    except Exception as e:
        raise InputFormatError(INVALID_INPUT_MESSAGE) from e
