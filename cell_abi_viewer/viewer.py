"""
viewer.py - Input text to displayable output

Parses the input, decodes the root cell to a fixed point and sanitizes the
result. When nothing decodes, the output is the cell's own text dump and the
format switches to plain.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pytoniq_core import Cell

from .cell_input import parse_cell_input
from .decoder import CellDecoder
from .output_format import DEFAULT_FORMAT, Disassembler, format_output
from .sanitize import sanitize


@dataclass
class ViewResult:
    """Sanitized output of one decode plus what is needed to render it."""
    output: Any
    format: str
    root: Cell
    decoded: bool

    def render(self, disassembler: Optional[Disassembler] = None) -> str:
        return format_output(self.output, self.format, root=self.root, disassembler=disassembler)


def view_cell(text: str, hint: str = '', decoder: Optional[CellDecoder] = None,
              fmt: str = DEFAULT_FORMAT) -> ViewResult:
    """
    Decode base64/hex input for display.

    Raises InputFormatError when the input is not a cell at all.
    """
    root = parse_cell_input(text)
    decoder = decoder if decoder is not None else CellDecoder()

    value = decoder.decode_fully(root, hint)
    if isinstance(value, Cell):
        return ViewResult(output=str(root), format='plain', root=root, decoded=False)
    return ViewResult(output=sanitize(value), format=fmt, root=root, decoded=True)
