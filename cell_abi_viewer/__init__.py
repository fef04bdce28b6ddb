"""
cell_abi_viewer - Decode TON cells into human-readable structures.

    from cell_abi_viewer import CellDecoder, parse_cell_input, sanitize

    cell = parse_cell_input(text)
    value = sanitize(CellDecoder().decode_fully(cell, hint=''))
"""

from .cascade import DecodeCascade, DecodeStrategy, StrategyError
from .cell_input import InputFormatError, parse_cell_input
from .cell_schema import CellSchema, DecodeResult, SchemaError, SchemaSet, compile_schema
from .cell_values import (
    AssemblerText, CellDictionary, Comment, DictionaryEntries, Structured,
)
from .decoder import CellDecoder, DecodeLimits, decode_fully
from .expander import ExpansionResult, PayloadExpander
from .sanitize import sanitize
from .schema_library import SchemaLibrary
from .viewer import ViewResult, view_cell

__version__ = '0.1.0'
