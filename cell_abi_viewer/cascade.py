"""
cascade.py - Ordered decoding strategies for a single cell

Strategies are tried in priority order and the first one that yields a value
wins:

    1. hint      user-supplied schema text, compiled at decode time
    2. library   bundled schemas for common messages and comments
    3. blocks    heuristic match against well-known TL-B block layouts

A strategy returns a decoded value, or None when it does not apply. Any
exception it raises is logged and treated as "try the next one"; a wrong
schema guess never aborts the decode. If nothing matches the cascade returns
None and the caller keeps the raw cell.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from pytoniq_core import Cell

from .block_parser import BlockTypeParser
from .cell_schema import DecodeResult, SchemaError, SchemaSet, compile_schema
from .cell_values import Comment, DecodedValue, Structured
from .schema_library import SchemaLibrary

# Reserved opcode of a plain text comment
TEXT_COMMENT_OPCODE = 0x00000000
OPCODE_BITS = 32


class StrategyError(Exception):
    """A strategy ran but could not decode the cell."""
    pass


@dataclass(frozen=True)
class DecodeStrategy:
    name: str
    decode: Callable[[Cell, str], Optional[DecodedValue]]


def _structured(result: DecodeResult) -> Structured:
    return Structured(fields=result.data, type_name=result.kind)


class HintedSchemaStrategy:
    """Decode with schema text supplied alongside the cell."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._compiled: Optional[Tuple[str, Union[SchemaSet, SchemaError]]] = None

    def _compile(self, hint: str) -> SchemaSet:
        # Nested cells reuse the same hint; compile (or fail) once per text
        if self._compiled is None or self._compiled[0] != hint:
            try:
                self._compiled = (hint, compile_schema(hint))
            except SchemaError as e:
                self.logger.warning("Hint schema rejected: %s", e)
                self._compiled = (hint, e)
        compiled = self._compiled[1]
        if isinstance(compiled, SchemaError):
            raise compiled
        return compiled

    def __call__(self, cell: Cell, hint: str) -> Optional[DecodedValue]:
        if not hint or not hint.strip():
            return None
        result = self._compile(hint).deserialize(cell)
        if not result.success:
            raise StrategyError('; '.join(result.errors))
        return _structured(result)


class LibraryStrategy:
    """Decode with the bundled schema library, refining text comments."""

    def __init__(self, library: Optional[SchemaLibrary] = None, logger: Optional[logging.Logger] = None):
        self.library = library if library is not None else SchemaLibrary.bundled()
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def __call__(self, cell: Cell, hint: str) -> Optional[DecodedValue]:
        result = self.library.deserialize(cell)
        if not result.success:
            raise StrategyError('; '.join(result.errors))

        parsed = _structured(result)
        if result.kind == 'TextComment':
            try:
                comment = read_text_comment(cell)
            except Exception as e:
                self.logger.debug("Text comment re-read failed: %s", e)
                return parsed
            if comment is not None:
                return comment
        return parsed


def read_text_comment(cell: Cell) -> Optional[Comment]:
    """
    Read a plain comment straight from the cell bits.

    The library schema only proves the cell is shaped like a comment; the
    opcode prefix decides. Returns None when the prefix is not the comment
    opcode or there is no text after it.
    """
    if len(cell.bits) <= OPCODE_BITS:
        return None
    cs = cell.begin_parse()
    if cs.load_uint(OPCODE_BITS) != TEXT_COMMENT_OPCODE:
        return None
    return Comment(text=cs.load_snake_bytes().decode('utf-8', errors='replace'))


class BlockTypeStrategy:
    """Heuristic structural decode, independent of schema text."""

    def __init__(self, parser: Optional[BlockTypeParser] = None):
        self.parser = parser if parser is not None else BlockTypeParser()

    def __call__(self, cell: Cell, hint: str) -> Optional[DecodedValue]:
        return self.parser.parse(cell)


def default_strategies(library: Optional[SchemaLibrary] = None,
                       logger: Optional[logging.Logger] = None) -> List[DecodeStrategy]:
    return [
        DecodeStrategy('hint', HintedSchemaStrategy(logger=logger)),
        DecodeStrategy('library', LibraryStrategy(library, logger=logger)),
        DecodeStrategy('blocks', BlockTypeStrategy(BlockTypeParser(logger=logger))),
    ]


class DecodeCascade:
    """
    Try each strategy in order and return the first decoded value.

    Example:
        cascade = DecodeCascade()
        value = cascade.decode(cell, hint='')
        if value is None:
            ...  # keep the raw cell
    """

    def __init__(self, strategies: Optional[Sequence[DecodeStrategy]] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        if strategies is None:
            strategies = default_strategies(logger=self.logger)
        self.strategies = list(strategies)

    def decode(self, cell: Cell, hint: str = '') -> Optional[DecodedValue]:
        for strategy in self.strategies:
            try:
                value = strategy.decode(cell, hint)
            except Exception as e:
                self.logger.debug("Strategy '%s' failed: %s", strategy.name, e)
                continue
            if value is not None:
                self.logger.debug("Decoded cell with strategy '%s'", strategy.name)
                return value
        return None
