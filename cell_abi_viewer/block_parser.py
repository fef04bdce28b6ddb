"""
block_parser.py - Best-effort structural match against well-known TL-B layouts

Tries the block-level types pytoniq-core knows how to deserialize (Block,
Transaction, Message, Account, StateInit). A type matches when it reads the
whole cell. Some layouts end in an inline `Either X ^X` field that is taken
from the slice without consuming it (a message body stored in place); those
match when the object serializes back to the same cell. A full read by any
type beats a round-trip match. Results are converted to Structured values so
that nested cells (message bodies, code, data) stay available for expansion.
"""

import logging
from typing import Any, Optional, Sequence

from pytoniq_core import Cell
from pytoniq_core.tlb.account import Account, StateInit
from pytoniq_core.tlb.block import Block
from pytoniq_core.tlb.tlb import TlbScheme
from pytoniq_core.tlb.transaction import MessageAny, Transaction

from .cell_values import Structured

# Most distinctive tags first; StateInit accepts almost anything short
BLOCK_TYPES = (Block, Transaction, MessageAny, Account, StateInit)


class BlockTypeParser:
    """Match a cell against a list of TL-B scheme classes."""

    def __init__(self, types: Optional[Sequence[type]] = None, logger: Optional[logging.Logger] = None):
        self.types = tuple(types) if types is not None else BLOCK_TYPES
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def parse(self, cell: Cell) -> Optional[Structured]:
        round_trip = None
        for scheme in self.types:
            cs = cell.begin_parse()
            try:
                obj = scheme.deserialize(cs)
            except Exception as e:
                self.logger.debug("Not a %s: %s", scheme.__name__, e)
                continue
            if obj is None:
                self.logger.debug("Not a %s: empty constructor", scheme.__name__)
                continue
            if not cs.remaining_bits and not cs.remaining_refs:
                return self._to_value(obj, cell.hash)
            if round_trip is None and self._serializes_to(obj, cell):
                self.logger.debug("%s matched by re-serializing", scheme.__name__)
                round_trip = obj
                continue
            self.logger.debug("%s left %d bits and %d refs unread",
                              scheme.__name__, cs.remaining_bits, cs.remaining_refs)
        if round_trip is not None:
            return self._to_value(round_trip, cell.hash)
        return None

    def _serializes_to(self, obj: Any, cell: Cell) -> bool:
        try:
            serialized = obj.serialize()
        except Exception as e:
            self.logger.debug("Cannot re-serialize %s: %s", type(obj).__name__, e)
            return False
        return isinstance(serialized, Cell) and serialized.hash == cell.hash

    def _to_value(self, obj: Any, root_hash: bytes) -> Any:
        """Convert TL-B objects to Structured, keeping cells for later expansion."""
        if isinstance(obj, TlbScheme):
            fields = {}
            for name, value in vars(obj).items():
                if name.startswith('_'):
                    continue
                # Schemes that remember their source cell would expand forever
                if isinstance(value, Cell) and value.hash == root_hash:
                    continue
                fields[name] = self._to_value(value, root_hash)
            return Structured(fields=fields, type_name=type(obj).__name__)
        if isinstance(obj, dict):
            return {key: self._to_value(value, root_hash) for key, value in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [self._to_value(value, root_hash) for value in obj]
        return obj
