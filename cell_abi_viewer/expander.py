"""
expander.py - One expansion pass over a decoded value

Walks a decoded value and hands every raw cell it finds back to the cascade.
A decoded cell is spliced in as {'data': <boc hex>, 'parsed': <value>}.

Cases, in order:
- primitives and None are left alone
- dictionary collections are flattened to DictionaryEntries (always a change)
- raw cells are decoded; failures leave the cell in place
- sequences and keyed structures recurse; when nothing below changed the
  original object is returned as-is, so a no-op pass copies nothing
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from pytoniq_core import Cell, HashMap

from .cascade import DecodeCascade
from .cell_values import CellDictionary, DictionaryEntries, Structured

DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class ExpansionResult:
    data: Any
    has_changes: bool


def _unchanged(value: Any) -> ExpansionResult:
    return ExpansionResult(data=value, has_changes=False)


class PayloadExpander:
    """Replace embedded cells with their decoded payloads, one level per pass."""

    def __init__(self, cascade: Optional[DecodeCascade] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.cascade = cascade if cascade is not None else DecodeCascade(logger=self.logger)
        self.max_depth = max_depth

    def expand(self, value: Any, hint: str = '', depth: int = 0) -> ExpansionResult:
        if value is None or isinstance(value, (str, bytes, int, float, bool)):
            return _unchanged(value)

        if depth >= self.max_depth:
            self.logger.warning("Expansion depth limit %d reached; leaving value unexpanded",
                                self.max_depth)
            return _unchanged(value)

        if isinstance(value, CellDictionary):
            return ExpansionResult(data=DictionaryEntries(entries=dict(value.entries)), has_changes=True)
        if isinstance(value, HashMap):
            return ExpansionResult(data=DictionaryEntries(entries=dict(value.map)), has_changes=True)

        if isinstance(value, Cell):
            return self._expand_cell(value, hint)

        if isinstance(value, (list, tuple)):
            return self._expand_sequence(value, hint, depth)

        if isinstance(value, Structured):
            fields = self._expand_mapping(value.fields, hint, depth)
            if fields.has_changes:
                return ExpansionResult(data=replace(value, fields=fields.data), has_changes=True)
            return _unchanged(value)

        if isinstance(value, DictionaryEntries):
            entries = self._expand_mapping(value.entries, hint, depth)
            if entries.has_changes:
                return ExpansionResult(data=replace(value, entries=entries.data), has_changes=True)
            return _unchanged(value)

        if isinstance(value, dict):
            return self._expand_mapping(value, hint, depth)

        # Comment, AssemblerText, Address and other leaf objects
        return _unchanged(value)

    def _expand_cell(self, cell: Cell, hint: str) -> ExpansionResult:
        try:
            parsed = self.cascade.decode(cell, hint)
            if parsed is None:
                return _unchanged(cell)
            return ExpansionResult(
                data={'data': cell.to_boc().hex(), 'parsed': parsed},
                has_changes=True,
            )
        except Exception as e:
            self.logger.debug("Leaving nested cell unexpanded: %s", e)
            return _unchanged(cell)

    def _expand_sequence(self, items: Any, hint: str, depth: int) -> ExpansionResult:
        replaced = [self.expand(item, hint, depth + 1) for item in items]
        if not any(item.has_changes for item in replaced):
            return _unchanged(items)
        data = [item.data for item in replaced]
        return ExpansionResult(data=tuple(data) if isinstance(items, tuple) else data,
                               has_changes=True)

    def _expand_mapping(self, mapping: Dict[Any, Any], hint: str, depth: int) -> ExpansionResult:
        has_changes = False
        result = dict(mapping)

        for key, item in mapping.items():
            inner = self.expand(item, hint, depth + 1)
            if inner.has_changes:
                has_changes = True
                result[key] = inner.data

        # Return original mapping if no changes were made
        return ExpansionResult(data=result if has_changes else mapping, has_changes=has_changes)
