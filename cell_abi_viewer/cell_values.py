"""
cell_values.py - Decoded value variants

Every decoder in the cascade produces one of these shapes (or a primitive,
a plain dict/list, or a raw pytoniq Cell still awaiting expansion):

    Structured         fields decoded by a schema or a block-type parser
    DictionaryEntries  flattened key -> value mapping of a cell dictionary
    Comment            plain text comment (opcode 0x00000000)
    AssemblerText      disassembled bytecode of a cell

CellDictionary is the opaque collection a `dict` schema field yields; the
expander flattens it into DictionaryEntries exactly once.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, Optional, Union

from pytoniq_core import Address, Cell


@dataclass(frozen=True)
class Structured:
    """Fields decoded from a cell by a schema or block-type parser."""
    kind: ClassVar[str] = 'structured'

    fields: Dict[str, Any]
    type_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'type': self.type_name, 'fields': self.fields}


@dataclass(frozen=True)
class DictionaryEntries:
    """Plain mapping of the entries of a cell dictionary."""
    kind: ClassVar[str] = 'dictionary-entries'

    entries: Dict[Any, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'entries': self.entries}


@dataclass(frozen=True)
class Comment:
    kind: ClassVar[str] = 'comment'

    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'text': self.text}


@dataclass(frozen=True)
class AssemblerText:
    kind: ClassVar[str] = 'assembler-text'

    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'text': self.text}


@dataclass(frozen=True)
class CellDictionary(Mapping):
    """Opaque dictionary collection read from a HashmapE field."""
    key_bits: int
    entries: Dict[Any, Any] = field(default_factory=dict)

    def __getitem__(self, key: Any) -> Any:
        return self.entries[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


TaggedValue = Union[Structured, DictionaryEntries, Comment, AssemblerText]

Primitive = Union[str, int, float, bool, bytes, Address, None]

DecodedValue = Union[TaggedValue, Cell, Primitive, Dict[str, Any], list]

TAGGED_TYPES = (Structured, DictionaryEntries, Comment, AssemblerText)
