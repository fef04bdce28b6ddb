#!/usr/bin/env python3
"""
cell_schema.py - Runtime Schema Interpreter for TON Cells

Deserializes cells using YAML cell-schema definitions at runtime. Schema
text is compiled once and can then be applied to any number of cells.

Usage:
    from cell_abi_viewer.cell_schema import compile_schema

    schemas = compile_schema(schema_text)
    result = schemas.deserialize(cell)
    if result.success:
        print(result.kind, result.data)

    # Or from the command line
    python -m cell_abi_viewer.cell_schema schema.yaml <base64-or-hex cell>
"""

import re
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pytoniq_core import Cell, Slice, begin_cell

from .cell_values import CellDictionary


class SchemaError(Exception):
    """Schema text could not be compiled."""
    pass


@dataclass
class DecodeResult:
    """Result of deserializing a cell."""
    data: Dict[str, Any]
    bits_consumed: int = 0
    kind: Optional[str] = None
    schema_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


INT_TYPE_RE = re.compile(r'^(u|uint|s|i|int)(\d+)$')

SIMPLE_TYPES = {
    'bool', 'bit', 'coins', 'grams', 'address', 'bits', 'bytes', 'string',
    'ref', 'maybe_ref', 'either_ref', 'cell', 'skip', 'object', 'ref_object',
    'enum', 'dict', 'match',
}


def _parse_int_type(field_type: str) -> Optional[Tuple[int, bool]]:
    """Return (bits, signed) for uintN/intN style types."""
    match = INT_TYPE_RE.match(field_type)
    if not match:
        return None
    prefix, width = match.group(1), int(match.group(2))
    if width == 0 or width > 257:
        return None
    return width, prefix not in ('u', 'uint')


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def _slice_to_cell(cs: Slice) -> Cell:
    """Move everything left in the slice into a fresh cell."""
    builder = begin_cell().store_bits(cs.load_bits(cs.remaining_bits))
    while cs.remaining_refs:
        builder = builder.store_ref(cs.load_ref())
    return builder.end_cell()


def _dict_key(key: Any) -> int:
    if isinstance(key, int):
        return key
    return int(key.to01(), 2) if len(key) else 0


class CellSchema:
    """
    Runtime interpreter for one cell-schema constructor.

    Supports:
    - Unsigned/signed integers of any width (uint64, int8, u32, s16, ...)
    - bool, coins, address
    - Raw bits and bytes, snake-encoded strings
    - References (ref, maybe_ref, either_ref) and cell remainders
    - Nested objects, inline or inside a reference
    - Enums, dictionaries and match on a stored variable
    - $ref to shared definitions
    """

    def __init__(self, schema: Dict[str, Any]):
        if not isinstance(schema, dict):
            raise SchemaError(f"Schema must be a mapping, got {type(schema).__name__}")
        fields = schema.get('fields')
        if not isinstance(fields, list):
            raise SchemaError(f"Schema '{schema.get('name', 'unknown')}' has no fields list")

        self.schema = schema
        self.name = schema.get('name', 'unknown')
        self.kind = schema.get('kind', self.name)
        self.definitions = schema.get('definitions', {}) or {}
        self.allow_remaining = bool(schema.get('allow_remaining', False))
        self.opcode = None
        try:
            self.opcode_bits = _as_int(schema.get('opcode_bits', 32))
            if schema.get('opcode') is not None:
                self.opcode = _as_int(schema['opcode'])
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Schema '{self.name}': bad opcode: {e}") from e
        if not 1 <= self.opcode_bits <= 256:
            raise SchemaError(f"Schema '{self.name}': opcode_bits out of range: {self.opcode_bits}")
        if not isinstance(self.definitions, dict):
            raise SchemaError(f"Schema '{self.name}': definitions must be a mapping")

        self._check_fields(fields, ())
        self.fields = fields
        self._variables: Dict[str, Any] = {}

    def _check_fields(self, fields: Any, refs: Tuple[str, ...]) -> None:
        """Reject unknown field types before any cell is touched."""
        if not isinstance(fields, list):
            raise SchemaError(f"Schema '{self.name}': fields must be a list")
        for field_def in fields:
            if not isinstance(field_def, dict):
                raise SchemaError(f"Schema '{self.name}': field must be a mapping: {field_def!r}")
            if '$ref' in field_def:
                ref = field_def['$ref']
                if ref in refs:
                    raise SchemaError(f"Schema '{self.name}': recursive $ref: {ref}")
                definition = self._resolve_ref(ref)
                if not isinstance(definition, dict):
                    raise SchemaError(f"Schema '{self.name}': definition {ref} must be a mapping")
                self._check_fields(definition.get('fields', []), refs + (ref,))
                continue
            field_type = str(field_def.get('type', 'uint8'))
            if field_type not in SIMPLE_TYPES and _parse_int_type(field_type) is None:
                raise SchemaError(
                    f"Schema '{self.name}': unknown type '{field_type}' "
                    f"for field '{field_def.get('name', 'unknown')}'")
            if 'fields' in field_def:
                self._check_fields(field_def['fields'], refs)
            if field_type == 'dict' and isinstance(field_def.get('value'), dict):
                self._check_fields([field_def['value']], refs)
            if field_type == 'match':
                cases = field_def.get('cases') or {}
                if not isinstance(cases, dict):
                    raise SchemaError(f"Schema '{self.name}': match cases must be a mapping")
                for case_fields in cases.values():
                    self._check_fields(case_fields or [], refs)

    def _resolve_ref(self, ref: str) -> Dict[str, Any]:
        """
        Resolve a $ref reference to its definition.

        Supports: #/definitions/name format (local references)
        """
        if not isinstance(ref, str) or not ref.startswith('#/definitions/'):
            raise SchemaError(f"Unsupported $ref format: {ref}")

        def_name = ref.split('/')[-1]
        if def_name not in self.definitions:
            raise SchemaError(f"Definition not found: {def_name}")

        return self.definitions[def_name]

    def _decode_field(self, field_def: Dict[str, Any], cs: Slice) -> Any:
        """Decode a single field from the slice."""
        field_type = str(field_def.get('type', 'uint8'))

        int_type = _parse_int_type(field_type)
        if int_type is not None:
            width, signed = int_type
            return cs.load_int(width) if signed else cs.load_uint(width)

        if field_type in ('bool', 'bit'):
            return bool(cs.load_uint(1))

        if field_type in ('coins', 'grams'):
            return cs.load_coins()

        if field_type == 'address':
            return cs.load_address()

        if field_type == 'bits':
            return cs.load_bits(_as_int(field_def.get('length', 1))).to01()

        if field_type == 'bytes':
            return cs.load_bytes(_as_int(field_def.get('length', 1)))

        if field_type == 'string':
            # Invalid UTF-8 still reads as text
            return cs.load_snake_bytes().decode('utf-8', errors='replace')

        if field_type == 'ref':
            return cs.load_ref()

        if field_type == 'maybe_ref':
            return cs.load_maybe_ref()

        if field_type == 'either_ref':
            # Either X ^X
            if cs.load_uint(1):
                return cs.load_ref()
            return _slice_to_cell(cs)

        if field_type == 'cell':
            return _slice_to_cell(cs)

        if field_type == 'skip':
            cs.load_bits(_as_int(field_def.get('length', 1)))
            return None

        if field_type == 'object':
            return self._decode_fields(field_def.get('fields', []), cs)

        if field_type == 'ref_object':
            ref_slice = cs.load_ref().begin_parse()
            value = self._decode_fields(field_def.get('fields', []), ref_slice)
            self._check_consumed(ref_slice, field_def.get('name', 'unknown'))
            return value

        if field_type == 'enum':
            return self._decode_enum(field_def, cs)

        if field_type == 'dict':
            return self._decode_dict(field_def, cs)

        if field_type == 'match':
            return self._decode_match(field_def, cs)

        raise ValueError(f"Unknown type: {field_type}")

    def _decode_fields(self, fields: List[Dict[str, Any]], cs: Slice) -> Dict[str, Any]:
        """Decode a field list into a dict, honouring $ref, var and _hidden names."""
        result = {}
        for field_def in fields:
            if '$ref' in field_def:
                ref_def = self._resolve_ref(field_def['$ref'])
                result.update(self._decode_fields(ref_def.get('fields', []), cs))
                continue

            name = field_def.get('name', 'unknown')
            value = self._decode_field(field_def, cs)

            # Untyped match merges its case fields into the parent
            if field_def.get('type') == 'match' and 'name' not in field_def:
                result.update(value)
                continue

            if field_def.get('var'):
                self._variables[field_def['var']] = value
            self._variables[name] = value
            if value is None and field_def.get('type') == 'skip':
                continue
            if not name.startswith('_'):
                result[name] = value
        return result

    def _decode_enum(self, field_def: Dict[str, Any], cs: Slice) -> Any:
        """Decode enum field: base integer type mapped to string value."""
        base_type = field_def.get('base', 'uint8')
        values = field_def.get('values', {})

        raw_value = self._decode_field({'type': base_type}, cs)

        # Values can be dict {0: 'idle', 1: 'running'} or list ['idle', 'running']
        if isinstance(values, dict):
            values_map = {_as_int(k): v for k, v in values.items()}
            if raw_value in values_map:
                return values_map[raw_value]
            return f"unknown({raw_value})"
        elif isinstance(values, list):
            if 0 <= raw_value < len(values):
                return values[raw_value]
            return f"unknown({raw_value})"

        return raw_value

    def _decode_dict(self, field_def: Dict[str, Any], cs: Slice) -> Optional[CellDictionary]:
        """Decode HashmapE with fixed-width keys; values follow the 'value' field def."""
        key_bits = _as_int(field_def.get('key_bits', 32))
        value_def = field_def.get('value', {'type': 'cell'})

        def value_decoder(value_slice: Slice) -> Any:
            return self._decode_field(value_def, value_slice)

        entries = cs.load_dict(key_bits, _dict_key, value_decoder)
        if entries is None:
            return CellDictionary(key_bits=key_bits)
        return CellDictionary(key_bits=key_bits, entries=dict(entries))

    def _decode_match(self, field_def: Dict[str, Any], cs: Slice) -> Dict[str, Any]:
        """
        Decode conditional/match field.

        match on a stored variable:
          type: match, on: $op, cases: {1: [fields...], 2: [fields...]}

        match on an inline tag read from the slice:
          type: match, bits: 4, cases: {...}

        Case patterns:
        - Single value: 1
        - List of values: [1, 2, 3]
        - Range: "2..5"
        - Default handling: default: error | skip | [fields]
        """
        cases = field_def.get('cases', {}) or {}
        default = field_def.get('default', 'error')

        on_field = field_def.get('on')
        if on_field:
            var_name = str(on_field).lstrip('$')
            if var_name not in self._variables:
                raise ValueError(f"Match variable not found: {var_name}")
            discriminator = self._variables[var_name]
        elif field_def.get('bits') is not None:
            discriminator = cs.load_uint(_as_int(field_def['bits']))
        else:
            raise ValueError("Match has neither 'on' nor 'bits'")

        matched_fields = None
        default_fields = None
        for case_key, case_fields in cases.items():
            if case_key == 'default':
                default_fields = case_fields
                continue
            if self._match_case_pattern(discriminator, case_key):
                matched_fields = case_fields
                break

        if matched_fields is None:
            if default_fields is not None:
                matched_fields = default_fields
            elif isinstance(default, list):
                matched_fields = default
            elif default == 'skip':
                return {}
            else:
                raise ValueError(f"No matching case for value {discriminator}")

        return self._decode_fields(matched_fields or [], cs)

    def _match_case_pattern(self, value: Any, pattern: Any) -> bool:
        """
        Check if value matches case pattern.

        Supports:
        - Single value: 1
        - List: [1, 2, 3]
        - Range string: "2..5"
        - Hex string: "0x0f8a7ea5"
        """
        if value is None:
            return False

        if isinstance(pattern, list):
            return value in pattern

        if isinstance(pattern, str) and '..' in pattern:
            try:
                start, end = pattern.split('..')
                return _as_int(start) <= value <= _as_int(end)
            except ValueError:
                return False

        if isinstance(pattern, str):
            try:
                return value == _as_int(pattern)
            except ValueError:
                return value == pattern

        return value == pattern

    def _check_consumed(self, cs: Slice, where: str) -> None:
        if self.allow_remaining:
            return
        if cs.remaining_bits or cs.remaining_refs:
            raise ValueError(
                f"{where}: {cs.remaining_bits} bits and {cs.remaining_refs} refs left unread")

    def deserialize(self, cell: Cell) -> DecodeResult:
        """
        Deserialize a cell using this schema.

        Field errors are collected in the result, never raised.
        """
        result = DecodeResult(data={}, kind=self.kind, schema_name=self.name)
        self._variables = {}

        cs = cell.begin_parse()
        total_bits = cs.remaining_bits

        if self.opcode is not None:
            try:
                op = cs.load_uint(self.opcode_bits)
            except Exception as e:
                result.errors.append(f"Error reading opcode: {e}")
                return result
            if op != self.opcode:
                result.errors.append(
                    f"Opcode mismatch: expected {self.opcode:#010x}, got {op:#010x}")
                return result

        for field_def in self.fields:
            name = field_def.get('name', field_def.get('$ref', 'unknown'))
            try:
                result.data.update(self._decode_fields([field_def], cs))
            except Exception as e:
                result.errors.append(f"Error decoding {name}: {e}")
                break

        if result.success:
            try:
                self._check_consumed(cs, self.name)
            except ValueError as e:
                result.errors.append(str(e))

        result.bits_consumed = total_bits - cs.remaining_bits
        return result


class SchemaSet:
    """Ordered set of constructors; the first one that deserializes wins."""

    def __init__(self, schemas: List[CellSchema]):
        self.schemas = list(schemas)
        self._by_opcode: Dict[Tuple[int, int], List[CellSchema]] = {}
        for schema in self.schemas:
            if schema.opcode is not None:
                key = (schema.opcode_bits, schema.opcode)
                self._by_opcode.setdefault(key, []).append(schema)

    def __len__(self) -> int:
        return len(self.schemas)

    def _candidates(self, cell: Cell) -> List[CellSchema]:
        """Constructors whose opcode matches the cell prefix, then untagged ones."""
        tagged = []
        for opcode_bits in sorted({bits for bits, _ in self._by_opcode}):
            if len(cell.bits) < opcode_bits:
                continue
            op = cell.begin_parse().load_uint(opcode_bits)
            tagged.extend(self._by_opcode.get((opcode_bits, op), []))
        untagged = [s for s in self.schemas if s.opcode is None]
        return tagged + untagged

    def deserialize(self, cell: Cell) -> DecodeResult:
        errors = []
        for schema in self._candidates(cell):
            result = schema.deserialize(cell)
            if result.success:
                return result
            errors.extend(f"{schema.name}: {e}" for e in result.errors)

        if not errors:
            errors.append("No schema matched")
        return DecodeResult(data={}, errors=errors)


def schema_set_from_document(document: Any) -> SchemaSet:
    """Build a SchemaSet from a parsed YAML/JSON document."""
    if not isinstance(document, dict):
        raise SchemaError("Schema text must be a YAML mapping")

    if 'schemas' in document:
        entries = document['schemas']
        if not isinstance(entries, list):
            raise SchemaError("'schemas' must be a list of constructors")
        shared = document.get('definitions', {}) or {}
        if not isinstance(shared, dict):
            raise SchemaError("'definitions' must be a mapping")
        schemas = []
        for entry in entries:
            if isinstance(entry, dict) and shared and isinstance(entry.get('definitions') or {}, dict):
                entry = {**entry, 'definitions': {**shared, **(entry.get('definitions') or {})}}
            schemas.append(CellSchema(entry))
        return SchemaSet(schemas)

    return SchemaSet([CellSchema(document)])


def compile_schema(text: str) -> SchemaSet:
    """Compile schema text (YAML or JSON) into a SchemaSet."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(f"Invalid schema YAML: {e}") from e
    return schema_set_from_document(document)


def deserialize_cell(schema_text: str, cell: Cell) -> Dict[str, Any]:
    """Convenience function to deserialize a cell."""
    result = compile_schema(schema_text).deserialize(cell)
    if not result.success:
        raise ValueError(f"Decode errors: {result.errors}")
    return result.data


if __name__ == '__main__':
    from .cell_input import InputFormatError, parse_cell_input
    from .output_format import format_output
    from .sanitize import sanitize

    if len(sys.argv) != 3:
        print("Usage: python -m cell_abi_viewer.cell_schema schema.yaml <cell>", file=sys.stderr)
        sys.exit(2)

    with open(sys.argv[1]) as f:
        schema_text = f.read()

    try:
        cell = parse_cell_input(sys.argv[2])
    except InputFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    result = compile_schema(schema_text).deserialize(cell)
    print(f"Kind: {result.kind}")
    print(f"Bits consumed: {result.bits_consumed}")
    for error in result.errors:
        print(f"  error: {error}")
    print(format_output(sanitize(result.data)))
    sys.exit(0 if result.success else 1)
