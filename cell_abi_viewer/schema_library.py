"""
schema_library.py - Bundled library of known cell schemas

Loads every YAML file in the package `schemas/` directory (plus any extra
directories) into one SchemaSet covering common message and comment
payloads: text/encrypted comments, jetton and NFT wallet messages.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml
from pytoniq_core import Cell

from .cell_schema import CellSchema, DecodeResult, SchemaError, SchemaSet, schema_set_from_document

logger = logging.getLogger(__name__)

BUNDLED_SCHEMA_DIR = Path(__file__).parent / 'schemas'


def load_schema_file(path: Union[str, Path]) -> List[CellSchema]:
    """Load all constructors from one YAML schema file."""
    path = Path(path)
    try:
        with open(path) as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaError(f"{path}: invalid YAML: {e}") from e
    return schema_set_from_document(document).schemas


class SchemaLibrary:
    """Pre-registered schemas tried against a cell by opcode."""

    def __init__(self, schemas: Iterable[CellSchema]):
        self.schema_set = SchemaSet(list(schemas))

    @classmethod
    def from_directories(cls, *directories: Union[str, Path]) -> 'SchemaLibrary':
        schemas: List[CellSchema] = []
        for directory in directories:
            for path in sorted(Path(directory).glob('*.yaml')):
                loaded = load_schema_file(path)
                logger.debug("Loaded %d schemas from %s", len(loaded), path)
                schemas.extend(loaded)
        return cls(schemas)

    @classmethod
    def bundled(cls, extra_dirs: Optional[Iterable[Union[str, Path]]] = None) -> 'SchemaLibrary':
        """Library of bundled schemas, optionally extended with user directories."""
        return cls.from_directories(BUNDLED_SCHEMA_DIR, *(extra_dirs or ()))

    @property
    def names(self) -> List[str]:
        return [schema.name for schema in self.schema_set.schemas]

    def __len__(self) -> int:
        return len(self.schema_set)

    def deserialize(self, cell: Cell) -> DecodeResult:
        return self.schema_set.deserialize(cell)
