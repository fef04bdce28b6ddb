"""
output_format.py - Render sanitized output as YAML, JSON, plain text or code

The `code` format disassembles the root cell rather than rendering the
decoded value; it needs a disassembler callable (cell -> AssemblerText or
str) and falls back to YAML without one or when disassembly fails.
"""

import json
import logging
from typing import Any, Callable, Optional, Union

import yaml
from pytoniq_core import Cell

from .cell_values import AssemblerText

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('yaml', 'json', 'plain', 'code')
DEFAULT_FORMAT = 'yaml'
# 'code' needs a caller-supplied disassembler
CLI_FORMATS = ('yaml', 'json', 'plain')

Disassembler = Callable[[Cell], Union[AssemblerText, str]]


def to_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def to_plain(data: Any) -> str:
    if isinstance(data, str):
        return data
    return json.dumps(data, ensure_ascii=False)


def disassemble(root: Cell, disassembler: Disassembler) -> AssemblerText:
    code = disassembler(root)
    if isinstance(code, AssemblerText):
        return code
    return AssemblerText(text=str(code))


def format_output(data: Any, fmt: str = DEFAULT_FORMAT, root: Optional[Cell] = None,
                  disassembler: Optional[Disassembler] = None) -> str:
    """Render already-sanitized data in one of OUTPUT_FORMATS."""
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {fmt}")

    if fmt == 'json':
        return to_json(data)
    if fmt == 'plain':
        return to_plain(data)
    if fmt == 'code':
        if root is None or disassembler is None:
            logger.warning("No disassembler available; showing YAML instead")
            return to_yaml(data)
        try:
            return disassemble(root, disassembler).text
        except Exception as e:
            logger.error("Disassembly failed: %s", e)
            return to_yaml(data)
    return to_yaml(data)
