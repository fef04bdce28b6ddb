"""
decoder.py - Decode a cell to a fixed point

Runs the cascade on the root cell, then repeats expansion passes until a
pass changes nothing. Both the number of passes and the expansion depth are
capped; hitting a cap stops expanding and keeps whatever cells are left raw.

Usage:
    from cell_abi_viewer.decoder import CellDecoder

    decoder = CellDecoder()
    value = decoder.decode_fully(cell, hint=schema_text)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pytoniq_core import Cell

from .cascade import DecodeCascade, default_strategies
from .expander import DEFAULT_MAX_DEPTH, PayloadExpander
from .schema_library import SchemaLibrary


@dataclass(frozen=True)
class DecodeLimits:
    """Caps on nested expansion depth and number of expansion passes."""
    max_depth: int = DEFAULT_MAX_DEPTH
    max_passes: int = 32

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.max_passes < 1:
            raise ValueError(f"max_passes must be positive, got {self.max_passes}")


class CellDecoder:
    """Cascade + expansion passes until nothing changes."""

    def __init__(self, cascade: Optional[DecodeCascade] = None,
                 limits: Optional[DecodeLimits] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.cascade = cascade if cascade is not None else DecodeCascade(logger=self.logger)
        self.limits = limits if limits is not None else DecodeLimits()
        self.expander = PayloadExpander(self.cascade, max_depth=self.limits.max_depth,
                                        logger=self.logger)

    @classmethod
    def with_library(cls, library: SchemaLibrary, limits: Optional[DecodeLimits] = None,
                     logger: Optional[logging.Logger] = None) -> 'CellDecoder':
        """Decoder whose library strategy uses the given schema library."""
        logger = logger if logger is not None else logging.getLogger(__name__)
        cascade = DecodeCascade(default_strategies(library, logger=logger), logger=logger)
        return cls(cascade, limits=limits, logger=logger)

    def decode_fully(self, cell: Cell, hint: str = '') -> Any:
        """
        Decode a cell and expand every nested cell reachable from it.

        Returns the raw cell unchanged when the cascade cannot decode it.
        """
        value = self.cascade.decode(cell, hint)
        if value is None:
            return cell

        for passes in range(self.limits.max_passes):
            result = self.expander.expand(value, hint)
            if not result.has_changes:
                self.logger.debug("Fixed point reached after %d passes", passes)
                return value
            value = result.data

        self.logger.warning("Stopped expanding after %d passes without reaching a fixed point",
                            self.limits.max_passes)
        return value


def decode_fully(cell: Cell, hint: str = '') -> Any:
    """Convenience function using the default cascade and limits."""
    return CellDecoder().decode_fully(cell, hint)
