#!/usr/bin/env python3
"""
cli.py - Decode a TON cell into readable YAML/JSON

Usage:
  # Decode a base64 or hex cell
  cell-abi-viewer <base64-cell>
  cell-abi-viewer cell.boc.b64 --format json

  # Read the cell from stdin
  echo b5ee9c72... | cell-abi-viewer -

  # Try a custom schema first
  cell-abi-viewer <cell> --schema my_message.yaml
  cell-abi-viewer <cell> --schema-text "{opcode: 0x12345678, fields: [{name: x, type: uint32}]}"

  # Add schema directories to the bundled library
  cell-abi-viewer <cell> --schema-dir ./schemas

  # Open the result in JSON Hero
  cell-abi-viewer <cell> --export --open
"""

import argparse
import logging
import sys
import webbrowser
from pathlib import Path

from .cell_input import InputFormatError
from .cell_schema import SchemaError
from .decoder import CellDecoder, DecodeLimits
from .export import export_to_viewer
from .output_format import CLI_FORMATS, DEFAULT_FORMAT
from .schema_library import SchemaLibrary
from .viewer import view_cell


def read_input(value: str) -> str:
    """Input argument may be '-', a file path, or the cell text itself."""
    if value == '-':
        return sys.stdin.read()
    path = Path(value)
    try:
        if path.is_file():
            return path.read_text()
    except OSError:
        pass  # Too long for a path; treat as cell text
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Decode a TON cell (base64 or hex) into a readable structure'
    )
    parser.add_argument('input', help="Cell text, file containing it, or '-' for stdin")
    parser.add_argument('--schema', type=Path, help='YAML cell schema to try first')
    parser.add_argument('--schema-text', default='', help='Inline cell schema to try first')
    parser.add_argument('--schema-dir', type=Path, action='append', default=[],
                        help='Extra directory of YAML schemas for the library (repeatable)')
    parser.add_argument('-f', '--format', choices=CLI_FORMATS, default=DEFAULT_FORMAT,
                        help=f'Output format (default: {DEFAULT_FORMAT})')
    parser.add_argument('--max-depth', type=int, default=DecodeLimits.max_depth,
                        help='Maximum nesting depth expanded (default: %(default)s)')
    parser.add_argument('--max-passes', type=int, default=DecodeLimits.max_passes,
                        help='Maximum expansion passes (default: %(default)s)')
    parser.add_argument('--export', action='store_true',
                        help='Upload the result to JSON Hero and print its URL')
    parser.add_argument('--open', action='store_true',
                        help='Open the exported document in a browser (implies --export)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log strategy failures and expansion details')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    hint = args.schema_text
    if args.schema:
        if not args.schema.exists():
            print(f"Error: {args.schema} not found", file=sys.stderr)
            return 1
        hint = args.schema.read_text()

    try:
        limits = DecodeLimits(max_depth=args.max_depth, max_passes=args.max_passes)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        library = SchemaLibrary.bundled(args.schema_dir)
    except (SchemaError, OSError) as e:
        print(f"Error loading schemas: {e}", file=sys.stderr)
        return 1

    decoder = CellDecoder.with_library(library, limits=limits)

    try:
        result = view_cell(read_input(args.input), hint=hint, decoder=decoder, fmt=args.format)
    except InputFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(result.render())

    if args.export or args.open:
        location = export_to_viewer(result.output)
        if location:
            print(location, file=sys.stderr)
            if args.open:
                webbrowser.open(location)

    return 0


if __name__ == '__main__':
    sys.exit(main())
