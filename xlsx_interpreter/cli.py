"""
Command-line interface for XLSX Interpreter.

Usage:
    xlsx-interpreter parse report.xlsx --output report.json
    xlsx-interpreter parse report.xlsx --output report.json --compact
    xlsx-interpreter info report.xlsx
    xlsx-interpreter version
"""

import argparse
import json
import sys
from pathlib import Path

from .api import ExcelImageReader
from .export.json_exporter import JSONExporter
from .options import ParseOptions
from .utils.logger import LOG_LEVELS, configure_logging, default_log_level
from .version import __version__

FATAL_PREFIXES = ("Failed to parse file", "Failed to parse buffer")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="xlsx-interpreter",
        description="Extract cell data and images from XLSX packages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  xlsx-interpreter parse report.xlsx -o report.json
  xlsx-interpreter parse report.xlsx -o report.json --compact
  xlsx-interpreter info report.xlsx --json
  xlsx-interpreter version
        """,
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=default_log_level(),
        help="Log level (default: $XLSX_INTERPRETER_LOG_LEVEL or WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser("parse", help="Parse a workbook and export JSON")
    parse_parser.add_argument("input", help="Input XLSX file")
    parse_parser.add_argument("-o", "--output", help="Output JSON path (default: input name with .json)")
    parse_parser.add_argument(
        "--compact",
        action="store_true",
        help="Write images to an images/ directory instead of inlining data URIs",
    )
    parse_parser.add_argument("--include-empty-rows", action="store_true", help="Keep rows without values")
    parse_parser.add_argument(
        "--include-empty-columns",
        action="store_true",
        help="Emit every column of the scanned range",
    )
    parse_parser.add_argument("--no-images", action="store_true", help="Skip image resolution")

    info_parser = subparsers.add_parser("info", help="Show workbook information")
    info_parser.add_argument("input", help="Input XLSX file")
    info_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("version", help="Show version information")

    return parser


def _has_fatal_error(result) -> bool:
    return not result.worksheets and any(error.startswith(FATAL_PREFIXES) for error in result.errors)


def cmd_parse(args) -> int:
    """Handle parse command."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    options = ParseOptions(
        include_images=not args.no_images,
        include_empty_rows=args.include_empty_rows,
        include_empty_columns=args.include_empty_columns,
    )
    result = ExcelImageReader().parse_file(input_path, options)
    if _has_fatal_error(result):
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else input_path.with_suffix(".json")
    exporter = JSONExporter(result, inline_images=not args.compact)
    if not exporter.export(output_path):
        print(f"Error: Could not write {output_path}", file=sys.stderr)
        return 1

    print(f"Saved: {output_path}")
    print(f"   Worksheets: {len(result.worksheets)}")
    print(f"   Images: {len(result.images)}")
    if result.errors:
        print(f"   Diagnostics: {len(result.errors)}")
    return 0


def cmd_info(args) -> int:
    """Handle info command."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    result = ExcelImageReader().parse_file(input_path)
    if _has_fatal_error(result):
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    info = {
        "file": str(input_path),
        "size_bytes": input_path.stat().st_size,
        "worksheets": [
            {
                "name": ws.name,
                "dimension": f"{ws.dimension_start}:{ws.dimension_end}",
                "rows": len(ws.rows),
                "total_images": ws.total_images,
                "rows_with_images": ws.rows_with_images,
            }
            for ws in result.worksheets
        ],
        "images": len(result.images),
        "errors": list(result.errors),
    }

    if args.json:
        print(json.dumps(info, indent=2, ensure_ascii=False))
        return 0

    print(f"File: {input_path}")
    print(f"   Size: {info['size_bytes']:,} bytes")
    print(f"   Images: {info['images']}")
    print()
    print("Worksheets:")
    for sheet in info["worksheets"]:
        print(
            f"   {sheet['name']} [{sheet['dimension']}] rows={sheet['rows']} "
            f"images={sheet['total_images']} rows_with_images={sheet['rows_with_images']}"
        )
    if result.errors:
        print()
        print("Diagnostics:")
        for error in result.errors:
            print(f"   {error}")
    return 0


def cmd_version(args=None) -> int:
    """Handle version command."""
    print(f"xlsx-interpreter v{__version__}")
    return 0


def main(argv=None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if args.command == "parse":
        return cmd_parse(args)
    if args.command == "info":
        return cmd_info(args)
    if args.command == "version":
        return cmd_version(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
