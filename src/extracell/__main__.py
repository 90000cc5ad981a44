"""CLI entry point for extracell.

Runs the agent tools against a local JSON workbook file.

Usage:
    python -m extracell read <workbook.json> <range>
    python -m extracell write <workbook.json> <start_cell> <values_json> [--allow-overwrite]
    python -m extracell trace <workbook.json> <cell> [--depth N]
    python -m extracell search <workbook.json> <query> [--formulas] [--regex]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from extracell.config import get_settings
from extracell.logging import setup_logging
from extracell.tools import (
    ToolResult,
    read_range,
    search_workbook,
    trace_dependencies,
    write_cells,
)
from extracell.workbook import LocalFileHost


def load_values(raw: str) -> Any:
    """Parse a JSON values argument; ``@path`` reads the JSON from a file."""
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text()
    return json.loads(raw)


async def cmd_read(host: LocalFileHost, args: argparse.Namespace) -> ToolResult:
    """Read a range."""
    return await read_range(host, {"range": args.range})


async def cmd_write(host: LocalFileHost, args: argparse.Namespace) -> ToolResult:
    """Write values to the workbook file."""
    try:
        values = load_values(args.values)
    except (OSError, json.JSONDecodeError) as e:
        return ToolResult(success=False, text=f"Error: cannot read values: {e}")

    result = await write_cells(
        host,
        {
            "start_cell": args.start_cell,
            "values": values,
            "allow_overwrite": args.allow_overwrite,
        },
    )
    if result.success and not result.details.get("blocked"):
        host.save()
    return result


async def cmd_trace(host: LocalFileHost, args: argparse.Namespace) -> ToolResult:
    """Trace the dependencies of a cell."""
    return await trace_dependencies(host, {"cell": args.cell, "depth": args.depth})


async def cmd_search(host: LocalFileHost, args: argparse.Namespace) -> ToolResult:
    """Search the workbook."""
    return await search_workbook(
        host,
        {
            "query": args.query,
            "search_formulas": args.formulas,
            "use_regex": args.regex,
            "offset": args.offset,
            "sheet": args.sheet,
            "max_results": args.max_results,
        },
    )


COMMANDS = {
    "read": cmd_read,
    "write": cmd_write,
    "trace": cmd_trace,
    "search": cmd_search,
}


async def run(args: argparse.Namespace) -> int:
    workbook = Path(args.workbook)
    if not workbook.exists():
        print(f"Error: Workbook not found: {workbook}", file=sys.stderr)
        return 1

    try:
        host = LocalFileHost(workbook)
    except (OSError, json.JSONDecodeError, KeyError) as e:
        print(f"Error: cannot load workbook {workbook}: {e}", file=sys.stderr)
        return 1

    try:
        result = await COMMANDS[args.command](host, args)
    finally:
        await host.close()

    if result.success:
        print(result.text)
        return 0
    print(result.text, file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="extracell",
        description="Address algebra, safe writes and dependency tracing for spreadsheets",
    )
    parser.add_argument(
        "--log-level", default=settings.log_level, help="Minimum log level"
    )
    parser.add_argument(
        "--json-logs", action="store_true", default=settings.json_logs,
        help="Emit logs as JSON",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    read_parser = subparsers.add_parser("read", help="Read a range")
    read_parser.add_argument("workbook", help="Workbook JSON file")
    read_parser.add_argument("range", help='Range, e.g. "Sheet1!A1:C5"')

    write_parser = subparsers.add_parser("write", help="Write values to cells")
    write_parser.add_argument("workbook", help="Workbook JSON file")
    write_parser.add_argument("start_cell", help='Top-left cell, e.g. "B2"')
    write_parser.add_argument(
        "values", help='JSON 2D array, e.g. \'[[1, "=A1*2"]]\', or @file.json'
    )
    write_parser.add_argument(
        "--allow-overwrite",
        action="store_true",
        help="Overwrite cells that already hold data",
    )

    trace_parser = subparsers.add_parser("trace", help="Trace formula dependencies")
    trace_parser.add_argument("workbook", help="Workbook JSON file")
    trace_parser.add_argument("cell", help='Cell to trace, e.g. "Sheet1!D10"')
    trace_parser.add_argument(
        "--depth", type=int, default=None, help="Levels to trace (default 2, max 5)"
    )

    search_parser = subparsers.add_parser("search", help="Search values or formulas")
    search_parser.add_argument("workbook", help="Workbook JSON file")
    search_parser.add_argument("query", help="Search term")
    search_parser.add_argument(
        "--formulas", action="store_true", help="Search formula text"
    )
    search_parser.add_argument(
        "--regex", action="store_true", help="Treat query as a regular expression"
    )
    search_parser.add_argument("--offset", type=int, default=0, help="Skip N matches")
    search_parser.add_argument("--sheet", default=None, help="Only search this sheet")
    search_parser.add_argument(
        "--max-results", type=int, default=None, help="Maximum matches to return"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(json_logs=args.json_logs, log_level=args.log_level.upper())
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
