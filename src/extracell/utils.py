"""
Utility functions for extracell.

Provides cell value display, markdown table rendering and error value
detection for tool output.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from extracell.address import CellCoordinate, column_index_to_letter, parse_cell

# Error values Excel shows in place of a formula result
EXCEL_ERRORS = frozenset(
    {
        "#NULL!",
        "#DIV/0!",
        "#VALUE!",
        "#REF!",
        "#NAME?",
        "#NUM!",
        "#N/A",
        "#SPILL!",
        "#CALC!",
        "#FIELD!",
        "#BLOCKED!",
        "#CONNECT!",
        "#BUSY!",
        "#UNKNOWN!",
        "#GETTING_DATA",
    }
)


@dataclass
class CellError:
    """An error value found in a block of cells."""

    address: str
    error: str
    formula: str | None = None


def format_number(value: float) -> str:
    """Format a number for display, dropping a trailing ``.0`` on integers."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return str(value)


def format_value(value: Any) -> str:
    """Return the display string of a cell value.

    Examples:
        None -> "", True -> "TRUE", 3.0 -> "3", "abc" -> "abc"
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def is_empty(value: Any) -> bool:
    """Check if a cell value counts as empty."""
    return value is None or value == ""


def truncate(text: str, limit: int) -> str:
    """Shorten text to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) > limit:
        return text[:limit] + "…"
    return text


def _escape_markdown_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\r", " ").replace("\n", " ")


def format_as_markdown_table(values: list[list[Any]], start_cell: str = "A1") -> str:
    """Render a value matrix as a markdown table.

    Columns are labelled with their letters and rows with their numbers,
    counted from ``start_cell``.
    """
    if not values or not any(values):
        return "(empty)"

    start = parse_cell(start_cell)
    width = max(len(row) for row in values)
    header = [""] + [column_index_to_letter(start.col + c) for c in range(width)]
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "---|" * len(header),
    ]
    for r, row in enumerate(values):
        cells = [str(start.row + r)]
        for c in range(width):
            value = row[c] if c < len(row) else ""
            cells.append(_escape_markdown_cell(format_value(value)))
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def find_errors(values: list[list[Any]], start_cell: str) -> list[CellError]:
    """Find Excel error values (``#REF!``, ``#DIV/0!``...) in a value matrix."""
    start = parse_cell(start_cell)
    errors: list[CellError] = []
    for r, row in enumerate(values):
        for c, value in enumerate(row):
            if isinstance(value, str) and value in EXCEL_ERRORS:
                address = start.offset(r, c).a1
                errors.append(CellError(address=address, error=value))
    return errors


def extract_formulas(formulas: list[list[Any]], start_cell: str) -> list[str]:
    """List the formulas in a block as ``ADDRESS: formula`` strings."""
    start = parse_cell(start_cell)
    found: list[str] = []
    for r, row in enumerate(formulas):
        for c, formula in enumerate(row):
            if isinstance(formula, str) and formula.startswith("="):
                found.append(f"{start.offset(r, c).a1}: {formula}")
    return found


def attach_formulas(
    errors: list[CellError], formulas: list[list[Any]], start: CellCoordinate
) -> None:
    """Fill in the formula behind each error from a parallel formula matrix."""
    for err in errors:
        cell = parse_cell(err.address)
        r = cell.row - start.row
        c = cell.col - start.col
        if 0 <= r < len(formulas) and 0 <= c < len(formulas[r]):
            formula = formulas[r][c]
            if isinstance(formula, str) and formula.startswith("="):
                err.formula = formula
