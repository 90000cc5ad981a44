"""Write validation for extracell.

Checks a pending write before anything reaches the workbook:

- Formula syntax: a conservative static filter (balanced quotes and
  parentheses, no empty body, no trailing operator). It is not a parser.
- Overwrite protection: a write over occupied cells is BLOCKED unless the
  caller explicitly allows it. A blocked check carries the existing values
  so they can be shown to a human before retrying.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from extracell.address import parse_cell
from extracell.exceptions import InvalidFormulaSyntaxError

_TRAILING_OPERATOR_RE = re.compile(r"[+\-*/^&,]$")


@dataclass
class InvalidFormula:
    """A formula rejected by the syntax check."""

    address: str
    formula: str
    reason: str


@dataclass
class PaddedValues:
    """A value matrix padded to a rectangle."""

    values: list[list[Any]]
    rows: int
    cols: int


@dataclass
class WriteCheck:
    """Outcome of validating a write against the target's current contents.

    ``blocked`` means the write must not proceed; ``existing_values`` is the
    target's current value matrix, exactly as read.
    """

    address: str
    blocked: bool
    existing_count: int = 0
    existing_values: list[list[Any]] = field(default_factory=list)

    @property
    def can_write(self) -> bool:
        return not self.blocked


def validate_formula(formula: str) -> str | None:
    """Statically check a formula string.

    Returns a reason string when the formula is malformed, None when it
    passes. Strings not starting with ``=`` are not formulas and pass.
    """
    if not formula.startswith("="):
        return None
    body = formula[1:]

    if not body.strip():
        return "Empty formula"

    if body.count('"') % 2 != 0:
        return "Unbalanced quotes"

    depth = 0
    in_string = False
    for char in body:
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return "Unbalanced parentheses"
    if depth != 0:
        return "Unbalanced parentheses"

    if _TRAILING_OPERATOR_RE.search(body.strip()):
        return "Formula ends with an operator"

    return None


def ensure_valid_formula(formula: str, address: str = "") -> None:
    """Raise InvalidFormulaSyntaxError if validate_formula rejects ``formula``."""
    reason = validate_formula(formula)
    if reason:
        raise InvalidFormulaSyntaxError(address or "?", formula, reason)


def find_invalid_formulas(values: list[list[Any]], start_cell: str) -> list[InvalidFormula]:
    """Check every formula in a value matrix about to be written at start_cell.

    Raises InvalidAddressError if start_cell is not a cell address.
    """
    start = parse_cell(start_cell)
    invalid: list[InvalidFormula] = []

    for r, row in enumerate(values):
        for c, value in enumerate(row):
            if isinstance(value, str) and value.startswith("="):
                reason = validate_formula(value)
                if reason:
                    invalid.append(
                        InvalidFormula(
                            address=start.offset(r, c).a1,
                            formula=value,
                            reason=reason,
                        )
                    )

    return invalid


def count_occupied_cells(
    values: list[list[Any]], formulas: list[list[Any]] | None
) -> int:
    """Count cells holding a value or a formula."""
    count = 0
    for r, row in enumerate(values):
        for c, value in enumerate(row):
            formula = None
            if formulas is not None and r < len(formulas) and c < len(formulas[r]):
                formula = formulas[r][c]
            has_value = value is not None and value != ""
            has_formula = isinstance(formula, str) and formula.startswith("=")
            if has_value or has_formula:
                count += 1
    return count


def check_write(
    address: str,
    values: list[list[Any]],
    formulas: list[list[Any]] | None,
    *,
    allow_overwrite: bool = False,
) -> WriteCheck:
    """Decide whether a write over ``address`` may proceed.

    Args:
        address: The range that would be written
        values: Current values of that range
        formulas: Current formulas of that range
        allow_overwrite: True once a human has confirmed the overwrite

    Returns:
        WriteCheck, blocked when the range is occupied and not authorized
    """
    if allow_overwrite:
        return WriteCheck(address=address, blocked=False)

    occupied = count_occupied_cells(values, formulas)
    if occupied > 0:
        logger.debug("Write to {} blocked: {} occupied cell(s)", address, occupied)
        return WriteCheck(
            address=address,
            blocked=True,
            existing_count=occupied,
            existing_values=values,
        )
    return WriteCheck(address=address, blocked=False)


def pad_values(values: list[list[Any]]) -> PaddedValues:
    """Pad every row with empty strings to the length of the widest row."""
    if not values:
        raise ValueError("values array is empty")
    cols = max(len(row) for row in values)
    padded = [list(row) + [""] * (cols - len(row)) for row in values]
    return PaddedValues(values=padded, rows=len(padded), cols=cols)
