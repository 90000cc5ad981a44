"""Formula reference extraction for extracell.

Pulls cell references out of a formula string so dependencies can be traced
when the host cannot report direct precedents itself.

This is a best-effort heuristic, not a formula grammar. It can over-match
tokens that look like cells (``LOG10``) and does not understand 3-D
references (``Sheet1:Sheet3!A1``) or structured table references.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from extracell.address import qualified_address, unquote_sheet_name

# Cell with optional absolute markers: A1, $A1, A$1, $A$1
_CELL_PATTERN = r"\$?[A-Z]+\$?[0-9]+"

# Optional range tail: A1:B10
_RANGE_TAIL = rf"(?::{_CELL_PATTERN})?"

# Unquoted: Sheet1!A1
_UNQUOTED_SHEET = r"[A-Za-z_][A-Za-z0-9_]*"
# Quoted: 'Sheet Name'!A1 or 'Sheet''s Name'!A1 (escaped quotes)
_QUOTED_SHEET = r"'(?:[^']|'')+'"

_REFERENCE_RE = re.compile(
    rf"(?:(?P<sheet>{_QUOTED_SHEET}|{_UNQUOTED_SHEET})!)?"
    rf"(?P<cell>{_CELL_PATTERN}){_RANGE_TAIL}"
)

DEFAULT_REFERENCE_LIMIT = 10


@dataclass(frozen=True)
class FormulaReference:
    """A reference found in a formula, reduced to a single cell."""

    sheet: str  # Sheet name, unquoted
    cell: str  # Cell address without $ markers
    original_text: str  # Text as it appeared in the formula

    @property
    def address(self) -> str:
        """Fully-qualified address like ``'My Sheet'!B2``."""
        return qualified_address(self.sheet, self.cell)


def find_references(formula: str, current_sheet: str) -> list[FormulaReference]:
    """Find every cell reference in a formula, in order of appearance.

    Bare references are placed on ``current_sheet``. Ranges are reduced to
    their first cell. Duplicates are kept.
    """
    refs: list[FormulaReference] = []
    for match in _REFERENCE_RE.finditer(formula):
        sheet_part = match.group("sheet")
        sheet = unquote_sheet_name(sheet_part) if sheet_part else current_sheet
        cell = match.group("cell").replace("$", "")
        refs.append(
            FormulaReference(sheet=sheet, cell=cell, original_text=match.group(0))
        )
    return refs


def extract_references(
    formula: str,
    current_sheet: str,
    limit: int = DEFAULT_REFERENCE_LIMIT,
) -> list[str]:
    """Extract distinct fully-qualified cell references from a formula.

    Args:
        formula: Formula string (with or without leading =)
        current_sheet: Sheet that bare references like ``A1`` belong to
        limit: Maximum number of distinct references to return

    Returns:
        Qualified single-cell addresses in order of first appearance,
        compared case-insensitively for uniqueness.

    Examples:
        ("=A1+Data!$B$2", "Sheet1") -> ["Sheet1!A1", "Data!B2"]
        ("=SUM('Q1 Sales'!C3:C9)", "Sheet1") -> ["'Q1 Sales'!C3"]
    """
    seen: set[str] = set()
    result: list[str] = []
    for ref in find_references(formula, current_sheet):
        address = ref.address
        key = address.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(address)
        if len(result) >= limit:
            break
    return result
