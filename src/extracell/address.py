"""
Address algebra for extracell.

Provides column letter conversion, A1 cell and range parsing, sheet name
quoting and offset arithmetic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from extracell.exceptions import InvalidAddressError

_CELL_RE = re.compile(r"^\$?([A-Z]+)\$?(\d+)$", re.IGNORECASE)
_NEEDS_QUOTES_RE = re.compile(r"[\s']")


@dataclass(frozen=True)
class CellCoordinate:
    """A single cell position.

    ``col`` is 0-indexed (A=0) and ``row`` is 1-indexed, matching how rows
    are displayed in A1 notation.
    """

    col: int
    row: int

    def __post_init__(self) -> None:
        if self.col < 0 or self.row < 1:
            raise InvalidAddressError(
                f"col={self.col}, row={self.row}",
                "column must be >= 0 and row >= 1",
            )

    @property
    def a1(self) -> str:
        return cell_address(self.col, self.row)

    def offset(self, row_offset: int, col_offset: int) -> CellCoordinate:
        return CellCoordinate(col=self.col + col_offset, row=self.row + row_offset)


@dataclass(frozen=True)
class RangeRef:
    """Result of splitting a reference like ``Sheet1!A1:B5``.

    ``sheet`` is None when the reference carries no sheet prefix, which
    means the active sheet.
    """

    sheet: str | None
    address: str


@dataclass(frozen=True)
class RangeAddress:
    """A rectangular block of cells, optionally on a named sheet."""

    sheet: str | None
    start: CellCoordinate
    end: CellCoordinate

    def __post_init__(self) -> None:
        if self.start.col > self.end.col or self.start.row > self.end.row:
            raise InvalidAddressError(
                f"{self.start.a1}:{self.end.a1}", "start must not follow end"
            )

    @property
    def rows(self) -> int:
        return self.end.row - self.start.row + 1

    @property
    def cols(self) -> int:
        return self.end.col - self.start.col + 1

    def is_single_cell(self) -> bool:
        return self.start == self.end

    @property
    def address(self) -> str:
        """A1 address without the sheet prefix."""
        if self.is_single_cell():
            return self.start.a1
        return f"{self.start.a1}:{self.end.a1}"

    def qualified(self, default_sheet: str) -> str:
        return qualified_address(self.sheet or default_sheet, self.address)


def column_index_to_letter(index: int) -> str:
    """Convert a zero-based column index to A1 notation letter(s).

    The encoding is bijective base-26: there is no zero digit in the higher
    positions, hence the ``- 1`` after each division.

    Examples:
        0 -> A, 25 -> Z, 26 -> AA, 701 -> ZZ, 702 -> AAA
    """
    if index < 0:
        raise InvalidAddressError(str(index), "column index must be >= 0")
    result = ""
    while True:
        result = chr(ord("A") + (index % 26)) + result
        index = index // 26 - 1
        if index < 0:
            break
    return result


def letter_to_column_index(letters: str) -> int:
    """Convert A1 notation letter(s) to a zero-based column index.

    Examples:
        A -> 0, Z -> 25, AA -> 26, ZZ -> 701, AAA -> 702
    """
    if not letters or not letters.isascii() or not letters.isalpha():
        raise InvalidAddressError(letters, "column letters expected")
    result = 0
    for char in letters.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def cell_address(col: int, row: int) -> str:
    """Build a cell address from a 0-indexed column and 1-indexed row.

    Examples:
        (0, 1) -> A1, (2, 10) -> C10
    """
    return f"{column_index_to_letter(col)}{row}"


def parse_cell(ref: str) -> CellCoordinate:
    """Parse a cell address like ``B3`` or ``$B$3`` into a CellCoordinate.

    A sheet prefix is ignored. Raises InvalidAddressError if the reference is
    not a single cell.
    """
    clean = parse_range_ref(ref).address
    match = _CELL_RE.match(clean.strip())
    if not match:
        raise InvalidAddressError(ref)
    letters, digits = match.groups()
    row = int(digits)
    if row < 1:
        raise InvalidAddressError(ref, "rows start at 1")
    return CellCoordinate(col=letter_to_column_index(letters), row=row)


def normalize_cell(ref: str) -> str:
    """Return the canonical form of a cell address (upper case, no ``$``)."""
    return parse_cell(ref).a1


def _find_sheet_separator(ref: str) -> int:
    """Index of the first ``!`` outside single quotes, or -1."""
    in_quotes = False
    for i, char in enumerate(ref):
        if char == "'":
            in_quotes = not in_quotes
        elif char == "!" and not in_quotes:
            return i
    return -1


def quote_sheet_name(name: str) -> str:
    """Quote a sheet name for use in a reference if it needs quoting.

    Names containing whitespace or an apostrophe are wrapped in single quotes
    with embedded apostrophes doubled.
    """
    if _NEEDS_QUOTES_RE.search(name):
        escaped = name.replace("'", "''")
        return f"'{escaped}'"
    return name


def unquote_sheet_name(name: str) -> str:
    """Inverse of quote_sheet_name."""
    if len(name) >= 2 and name.startswith("'") and name.endswith("'"):
        name = name[1:-1]
    return name.replace("''", "'")


def parse_range_ref(ref: str) -> RangeRef:
    """Split ``Sheet1!A1:B5`` into its sheet and address parts.

    Never raises: a reference without a sheet prefix yields ``sheet=None``.

    Examples:
        "Sheet1!A1:B5" -> RangeRef("Sheet1", "A1:B5")
        "'Q1 ''24'!C3" -> RangeRef("Q1 '24", "C3")
        "A1" -> RangeRef(None, "A1")
    """
    idx = _find_sheet_separator(ref)
    if idx < 0:
        return RangeRef(sheet=None, address=ref)
    return RangeRef(sheet=unquote_sheet_name(ref[:idx]), address=ref[idx + 1 :])


def qualified_address(sheet: str, address: str) -> str:
    """Build a fully-qualified address like ``Sheet1!A1:B5``.

    Any sheet prefix already on ``address`` is replaced.
    """
    clean = parse_range_ref(address).address
    return f"{quote_sheet_name(sheet)}!{clean}"


def parse_range(ref: str) -> RangeAddress:
    """Parse a range reference (with optional sheet) into a RangeAddress.

    Corners given in reverse order (``B10:A1``) are normalized.
    """
    parts = parse_range_ref(ref)
    pieces = parts.address.split(":")
    if len(pieces) > 2:
        raise InvalidAddressError(ref, "too many ':' separators")
    first = parse_cell(pieces[0])
    second = parse_cell(pieces[1]) if len(pieces) == 2 else first
    start = CellCoordinate(col=min(first.col, second.col), row=min(first.row, second.row))
    end = CellCoordinate(col=max(first.col, second.col), row=max(first.row, second.row))
    return RangeAddress(sheet=parts.sheet, start=start, end=end)


def compute_range_address(start_cell: str, rows: int, cols: int) -> str:
    """Compute the range covered by a ``rows`` x ``cols`` block at start_cell.

    Examples:
        ("B2", 3, 4) -> "B2:E4"
        ("A1", 1, 1) -> "A1:A1"
    """
    if rows < 1 or cols < 1:
        raise InvalidAddressError(start_cell, f"cannot cover a {rows}x{cols} block")
    start = parse_cell(start_cell)
    if rows == 1 and cols == 1:
        return f"{start_cell}:{start_cell}"
    end = start.offset(rows - 1, cols - 1)
    return f"{start_cell}:{end.a1}"


def cell_at_offset(range_start: str, row_offset: int, col_offset: int) -> str:
    """Address of the cell at an offset from a range's start cell.

    Examples:
        ("B2", 1, 2) -> "D3"
    """
    return parse_cell(range_start).offset(row_offset, col_offset).a1


def range_start(address: str) -> str:
    """First cell of a possibly-qualified range (``Sheet1!B2:D5`` -> ``B2``)."""
    return parse_range_ref(address).address.split(":")[0]
