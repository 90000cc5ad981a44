"""Workbook access layer for extracell.

Defines the snapshots the engine works on and the host interface that
produces them:

- WorkbookHost: async interface to a live workbook (read, write, snapshot)
- LocalFileHost: host backed by a local JSON workbook file
- PrecedentsProvider: optional host capability reporting direct precedents

Engine functions never talk to the host. A tool call reads one snapshot,
hands it to the engine and performs at most one write.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any, TypeVar

from loguru import logger

from extracell.address import (
    CellCoordinate,
    RangeAddress,
    cell_address,
    parse_cell,
    parse_range,
    parse_range_ref,
    qualified_address,
    range_start,
)
from extracell.exceptions import (
    InvalidAddressError,
    PrecedentsUnavailableError,
    UnresolvedReferenceError,
)

VISIBLE = "Visible"


@dataclass(frozen=True)
class CellSnapshot:
    """Value and formula of a single cell."""

    sheet: str
    address: str  # e.g. "B3", no $ markers
    value: Any
    formula: Any

    @property
    def qualified_address(self) -> str:
        return qualified_address(self.sheet, self.address)

    @property
    def is_formula(self) -> bool:
        return isinstance(self.formula, str) and self.formula.startswith("=")


@dataclass(frozen=True)
class RangeSnapshot:
    """Values and formulas of a rectangular range."""

    sheet: str
    address: str  # e.g. "B2:D5", no sheet prefix
    values: list[list[Any]]
    formulas: list[list[Any]]

    @property
    def qualified_address(self) -> str:
        return qualified_address(self.sheet, self.address)

    @property
    def start_cell(self) -> str:
        return range_start(self.address)

    @property
    def rows(self) -> int:
        return len(self.values)

    @property
    def cols(self) -> int:
        return max((len(row) for row in self.values), default=0)


@dataclass(frozen=True)
class SheetSnapshot:
    """The used range of one sheet.

    ``values`` and ``formulas`` are parallel matrices covering ``used_range``.
    For non-formula cells the formula entry holds the constant itself, the
    way spreadsheet hosts report it. ``used_range`` is None for an empty sheet.
    """

    name: str
    values: list[list[Any]] = field(default_factory=list)
    formulas: list[list[Any]] = field(default_factory=list)
    used_range: str | None = None
    visibility: str = VISIBLE

    @property
    def is_visible(self) -> bool:
        return self.visibility == VISIBLE

    @property
    def origin(self) -> CellCoordinate | None:
        """Top-left cell of the used range; it is not necessarily A1."""
        if self.used_range is None:
            return None
        return parse_cell(range_start(self.used_range))

    def _local(self, coordinate: CellCoordinate) -> tuple[Any, Any]:
        origin = self.origin
        if origin is None:
            return "", ""
        r = coordinate.row - origin.row
        c = coordinate.col - origin.col
        if r < 0 or c < 0 or r >= len(self.values) or c >= len(self.values[r]):
            return "", ""
        formula = ""
        if r < len(self.formulas) and c < len(self.formulas[r]):
            formula = self.formulas[r][c]
        return self.values[r][c], formula

    def read_cell(self, cell: str) -> CellSnapshot:
        coordinate = parse_cell(cell)
        value, formula = self._local(coordinate)
        return CellSnapshot(
            sheet=self.name, address=coordinate.a1, value=value, formula=formula
        )

    def read_range(self, address: str) -> RangeSnapshot:
        target = parse_range(address)
        values: list[list[Any]] = []
        formulas: list[list[Any]] = []
        for row in range(target.start.row, target.end.row + 1):
            value_row: list[Any] = []
            formula_row: list[Any] = []
            for col in range(target.start.col, target.end.col + 1):
                value, formula = self._local(CellCoordinate(col=col, row=row))
                value_row.append(value)
                formula_row.append(formula)
            values.append(value_row)
            formulas.append(formula_row)
        return RangeSnapshot(
            sheet=self.name, address=target.address, values=values, formulas=formulas
        )

    def iter_cells(self) -> Iterator[tuple[str, Any, Any]]:
        """Yield ``(address, value, formula)`` row by row, left to right."""
        origin = self.origin
        if origin is None:
            return
        for r, row in enumerate(self.values):
            for c, value in enumerate(row):
                formula = ""
                if r < len(self.formulas) and c < len(self.formulas[r]):
                    formula = self.formulas[r][c]
                yield cell_address(origin.col + c, origin.row + r), value, formula


class PrecedentsProvider(ABC):
    """Host capability that reports the cells a formula reads from.

    ``try_get`` returns groups of address strings, or None when the host
    cannot answer for that cell. Implementations must not raise for an
    unsupported cell.
    """

    @abstractmethod
    def try_get(self, address: str) -> list[list[str]] | None:
        """Direct precedents of a fully-qualified single cell address."""
        ...


class MappingPrecedents(PrecedentsProvider):
    """Precedents served from a static mapping of address -> address groups."""

    def __init__(self, mapping: dict[str, list[list[str]]]) -> None:
        self._original = dict(mapping)
        self._mapping = {_precedent_key(k): v for k, v in mapping.items()}

    def try_get(self, address: str) -> list[list[str]] | None:
        return self._mapping.get(_precedent_key(address))

    def to_dict(self) -> dict[str, list[list[str]]]:
        return dict(self._original)


class CallablePrecedents(PrecedentsProvider):
    """Wraps a host lookup that may raise when it cannot answer."""

    def __init__(self, lookup: Callable[[str], list[list[str]]]) -> None:
        self._lookup = lookup

    def try_get(self, address: str) -> list[list[str]] | None:
        try:
            return self._lookup(address) or None
        except PrecedentsUnavailableError as e:
            logger.debug("{}", e)
            return None
        except Exception as e:  # fails on empty cells and preview API builds
            logger.debug("Direct precedents lookup failed for {}: {}", address, e)
            return None


_T = TypeVar("_T")


def _find_sheet(sheets: dict[str, _T], name: str) -> _T:
    """Look up a sheet by name, ignoring case the way Excel does."""
    if name in sheets:
        return sheets[name]
    folded = name.casefold()
    for key, sheet in sheets.items():
        if key.casefold() == folded:
            return sheet
    raise UnresolvedReferenceError(name, "sheet not found")


def _precedent_key(address: str) -> str:
    parts = parse_range_ref(address)
    cell = parts.address.replace("$", "")
    if parts.sheet is None:
        return cell.lower()
    return qualified_address(parts.sheet, cell).lower()


@dataclass
class WorkbookSnapshot:
    """Point-in-time view of a workbook, read once per tool call."""

    sheets: dict[str, SheetSnapshot]
    active_sheet: str
    precedents: PrecedentsProvider | None = None

    def sheet(self, name: str | None = None) -> SheetSnapshot:
        """Look up a sheet by name; None means the active sheet."""
        target = name if name is not None else self.active_sheet
        return _find_sheet(self.sheets, target)

    def read_cell(self, ref: str) -> CellSnapshot:
        """Read a single cell like ``B3`` or ``'My Sheet'!$B$3``."""
        parts = parse_range_ref(ref)
        if ":" in parts.address:
            raise InvalidAddressError(ref, "expected a single cell, not a range")
        return self.sheet(parts.sheet).read_cell(parts.address)

    def read_range(self, ref: str) -> RangeSnapshot:
        parts = parse_range_ref(ref)
        return self.sheet(parts.sheet).read_range(parts.address)


class WorkbookHost(ABC):
    """Abstract base class for live workbook access.

    Implementations wrap a spreadsheet host (an Office add-in bridge, a
    local file, ...) and may perform their own batching and I/O.
    """

    @abstractmethod
    async def snapshot(self) -> WorkbookSnapshot:
        """Read the used range of every sheet."""
        ...

    @abstractmethod
    async def read_range(self, ref: str) -> RangeSnapshot:
        """Read a range; a reference without a sheet uses the active sheet."""
        ...

    @abstractmethod
    async def write_range(
        self, sheet: str | None, address: str, values: list[list[Any]]
    ) -> None:
        """Write a rectangular value matrix to ``address``.

        Strings starting with ``=`` are written as formulas.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release host resources."""
        ...


@dataclass
class _SheetCells:
    name: str
    visibility: str = VISIBLE
    # (row, col) -> value / formula; row is 1-indexed, col 0-indexed
    values: dict[tuple[int, int], Any] = field(default_factory=dict)
    formulas: dict[tuple[int, int], str] = field(default_factory=dict)

    def bounds(self) -> RangeAddress | None:
        keys = set(self.values) | set(self.formulas)
        if not keys:
            return None
        rows = [k[0] for k in keys]
        cols = [k[1] for k in keys]
        return RangeAddress(
            sheet=None,
            start=CellCoordinate(col=min(cols), row=min(rows)),
            end=CellCoordinate(col=max(cols), row=max(rows)),
        )

    def set(self, row: int, col: int, value: Any) -> None:
        key = (row, col)
        self.values.pop(key, None)
        self.formulas.pop(key, None)
        if isinstance(value, str) and value.startswith("="):
            self.formulas[key] = value
        elif value is not None and value != "":
            self.values[key] = value

    def to_snapshot(self) -> SheetSnapshot:
        bounds = self.bounds()
        if bounds is None:
            return SheetSnapshot(name=self.name, visibility=self.visibility)
        values: list[list[Any]] = []
        formulas: list[list[Any]] = []
        for row in range(bounds.start.row, bounds.end.row + 1):
            value_row: list[Any] = []
            formula_row: list[Any] = []
            for col in range(bounds.start.col, bounds.end.col + 1):
                value = self.values.get((row, col), "")
                value_row.append(value)
                formula_row.append(self.formulas.get((row, col), value))
            values.append(value_row)
            formulas.append(formula_row)
        return SheetSnapshot(
            name=self.name,
            values=values,
            formulas=formulas,
            used_range=f"{bounds.start.a1}:{bounds.end.a1}",
            visibility=self.visibility,
        )


class InMemoryHost(WorkbookHost):
    """Workbook host holding its cells in memory.

    Formulas are stored but never evaluated, so a written formula cell reads
    back with an empty value.
    """

    def __init__(
        self,
        workbook: dict[str, Any] | None = None,
        precedents: PrecedentsProvider | None = None,
    ) -> None:
        """Initialize the host.

        Args:
            workbook: Workbook in the local JSON layout (see load_workbook)
            precedents: Optional direct-precedents capability; overrides any
                ``precedents`` mapping in ``workbook``
        """
        self._sheets: dict[str, _SheetCells] = {}
        self._active_sheet = "Sheet1"
        self._precedents = precedents
        self._load(workbook or {"sheets": [{"name": "Sheet1"}]})

    def _load(self, workbook: dict[str, Any]) -> None:
        for sheet in workbook.get("sheets", []):
            cells = _SheetCells(
                name=sheet["name"], visibility=sheet.get("visibility", VISIBLE)
            )
            values = sheet.get("values") or []
            formulas = sheet.get("formulas") or []
            origin = parse_cell(range_start(sheet.get("usedRange") or "A1"))
            # Either matrix may be missing or shorter than the other
            for r in range(max(len(values), len(formulas))):
                value_row = values[r] if r < len(values) else []
                formula_row = formulas[r] if r < len(formulas) else []
                for c in range(max(len(value_row), len(formula_row))):
                    value = value_row[c] if c < len(value_row) else None
                    formula = formula_row[c] if c < len(formula_row) else None
                    key = (origin.row + r, origin.col + c)
                    if isinstance(formula, str) and formula.startswith("="):
                        cells.formulas[key] = formula
                        if value is not None and value != "":
                            cells.values[key] = value
                    else:
                        # Hosts report constants in the formula matrix too
                        cells.set(key[0], key[1], formula if value is None else value)
            self._sheets[cells.name] = cells

        if not self._sheets:
            self._sheets["Sheet1"] = _SheetCells(name="Sheet1")
        self._active_sheet = workbook.get("activeSheet") or next(iter(self._sheets))

        mapping = workbook.get("precedents")
        if self._precedents is None and mapping:
            self._precedents = MappingPrecedents(mapping)

    def _sheet(self, name: str | None) -> _SheetCells:
        target = name if name is not None else self._active_sheet
        return _find_sheet(self._sheets, target)

    async def snapshot(self) -> WorkbookSnapshot:
        return WorkbookSnapshot(
            sheets={name: cells.to_snapshot() for name, cells in self._sheets.items()},
            active_sheet=self._active_sheet,
            precedents=self._precedents,
        )

    async def read_range(self, ref: str) -> RangeSnapshot:
        parts = parse_range_ref(ref)
        return self._sheet(parts.sheet).to_snapshot().read_range(parts.address)

    async def write_range(
        self, sheet: str | None, address: str, values: list[list[Any]]
    ) -> None:
        cells = self._sheet(sheet)
        target = parse_range(address)
        for r, row in enumerate(values):
            for c, value in enumerate(row):
                cells.set(target.start.row + r, target.start.col + c, value)
        logger.debug(
            "Wrote {}x{} block to {}",
            len(values),
            max((len(row) for row in values), default=0),
            qualified_address(cells.name, target.address),
        )

    async def close(self) -> None:
        """No-op for the in-memory host."""
        pass

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the local JSON workbook layout."""
        sheets = []
        for cells in self._sheets.values():
            snap = cells.to_snapshot()
            entry: dict[str, Any] = {"name": snap.name, "visibility": snap.visibility}
            if snap.used_range is not None:
                entry["usedRange"] = snap.used_range
                entry["values"] = snap.values
                entry["formulas"] = snap.formulas
            sheets.append(entry)
        data: dict[str, Any] = {"activeSheet": self._active_sheet, "sheets": sheets}
        if isinstance(self._precedents, MappingPrecedents):
            data["precedents"] = self._precedents.to_dict()
        return data


class LocalFileHost(InMemoryHost):
    """Host backed by a local JSON workbook file.

    File layout::

        {
          "activeSheet": "Sheet1",
          "sheets": [
            {"name": "Sheet1", "visibility": "Visible", "usedRange": "A1:B2",
             "values": [[1, 2], [3, ""]], "formulas": [[1, 2], [3, "=A1+B1"]]}
          ],
          "precedents": {"Sheet1!B2": [["Sheet1!A1", "Sheet1!B1"]]}
        }
    """

    def __init__(self, path: Path) -> None:
        """Initialize the host.

        Args:
            path: Path to the workbook JSON file
        """
        self._path = path
        super().__init__(load_workbook(path))

    def save(self) -> None:
        """Persist the workbook, including any writes, back to the file."""
        self._path.write_text(json.dumps(self.to_dict(), indent=2) + "\n")


def load_workbook(path: Path) -> dict[str, Any]:
    """Read a workbook JSON file."""
    data: dict[str, Any] = json.loads(path.read_text())
    return data
