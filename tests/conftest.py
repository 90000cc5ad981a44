"""Shared test fixtures for extracell."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from extracell.address import CellCoordinate, RangeAddress, parse_cell
from extracell.workbook import PrecedentsProvider, SheetSnapshot, WorkbookSnapshot


def build_sheet(
    name: str, cells: dict[str, Any], visibility: str = "Visible"
) -> SheetSnapshot:
    """Build a SheetSnapshot from ``{"A1": value}``.

    A string starting with ``=`` is a formula with an empty value; a
    ``(formula, value)`` tuple is a formula with a computed value.
    """
    if not cells:
        return SheetSnapshot(name=name, visibility=visibility)

    parsed: dict[CellCoordinate, tuple[Any, Any]] = {}
    for address, entry in cells.items():
        if isinstance(entry, tuple):
            formula, value = entry
        elif isinstance(entry, str) and entry.startswith("="):
            formula, value = entry, ""
        else:
            formula, value = entry, entry
        parsed[parse_cell(address)] = (value, formula)

    bounds = RangeAddress(
        sheet=None,
        start=CellCoordinate(
            col=min(c.col for c in parsed), row=min(c.row for c in parsed)
        ),
        end=CellCoordinate(
            col=max(c.col for c in parsed), row=max(c.row for c in parsed)
        ),
    )
    values: list[list[Any]] = []
    formulas: list[list[Any]] = []
    for row in range(bounds.start.row, bounds.end.row + 1):
        value_row: list[Any] = []
        formula_row: list[Any] = []
        for col in range(bounds.start.col, bounds.end.col + 1):
            value, formula = parsed.get(CellCoordinate(col=col, row=row), ("", ""))
            value_row.append(value)
            formula_row.append(formula)
        values.append(value_row)
        formulas.append(formula_row)

    return SheetSnapshot(
        name=name,
        values=values,
        formulas=formulas,
        used_range=f"{bounds.start.a1}:{bounds.end.a1}",
        visibility=visibility,
    )


def build_snapshot(
    sheets: dict[str, dict[str, Any]],
    *,
    active_sheet: str | None = None,
    precedents: PrecedentsProvider | None = None,
    hidden: tuple[str, ...] = (),
) -> WorkbookSnapshot:
    """Build a WorkbookSnapshot from ``{"Sheet1": {"A1": value}}``."""
    return WorkbookSnapshot(
        sheets={
            name: build_sheet(name, cells, "Hidden" if name in hidden else "Visible")
            for name, cells in sheets.items()
        },
        active_sheet=active_sheet or next(iter(sheets)),
        precedents=precedents,
    )


@pytest.fixture
def sample_workbook() -> dict[str, Any]:
    """A small workbook in the local JSON layout."""
    return {
        "activeSheet": "Summary",
        "sheets": [
            {
                "name": "Summary",
                "usedRange": "A1:B3",
                "values": [
                    ["Metric", "Amount"],
                    ["Revenue", 1200],
                    ["Margin", ""],
                ],
                "formulas": [
                    ["Metric", "Amount"],
                    ["Revenue", "=Inputs!B2*12"],
                    ["Margin", "=B2-'Cost Base'!C3"],
                ],
            },
            {
                "name": "Inputs",
                "usedRange": "A2:B2",
                "values": [["Monthly", 100]],
            },
            {
                "name": "Cost Base",
                "usedRange": "C3:C3",
                "values": [[400]],
            },
            {
                "name": "Archive",
                "visibility": "Hidden",
                "usedRange": "A1:A1",
                "values": [["Revenue 2019"]],
            },
        ],
    }


@pytest.fixture
def workbook_file(tmp_path: Path, sample_workbook: dict[str, Any]) -> Path:
    path = tmp_path / "workbook.json"
    path.write_text(json.dumps(sample_workbook, indent=2))
    return path
