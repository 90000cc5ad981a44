"""Typed parameter models for the agent tools."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WriteCellsParams(BaseModel):
    start_cell: str = Field(
        description='Top-left cell to write from, e.g. "A1", "Sheet2!B3". '
        "If no sheet is specified, uses the active sheet."
    )
    values: list[list[Any]] = Field(
        description="2D array of values. Each inner array is a row. "
        'Strings starting with "=" are formulas.'
    )
    allow_overwrite: bool = Field(
        default=False,
        description="Set to true to overwrite existing data. If false and the "
        "target range contains values or formulas, the write is blocked and the "
        "existing data is returned.",
    )


class TraceDependenciesParams(BaseModel):
    cell: str = Field(
        description='Cell to trace, e.g. "D10", "Sheet2!F5". Must be a single cell.'
    )
    depth: int | None = Field(
        default=None,
        description="How many levels of dependencies to trace. Default: 2. Max: 5.",
    )


class SearchWorkbookParams(BaseModel):
    query: str = Field(description="Search term, or a regex when use_regex is set.")
    search_formulas: bool = Field(
        default=False,
        description="Search formula text instead of values.",
    )
    use_regex: bool = Field(
        default=False,
        description="Treat the query as a case-insensitive regular expression.",
    )
    offset: int = Field(default=0, description="Skip the first N matches.")
    sheet: str | None = Field(
        default=None, description="Restrict search to this sheet."
    )
    max_results: int | None = Field(
        default=None, description="Maximum number of results. Default: 20."
    )


class ReadRangeParams(BaseModel):
    range: str = Field(
        description='Cell range in A1 notation, e.g. "A1:D10", "Sheet2!A1:B5".'
    )
