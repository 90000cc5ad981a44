"""Workbook search for extracell.

Linear scan of the used range of one or more sheets, matching cell values
or formula text by case-insensitive substring or regular expression, with
offset/limit pagination.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from extracell.address import qualified_address
from extracell.exceptions import InvalidSearchPatternError
from extracell.utils import format_value, is_empty, truncate
from extracell.workbook import SheetSnapshot, WorkbookSnapshot

DEFAULT_MAX_RESULTS = 20


@dataclass
class SearchMatch:
    """A matching cell."""

    sheet: str
    address: str
    value: Any
    formula: str | None = None  # Set only for formula cells


@dataclass
class SearchResult:
    """Result of a workbook search.

    ``total_matches`` counts every match seen, including those skipped by
    the offset; the scan stops once ``max_results`` matches are collected.
    """

    matches: list[SearchMatch] = field(default_factory=list)
    has_more: bool = False
    total_matches: int = 0


def _build_matcher(query: str, use_regex: bool) -> Callable[[str], bool]:
    if use_regex:
        try:
            pattern = re.compile(query, re.IGNORECASE)
        except re.error as e:
            raise InvalidSearchPatternError(query, str(e)) from e
        return lambda text: pattern.search(text) is not None

    query_lower = query.lower()
    return lambda text: query_lower in text.lower()


def _target_sheets(snapshot: WorkbookSnapshot, sheet: str | None) -> list[SheetSnapshot]:
    if sheet is not None:
        return [s for s in snapshot.sheets.values() if s.name == sheet]
    return [s for s in snapshot.sheets.values() if s.is_visible]


def search(
    snapshot: WorkbookSnapshot,
    query: str,
    *,
    search_formulas: bool = False,
    use_regex: bool = False,
    offset: int = 0,
    max_results: int = DEFAULT_MAX_RESULTS,
    sheet: str | None = None,
) -> SearchResult:
    """Search cell values or formulas across the workbook.

    Args:
        snapshot: Workbook contents to scan
        query: Substring, or a regular expression when ``use_regex`` is set
        search_formulas: Match formula text instead of values
        use_regex: Treat ``query`` as a case-insensitive regular expression
        offset: Number of leading matches to skip
        max_results: Maximum number of matches to collect
        sheet: Only search this sheet; otherwise all visible sheets

    Returns:
        SearchResult with matches in row-major order per sheet

    Raises:
        InvalidSearchPatternError: If ``use_regex`` is set and query is invalid
    """
    matches_text = _build_matcher(query, use_regex)
    max_results = max(max_results, 1)
    offset = max(offset, 0)

    result = SearchResult()
    for target in _target_sheets(snapshot, sheet):
        if target.used_range is None:
            continue

        for address, value, formula in target.iter_cells():
            if search_formulas:
                if not isinstance(formula, str) or not formula:
                    continue
                text = formula
            else:
                if is_empty(value):
                    continue
                text = format_value(value)

            if not matches_text(text):
                continue

            result.total_matches += 1
            if result.total_matches <= offset:
                continue

            is_formula = isinstance(formula, str) and formula.startswith("=")
            result.matches.append(
                SearchMatch(
                    sheet=target.name,
                    address=address,
                    value=value,
                    formula=formula if is_formula else None,
                )
            )
            if len(result.matches) >= max_results:
                result.has_more = True
                logger.debug("Search for {!r} stopped at {} results", query, max_results)
                return result

    return result


def format_search_result(
    result: SearchResult,
    query: str,
    *,
    search_formulas: bool = False,
    offset: int = 0,
    sheet: str | None = None,
    preview_chars: int = 60,
) -> str:
    """Render a SearchResult as the markdown listing returned to the agent."""
    if not result.matches:
        scope = f'in "{sheet}"' if sheet else "in any sheet"
        mode = "formulas" if search_formulas else "values"
        offset_note = ""
        if offset > 0 and result.total_matches > 0:
            offset_note = f" after offset {offset} (total matches: {result.total_matches})"
        return f'No matches for "{query}" {scope}{offset_note} (searched {mode}).'

    limit_note = " (limit reached)" if result.has_more else ""
    offset_note = f" (offset {offset})" if offset > 0 else ""
    lines = [
        f'**{len(result.matches)} match(es)** for "{query}"{limit_note}{offset_note}:',
        "",
    ]
    for match in result.matches:
        address = qualified_address(match.sheet, match.address)
        value = truncate(format_value(match.value), preview_chars)
        formula_str = f" ← {match.formula}" if match.formula else ""
        lines.append(f"- **{address}**: {value}{formula_str}")
    return "\n".join(lines)
