"""Agent tool handlers for extracell.

Each handler validates raw tool-call parameters, reads the workbook through a
WorkbookHost, runs the engine and returns a ToolResult. Handlers never raise:
failures come back as ``ToolResult(success=False, ...)`` with text the agent
can act on.
"""

from __future__ import annotations

import functools
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from extracell.address import (
    compute_range_address,
    parse_cell,
    parse_range_ref,
    qualified_address,
)
from extracell.config import get_settings
from extracell.exceptions import (
    ExtracellError,
    InvalidAddressError,
    InvalidFormulaSyntaxError,
    InvalidSearchPatternError,
)
from extracell.logging import logger, request_id_ctx
from extracell.params import (
    ReadRangeParams,
    SearchWorkbookParams,
    TraceDependenciesParams,
    WriteCellsParams,
)
from extracell.search import format_search_result, search
from extracell.trace import format_trace, trace
from extracell.utils import (
    attach_formulas,
    extract_formulas,
    find_errors,
    format_as_markdown_table,
)
from extracell.validation import (
    InvalidFormula,
    WriteCheck,
    check_write,
    find_invalid_formulas,
    pad_values,
)
from extracell.workbook import RangeSnapshot, WorkbookHost

P = TypeVar("P", bound=BaseModel)


@dataclass
class ToolResult:
    """Result from a tool call."""

    success: bool
    text: str
    error: str | None = None  # Exception class name for failures
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"success": self.success, "text": self.text, "error": self.error}


def _failure(text: str, error: str | None = None) -> ToolResult:
    return ToolResult(success=False, text=text, error=error)


def tool_handler(
    params_model: type[P], error_prefix: str
) -> Callable[
    [Callable[[WorkbookHost, P], Awaitable[ToolResult]]],
    Callable[[WorkbookHost, P | dict[str, Any]], Awaitable[ToolResult]],
]:
    """Wrap a handler with parameter validation and error reporting."""

    def decorator(
        func: Callable[[WorkbookHost, P], Awaitable[ToolResult]],
    ) -> Callable[[WorkbookHost, P | dict[str, Any]], Awaitable[ToolResult]]:
        @functools.wraps(func)
        async def wrapper(host: WorkbookHost, params: P | dict[str, Any]) -> ToolResult:
            token = request_id_ctx.set(uuid.uuid4().hex)
            try:
                try:
                    parsed = params_model.model_validate(params)
                except ValidationError as e:
                    return _failure(f"Error: invalid parameters: {e}", "ValidationError")

                logger.debug("{} {}", func.__name__, parsed.model_dump())
                try:
                    return await func(host, parsed)
                except ExtracellError as e:
                    return _failure(f"{error_prefix}: {e}", type(e).__name__)
                except Exception as e:
                    logger.exception("{} failed", func.__name__)
                    return _failure(f"{error_prefix}: {e}", type(e).__name__)
            finally:
                request_id_ctx.reset(token)

        return wrapper

    return decorator


# ============================================================================
# write_cells
# ============================================================================


@tool_handler(WriteCellsParams, "Error writing cells")
async def write_cells(host: WorkbookHost, params: WriteCellsParams) -> ToolResult:
    """Write values and formulas, refusing to overwrite data unless allowed."""
    if not params.values or not any(params.values):
        return _failure("Error: values array is empty.", "ValueError")

    padded = pad_values(params.values)
    parts = parse_range_ref(params.start_cell)
    start_cell = parts.address

    if ":" in start_cell:
        return _failure(
            'Error: start_cell must be a single cell (e.g. "A1").',
            "InvalidAddressError",
        )

    try:
        invalid = find_invalid_formulas(padded.values, start_cell)
    except InvalidAddressError:
        return _failure(
            f'Error: invalid start_cell "{params.start_cell}".', "InvalidAddressError"
        )

    if invalid:
        return _format_invalid_formulas(invalid)

    address = compute_range_address(start_cell, padded.rows, padded.cols)
    ref = address if parts.sheet is None else qualified_address(parts.sheet, address)
    target = await host.read_range(ref)

    check = check_write(
        target.qualified_address,
        target.values,
        target.formulas,
        allow_overwrite=params.allow_overwrite,
    )
    if check.blocked:
        return _format_blocked(check, target)

    await host.write_range(target.sheet, target.address, padded.values)
    verify = await host.read_range(target.qualified_address)
    return _format_written(verify, padded.rows, padded.cols)


def _format_invalid_formulas(invalid: list[InvalidFormula]) -> ToolResult:
    lines = ["⛔ **Write blocked** — invalid formula syntax detected:"]
    for item in invalid:
        lines.append(f"- {item.address}: {item.formula} ({item.reason})")
    lines.append("")
    lines.append("Fix the formulas and retry.")
    return ToolResult(
        success=False,
        text="\n".join(lines),
        error=InvalidFormulaSyntaxError.__name__,
        details={"invalid_formulas": invalid},
    )


def _format_blocked(check: WriteCheck, target: RangeSnapshot) -> ToolResult:
    lines = [
        f"⛔ **Write blocked** — {check.address} contains "
        f"{check.existing_count} non-empty cell(s).",
        "",
        "**Existing data:**",
        format_as_markdown_table(check.existing_values, target.start_cell),
        "",
        "To overwrite, confirm with the user and retry with `allow_overwrite: true`.",
    ]
    return ToolResult(
        success=True,
        text="\n".join(lines),
        details={
            "blocked": True,
            "address": check.address,
            "existing_count": check.existing_count,
            "existing_values": check.existing_values,
        },
    )


def _format_written(verify: RangeSnapshot, rows: int, cols: int) -> ToolResult:
    lines = [f"✅ Written to **{verify.qualified_address}** ({rows}×{cols})"]

    errors = find_errors(verify.values, verify.start_cell)
    if errors:
        attach_formulas(errors, verify.formulas, parse_cell(verify.start_cell))
        lines.append("")
        lines.append(f"⚠️ **{len(errors)} formula error(s):**")
        for err in errors:
            formula_str = f" (formula: {err.formula})" if err.formula else ""
            lines.append(f"- {err.address}: {err.error}{formula_str}")
        lines.append("")
        lines.append("Review and fix with another write_cells call.")
    else:
        lines.append("")
        lines.append("**Verified values:**")
        lines.append(format_as_markdown_table(verify.values, verify.start_cell))

    return ToolResult(
        success=True,
        text="\n".join(lines),
        details={"blocked": False, "address": verify.qualified_address},
    )


# ============================================================================
# trace_dependencies
# ============================================================================


@tool_handler(TraceDependenciesParams, "Error tracing dependencies")
async def trace_dependencies(
    host: WorkbookHost, params: TraceDependenciesParams
) -> ToolResult:
    """Return the formula dependency tree of a cell as text."""
    if ":" in parse_range_ref(params.cell).address:
        return _failure(
            "Error: trace_dependencies expects a single cell, not a range.",
            "InvalidAddressError",
        )

    settings = get_settings()
    depth = settings.resolve_depth(params.depth)
    snapshot = await host.snapshot()
    tree = trace(snapshot, params.cell, depth, settings=settings)

    if tree is None:
        return ToolResult(
            success=True,
            text=f"{params.cell} has no formula — it's a direct value or empty.",
        )
    return ToolResult(success=True, text=format_trace(tree), details={"tree": tree})


# ============================================================================
# search_workbook
# ============================================================================


@tool_handler(SearchWorkbookParams, "Error searching")
async def search_workbook(host: WorkbookHost, params: SearchWorkbookParams) -> ToolResult:
    """Search values or formulas across the workbook."""
    settings = get_settings()
    max_results = params.max_results or settings.default_max_results
    snapshot = await host.snapshot()

    try:
        result = search(
            snapshot,
            params.query,
            search_formulas=params.search_formulas,
            use_regex=params.use_regex,
            offset=params.offset,
            max_results=max_results,
            sheet=params.sheet,
        )
    except InvalidSearchPatternError as e:
        return _failure(str(e), type(e).__name__)

    text = format_search_result(
        result,
        params.query,
        search_formulas=params.search_formulas,
        offset=max(params.offset, 0),
        sheet=params.sheet,
        preview_chars=settings.value_preview_chars,
    )
    return ToolResult(
        success=True,
        text=text,
        details={
            "matches": result.matches,
            "has_more": result.has_more,
            "total_matches": result.total_matches,
        },
    )


# ============================================================================
# read_range
# ============================================================================


@tool_handler(ReadRangeParams, "Error reading range")
async def read_range(host: WorkbookHost, params: ReadRangeParams) -> ToolResult:
    """Read a range as a markdown table with its formulas and error values."""
    snap = await host.read_range(params.range)

    lines = [
        f"**{snap.qualified_address}** ({snap.rows}×{snap.cols})",
        "",
        format_as_markdown_table(snap.values, snap.start_cell),
    ]

    formulas = extract_formulas(snap.formulas, snap.start_cell)
    if formulas:
        lines.append("")
        lines.append(f"**Formulas:** {', '.join(formulas)}")

    errors = find_errors(snap.values, snap.start_cell)
    if errors:
        lines.append("")
        lines.append(
            "⚠️ **Errors:** " + ", ".join(f"{e.address}={e.error}" for e in errors)
        )

    return ToolResult(
        success=True,
        text="\n".join(lines),
        details={"values": snap.values, "formulas": snap.formulas},
    )


TOOLS: dict[str, Callable[[WorkbookHost, Any], Awaitable[ToolResult]]] = {
    "write_cells": write_cells,
    "trace_dependencies": trace_dependencies,
    "search_workbook": search_workbook,
    "read_range": read_range,
}
