"""Formula dependency tracing for extracell.

Walks the cells a formula reads from, recursively, up to a depth bound.
Direct precedents come from the host when it can report them and are
otherwise parsed out of the formula text.

Two independent guards keep a trace finite:
- Depth: nodes at ``max_depth`` are not expanded.
- Cycles: the addresses on the current path are tracked; meeting one of
  them again yields a sentinel leaf instead of recursing. The path set is
  popped on return, so one cell can appear in two independent branches.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from extracell.address import parse_range_ref, qualified_address
from extracell.config import Settings, get_settings
from extracell.exceptions import (
    InvalidAddressError,
    PrecedentsUnavailableError,
    UnresolvedReferenceError,
)
from extracell.formula_refs import extract_references
from extracell.utils import format_value, is_empty
from extracell.workbook import CellSnapshot, PrecedentsProvider, WorkbookSnapshot

CIRCULAR_REFERENCE = "(circular reference — already visited)"


@dataclass
class DependencyNode:
    """A cell in a dependency tree."""

    address: str  # Fully-qualified, e.g. "Sheet1!B2"
    value: Any
    formula: str | None = None  # None for plain values
    precedents: list[DependencyNode] = field(default_factory=list)

    @property
    def is_circular(self) -> bool:
        return self.formula == CIRCULAR_REFERENCE

    def walk(self) -> Iterator[DependencyNode]:
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.precedents:
            yield from child.walk()


class DependencyTracer:
    """Builds a DependencyNode tree for a cell from a workbook snapshot."""

    def __init__(
        self,
        snapshot: WorkbookSnapshot,
        max_depth: int,
        *,
        precedents: PrecedentsProvider | None = None,
        max_refs: int = 10,
    ) -> None:
        """Initialize the tracer.

        Args:
            snapshot: Workbook contents to trace through
            max_depth: Levels of precedents to expand below the start cell
            precedents: Host capability for direct precedents, if any
            max_refs: Cap on references parsed from each formula's text
        """
        self._snapshot = snapshot
        self._max_depth = max_depth
        self._precedents = precedents
        self._max_refs = max_refs

    def trace(self, cell: str) -> DependencyNode | None:
        """Trace a single cell. Returns None if the cell holds no formula."""
        if ":" in parse_range_ref(cell).address:
            raise InvalidAddressError(cell, "expected a single cell, not a range")
        root = self._snapshot.read_cell(cell)
        if not root.is_formula:
            return None
        return self._visit(root, 0, set())

    def _visit(self, cell: CellSnapshot, depth: int, path: set[str]) -> DependencyNode:
        address = cell.qualified_address
        key = address.lower()

        if key in path:
            return DependencyNode(
                address=address, value=cell.value, formula=CIRCULAR_REFERENCE
            )

        if not cell.is_formula:
            return DependencyNode(address=address, value=cell.value)

        node = DependencyNode(address=address, value=cell.value, formula=cell.formula)
        if depth >= self._max_depth:
            return node

        path.add(key)
        try:
            for ref in self._precedent_refs(cell):
                try:
                    child = self._snapshot.read_cell(ref)
                except (InvalidAddressError, UnresolvedReferenceError) as e:
                    logger.debug("Skipping reference {} from {}: {}", ref, address, e)
                    continue
                node.precedents.append(self._visit(child, depth + 1, path))
        finally:
            path.discard(key)

        return node

    def _precedent_refs(self, cell: CellSnapshot) -> list[str]:
        refs = self._direct_precedents(cell)
        if refs:
            return refs
        return extract_references(cell.formula, cell.sheet, limit=self._max_refs)

    def _direct_precedents(self, cell: CellSnapshot) -> list[str]:
        if self._precedents is None:
            return []
        address = cell.qualified_address
        try:
            groups = self._precedents.try_get(address)
        except PrecedentsUnavailableError as e:
            logger.debug("{}; parsing formula text instead", e)
            return []
        except Exception as e:  # any other host failure also falls back
            logger.debug(
                "Direct precedents lookup failed for {}: {}; parsing formula text",
                address,
                e,
            )
            return []
        if not groups:
            logger.debug("No direct precedents for {}; parsing formula text", address)
            return []

        refs: list[str] = []
        for group in groups:
            for entry in group:
                # An entry may list several areas: "Sheet1!A1:A3, Sheet1!C1"
                for area in entry.split(","):
                    area = area.strip()
                    if area:
                        refs.append(_first_cell(area, cell.sheet))
        return refs


def _first_cell(area: str, current_sheet: str) -> str:
    """Reduce an area like ``Sheet1!$A$1:$A$10`` to ``Sheet1!A1``."""
    parts = parse_range_ref(area)
    start = parts.address.split(":")[0].replace("$", "")
    return qualified_address(parts.sheet or current_sheet, start)


def trace(
    snapshot: WorkbookSnapshot,
    cell: str,
    max_depth: int | None = None,
    *,
    settings: Settings | None = None,
) -> DependencyNode | None:
    """Trace the precedents of ``cell``.

    Args:
        snapshot: Workbook contents; its ``precedents`` capability is used
            when present
        cell: Single cell reference, e.g. "D10" or "Sheet2!F5"
        max_depth: Levels to expand; defaults to 2 and is capped at 5

    Returns:
        Root DependencyNode, or None when ``cell`` is a value or empty
    """
    settings = settings or get_settings()
    if max_depth is None:
        max_depth = settings.default_trace_depth
    max_depth = max(0, min(max_depth, settings.max_trace_depth))

    tracer = DependencyTracer(
        snapshot,
        max_depth,
        precedents=snapshot.precedents,
        max_refs=settings.max_fallback_refs,
    )
    return tracer.trace(cell)


def render_tree(node: DependencyNode) -> list[str]:
    """Render a dependency tree as ASCII tree lines."""
    lines: list[str] = []
    _render(node, lines, "", True)
    return lines


def _render(node: DependencyNode, lines: list[str], prefix: str, is_last: bool) -> None:
    connector = "└── " if is_last else "├── "
    value_str = "" if is_empty(node.value) else f" = {format_value(node.value)}"
    formula_str = f" ({node.formula})" if node.formula else ""

    lines.append(f"{prefix}{connector}**{node.address}**{value_str}{formula_str}")

    child_prefix = prefix + ("    " if is_last else "│   ")
    for i, child in enumerate(node.precedents):
        _render(child, lines, child_prefix, i == len(node.precedents) - 1)


def format_trace(node: DependencyNode) -> str:
    """Heading plus rendered tree, as returned to the agent."""
    lines = [f"**Dependency tree for {node.address}:**", ""]
    lines.extend(render_tree(node))
    return "\n".join(lines)
