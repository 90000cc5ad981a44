"""extracell - Address algebra, safe writes and dependency tracing for spreadsheets.

This library sits between an LLM agent and a live workbook: it converts A1
addresses, refuses writes that would silently destroy data, traces formula
dependencies and searches workbook contents.
"""

__version__ = "0.1.0"

from extracell.address import (
    CellCoordinate,
    RangeAddress,
    column_index_to_letter,
    compute_range_address,
    letter_to_column_index,
    parse_cell,
    parse_range_ref,
    qualified_address,
)
from extracell.exceptions import (
    ExtracellError,
    InvalidAddressError,
    InvalidFormulaSyntaxError,
    InvalidSearchPatternError,
    PrecedentsUnavailableError,
    UnresolvedReferenceError,
)
from extracell.search import SearchMatch, SearchResult
from extracell.trace import DependencyNode, DependencyTracer
from extracell.tools import ToolResult
from extracell.validation import WriteCheck, check_write, validate_formula
from extracell.workbook import (
    InMemoryHost,
    LocalFileHost,
    PrecedentsProvider,
    WorkbookHost,
    WorkbookSnapshot,
)

__all__ = [
    "CellCoordinate",
    "DependencyNode",
    "DependencyTracer",
    "ExtracellError",
    "InMemoryHost",
    "InvalidAddressError",
    "InvalidFormulaSyntaxError",
    "InvalidSearchPatternError",
    "LocalFileHost",
    "PrecedentsProvider",
    "PrecedentsUnavailableError",
    "RangeAddress",
    "SearchMatch",
    "SearchResult",
    "ToolResult",
    "UnresolvedReferenceError",
    "WorkbookHost",
    "WorkbookSnapshot",
    "WriteCheck",
    "__version__",
    "check_write",
    "column_index_to_letter",
    "compute_range_address",
    "letter_to_column_index",
    "parse_cell",
    "parse_range_ref",
    "qualified_address",
    "validate_formula",
]
