"""Custom exceptions for extracell."""

from __future__ import annotations


class ExtracellError(Exception):
    """Base exception for extracell errors."""

    pass


class InvalidAddressError(ExtracellError):
    """Raised when a cell or range reference is not valid A1 notation."""

    def __init__(self, address: str, reason: str | None = None) -> None:
        self.address = address
        self.reason = reason
        message = f"Invalid cell address: {address}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidFormulaSyntaxError(ExtracellError):
    """Raised when a formula fails the static syntax check."""

    def __init__(self, address: str, formula: str, reason: str) -> None:
        self.address = address
        self.formula = formula
        self.reason = reason
        super().__init__(f"Invalid formula at {address}: {formula} ({reason})")


class PrecedentsUnavailableError(ExtracellError):
    """Raised when the host cannot report direct precedents for a cell.

    The tracer recovers from this by parsing the formula text instead.
    """

    def __init__(self, address: str, reason: str = "not supported") -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Direct precedents unavailable for {address}: {reason}")


class UnresolvedReferenceError(ExtracellError):
    """Raised when a reference does not point at a readable cell."""

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"Cannot resolve reference '{reference}': {reason}")


class InvalidSearchPatternError(ExtracellError):
    """Raised when a regular expression search query does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f'Invalid regex "{pattern}": {reason}')
