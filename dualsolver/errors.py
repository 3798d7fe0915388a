"""
DualSolver — Error types

All user-facing failures derive from ``ValueError`` so that callers can keep
catching ``ValueError`` for "the input was bad" and let anything else
propagate as a genuine bug.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from dualsolver.nodes import SourcePosition


class CalculationError(ValueError):
    """Base class for every error a calculation reports to its caller."""


class CompileError(CalculationError):
    """A problem tied to one position in the source text.

    ``message`` renders the classic three-line diagnostic::

        3(7): Unknown variable foo
        a = foo * 2;
              ^
    """

    def __init__(self, source: str, position: SourcePosition, error_message: str):
        self.source = source
        self.position = position
        self.error_message = error_message
        super().__init__(self.message)

    @property
    def line(self) -> str:
        start = self.position.line_start_offset
        end = self.source.find("\n", start)
        line = self.source[start:] if end < 0 else self.source[start:end]
        return line.rstrip("\r")

    @property
    def message(self) -> str:
        pos = self.position
        caret = " " * (pos.offset - pos.line_start_offset) + "^"
        return (f"{pos.line_number}({pos.column_number}): {self.error_message}\n"
                f"{self.line}\n{caret}")

    def to_dict(self) -> dict:
        return {
            "message": self.error_message,
            "line": self.position.line_number,
            "column": self.position.column_number,
            "offset": self.position.offset,
            "rendered": self.message,
        }

    def __str__(self) -> str:
        return self.message


class ParseError(CompileError):
    """Malformed syntax.  Only ever raised inside the grammar."""


class CompileErrorBatch(CalculationError):
    """Several compile errors collected in one evaluation pass."""

    def __init__(self, errors: Iterable[CompileError]):
        self.errors: List[CompileError] = list(errors)
        super().__init__("\n".join(e.message for e in self.errors))


class NumericalError(CalculationError):
    """The linear solve or a residual evaluation failed numerically."""


class ConvergenceFailure(CalculationError):
    """Newton iteration stopped before reaching the tolerance."""

    def __init__(self, message: str, iterations: int,
                 residual: Optional[float] = None, history: Sequence = ()):
        self.iterations = iterations
        self.residual = residual
        self.history = list(history)
        super().__init__(message)
