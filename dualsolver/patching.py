"""
DualSolver — Writing solutions back

A solve never touches the source string directly.  It produces a list of
``TextEdit`` objects (span + replacement) for the numeric literals of the
unknown declarations, and ``apply_edits`` builds a new string from them,
highest offset first so earlier offsets stay valid.
"""

from dataclasses import dataclass
from typing import Iterable, List

from dualsolver.config import DEFAULT_PRECISION
from dualsolver.evaluator import CompiledSystem
from dualsolver.formatting import format_number
from dualsolver.project import VariableDefinition


@dataclass(frozen=True)
class TextEdit:
    offset: int
    length: int
    replacement: str

    @property
    def end(self) -> int:
        return self.offset + self.length


def apply_edits(source: str, edits: Iterable[TextEdit]) -> str:
    """Return a copy of *source* with every edit applied."""
    result = source
    previous_start = None
    for edit in sorted(edits, key=lambda e: e.offset, reverse=True):
        if edit.offset < 0 or edit.end > len(source):
            raise ValueError(f"Edit {edit} lies outside the source text")
        if previous_start is not None and edit.end > previous_start:
            raise ValueError(f"Edit {edit} overlaps another edit")
        result = result[:edit.offset] + edit.replacement + result[edit.end:]
        previous_start = edit.offset
    return result


def solution_edits(compiled: CompiledSystem,
                   precision: int = DEFAULT_PRECISION) -> List[TextEdit]:
    """Edits replacing each in-source unknown's literal with its solved value.

    The value is divided by the literal's SI-prefix factor so ``var C = 1u;``
    stays in micro.  The imaginary part is only written when the literal
    already had one.
    """
    edits: List[TextEdit] = []
    for unknown in compiled.unknowns:
        if unknown.declaration is None:
            continue
        literal = unknown.declaration.value
        solved = unknown.value / literal.factor
        edits.append(TextEdit(literal.real_start.offset, literal.real_length,
                              format_number(solved.real, precision)))
        if literal.imag is not None:
            edits.append(TextEdit(literal.imag.start.offset, literal.imag.length,
                                  format_number(solved.imag, precision)))
    return edits


def updated_variables(compiled: CompiledSystem) -> List[VariableDefinition]:
    """The external variables with unknowns replaced by their solved values."""
    solved = {u.external.id: u.value for u in compiled.unknowns
              if u.external is not None}
    return [v.with_value(solved[v.id]) if v.id in solved else v
            for v in compiled.externals]
