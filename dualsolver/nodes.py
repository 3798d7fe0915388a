"""
DualSolver — Syntax tree

Immutable node types produced by the grammar.  Every node that may later be
reported in an error message or rewritten in the source text carries the
``SourcePosition`` it was scanned at.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class SourcePosition:
    """A point in the source text.

    ``offset`` is the character index into the source string,
    ``line_number`` and ``column_number`` are 1-based and
    ``line_start_offset`` is the offset of the first character of the line.
    """

    offset: int
    line_number: int
    column_number: int
    line_start_offset: int


START = SourcePosition(0, 1, 1, 0)


# ── Values ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Symbol:
    name: str
    position: SourcePosition


@dataclass(frozen=True)
class ImaginaryPart:
    value: float
    start: SourcePosition
    length: int


@dataclass(frozen=True)
class NumericValue:
    """A number literal such as ``4.7:-1.2 k[Ohm]``.

    ``real`` and ``imag`` are the literal digits as written; ``factor`` is the
    SI-prefix multiplier the grammar looked up for ``si_prefix``.  ``unit`` is
    carried for display only.
    """

    real: float
    real_start: SourcePosition
    real_length: int
    si_prefix: str = ""
    factor: float = 1.0
    unit: Optional[str] = None
    imag: Optional[ImaginaryPart] = None

    @property
    def scaled(self) -> complex:
        imag = self.imag.value if self.imag is not None else 0.0
        return complex(self.real, imag) * self.factor


@dataclass(frozen=True)
class NumberLiteral:
    value: NumericValue


@dataclass(frozen=True)
class Paren:
    expression: "Expression"


@dataclass(frozen=True)
class NamedArgument:
    parameter: Symbol
    value: "Expression"


@dataclass(frozen=True)
class FunctionCall:
    name: Symbol
    positional_args: Tuple["Expression", ...] = ()
    named_args: Tuple[NamedArgument, ...] = ()


@dataclass(frozen=True)
class BinaryOp:
    operator: str  # one of + - * /
    left: "Expression"
    right: "Expression"


Expression = Union[NumberLiteral, Symbol, Paren, FunctionCall, BinaryOp]


# ── Equations & definitions ──────────────────────────────────────────────

@dataclass(frozen=True)
class TerminalEquation:
    left: Expression
    right: Expression


@dataclass(frozen=True)
class EquationCall:
    name: Symbol
    positional_args: Tuple[Expression, ...] = ()
    named_args: Tuple[NamedArgument, ...] = ()


Equation = Union[TerminalEquation, EquationCall]
Call = Union[FunctionCall, EquationCall]


@dataclass(frozen=True)
class EquationDefinition:
    name: Symbol
    parameters: Tuple[str, ...]
    equations: Tuple[Equation, ...]


@dataclass(frozen=True)
class FunctionDefinition:
    name: Symbol
    parameters: Tuple[str, ...]
    expression: Expression


@dataclass(frozen=True)
class VariableDeclaration:
    name: Symbol
    value: NumericValue
    locked: bool


@dataclass(frozen=True)
class EquationSystem:
    equations: Tuple[Equation, ...] = ()
    equation_definitions: Tuple[EquationDefinition, ...] = ()
    function_definitions: Tuple[FunctionDefinition, ...] = ()
    variables: Tuple[VariableDeclaration, ...] = ()
