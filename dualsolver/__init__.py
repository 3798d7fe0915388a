"""DualSolver — equation systems solved with dual-number Newton iteration."""

from dualsolver.config import SI_PREFIXES, NewtonSettings, SiPrefix
from dualsolver.engine import CalculationResult, calculate, check_source
from dualsolver.errors import (
    CalculationError, CompileError, CompileErrorBatch, ConvergenceFailure,
    NumericalError, ParseError,
)
from dualsolver.grammar import Grammar, parse_system
from dualsolver.project import Project, VariableDefinition

__all__ = [
    "SI_PREFIXES",
    "NewtonSettings",
    "SiPrefix",
    "CalculationResult",
    "calculate",
    "check_source",
    "CalculationError",
    "CompileError",
    "CompileErrorBatch",
    "ConvergenceFailure",
    "NumericalError",
    "ParseError",
    "Grammar",
    "parse_system",
    "Project",
    "VariableDefinition",
]
