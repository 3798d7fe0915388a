"""
DualSolver — Calculation entry point

``calculate()`` is the whole contract with the surrounding application:
source text and external variables in, patched source text and solved
variables out.  User errors never escape as exceptions; they come back as a
failed ``CalculationResult`` carrying the diagnostics.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from dualsolver.config import (
    DEFAULT_NEWTON_SETTINGS, DEFAULT_PRECISION, SI_PREFIXES, NewtonSettings,
    SiPrefix,
)
from dualsolver.errors import (
    CompileError, CompileErrorBatch, ConvergenceFailure, NumericalError,
    ParseError,
)
from dualsolver.evaluator import compile_system
from dualsolver.grammar import parse_system
from dualsolver.newton import IterationRecord, solve
from dualsolver.patching import apply_edits, solution_edits, updated_variables
from dualsolver.project import VariableDefinition

logger = logging.getLogger(__name__)


@dataclass
class CalculationResult:
    ok: bool
    source_code: str
    variables: List[VariableDefinition]
    errors: List[CompileError] = field(default_factory=list)
    failure: Optional[str] = None  # "parse" | "compile" | "numerical" | "convergence"
    message: str = ""
    iterations: int = 0
    history: List[IterationRecord] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "source_code": self.source_code,
            "variables": [v.to_dict() for v in self.variables],
            "errors": [e.to_dict() for e in self.errors],
            "failure": self.failure,
            "message": self.message,
            "iterations": self.iterations,
            "history": [
                {"iteration": r.iteration, "residual": r.residual, "alpha": r.alpha}
                for r in self.history
            ],
            "summary": self.summary,
        }


def _summary(t_start: float, **extra: Any) -> Dict[str, Any]:
    t_end = time.perf_counter()
    summary = {
        "runtime_ms": round((t_end - t_start) * 1000, 2),
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "library": f"NumPy {np.__version__}",
    }
    summary.update(extra)
    return summary


def check_source(source_code: str,
                 prefixes: Sequence[SiPrefix] = SI_PREFIXES) -> List[CompileError]:
    """Syntax check only.  Returns ``[]`` when *source_code* parses."""
    try:
        parse_system(source_code, prefixes)
    except ParseError as e:
        return [e]
    return []


def calculate(source_code: str,
              variables: Sequence[VariableDefinition] = (),
              *,
              prefixes: Sequence[SiPrefix] = SI_PREFIXES,
              settings: Optional[NewtonSettings] = None,
              precision: int = DEFAULT_PRECISION) -> CalculationResult:
    """Solve the equation system in *source_code*.

    On success the returned source has every ``var`` literal replaced by its
    solved value and the returned variables carry the solved values of the
    external unknowns.  On failure both are returned unchanged.
    """
    t_start = time.perf_counter()
    variables = list(variables)
    settings = settings or DEFAULT_NEWTON_SETTINGS

    def failed(kind: str, message: str, errors=(), iterations: int = 0,
               history=()) -> CalculationResult:
        logger.info("calculation failed (%s): %s", kind, message.splitlines()[0])
        return CalculationResult(
            ok=False,
            source_code=source_code,
            variables=variables,
            errors=list(errors),
            failure=kind,
            message=message,
            iterations=iterations,
            history=list(history),
            summary=_summary(t_start, validation_status="fail"),
        )

    try:
        system = parse_system(source_code, prefixes)
    except ParseError as e:
        return failed("parse", e.message, [e])

    try:
        compiled = compile_system(source_code, system, variables)
    except CompileErrorBatch as e:
        return failed("compile", str(e), e.errors)

    try:
        report = solve(compiled, settings)
    except ConvergenceFailure as e:
        return failed("convergence", str(e), iterations=e.iterations,
                      history=e.history)
    except NumericalError as e:
        return failed("numerical", str(e))

    patched = apply_edits(source_code, solution_edits(compiled, precision))
    logger.info("calculation converged in %d iteration(s)", report.iterations)
    return CalculationResult(
        ok=True,
        source_code=patched,
        variables=updated_variables(compiled),
        iterations=report.iterations,
        history=report.history,
        message="Solution found",
        summary=_summary(
            t_start,
            validation_status="pass",
            equations=len(compiled.residuals),
            unknowns=len(compiled.unknowns),
            residual=report.residual,
        ),
    )


if __name__ == "__main__":
    test_systems = [
        "var a=1; lvar b=3; var c=1; a * b=c;c=6;",
        "lvar U = 5[V]; lvar R = 1k[Ohm]; var I = 1m[A]; U = R * I;",
        "var x = 1; x * x = 2;",
        "var z = 1:1; z * z = -4;",
        "eq ohm(U, R, I) { U = R * I; }\nlvar U = 12; var I = 1; ohm(U, 4, I);",
    ]
    for src in test_systems:
        print(f"\n{'=' * 50}")
        print(f"Solving: {src}")
        print('=' * 50)
        result = calculate(src)
        if result.ok:
            print(f"  => {result.source_code}")
            print(f"  iterations: {result.iterations}")
        else:
            print(f"  failed ({result.failure}): {result.message}")
