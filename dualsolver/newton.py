"""
DualSolver — Damped multidimensional Newton iteration

    f(x + δ) ≈ f(x) + J(x)·δ = 0   →   J(x)·δ = −f(x),   x ← x + α·δ

Each residual contributes two rows (real and imaginary part) and each
unknown two columns.  The step is always taken; when it fails to reduce the
residual norm below ``stall_ratio`` of the previous one, α shrinks for the
following iterations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from dualsolver.config import DEFAULT_NEWTON_SETTINGS, NewtonSettings
from dualsolver.errors import ConvergenceFailure, NumericalError
from dualsolver.evaluator import CompiledSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationRecord:
    iteration: int
    residual: float
    alpha: float


@dataclass
class NewtonReport:
    iterations: int
    residual: float
    history: List[IterationRecord] = field(default_factory=list)


def assemble(compiled: CompiledSystem) -> Tuple[np.ndarray, np.ndarray]:
    """Return the Jacobian ``A`` and the negated residual vector ``b``."""
    A = np.zeros((compiled.row_count, compiled.size), dtype=np.float64)
    b = np.zeros(compiled.row_count, dtype=np.float64)
    for i, residual in enumerate(compiled.residuals):
        try:
            value = residual()
        except (ZeroDivisionError, ValueError, OverflowError) as e:
            raise NumericalError(f"Could not evaluate equation {i + 1}: {e}") from e
        A[2 * i] = value.real.derivatives
        A[2 * i + 1] = value.imag.derivatives
        b[2 * i] = -value.real.value
        b[2 * i + 1] = -value.imag.value
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(b))):
        raise NumericalError("The equations evaluate to a non-finite value.")
    return A, b


def solve_step(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``A·δ = b``: exactly when square, least squares otherwise.

    Rows that are zero in ``A`` and ``b`` alike carry no information (the
    imaginary row of ``abs(x) = 2`` for instance) and are dropped first.
    """
    informative = np.any(A != 0.0, axis=1) | (b != 0.0)
    if not np.all(informative):
        A, b = A[informative], b[informative]
    try:
        if A.shape[0] == A.shape[1]:
            delta = np.linalg.solve(A, b)
        else:
            delta = np.linalg.lstsq(A, b, rcond=None)[0]
    except np.linalg.LinAlgError as e:
        raise NumericalError(f"The Jacobian matrix is singular: {e}") from e
    if not np.all(np.isfinite(delta)):
        raise NumericalError("The Jacobian matrix is singular.")
    return delta


def solve(compiled: CompiledSystem,
          settings: NewtonSettings = DEFAULT_NEWTON_SETTINGS) -> NewtonReport:
    """Iterate until the residual norm drops below the tolerance.

    The unknowns of *compiled* are updated in place.  Raises
    ``ConvergenceFailure`` when α or the iteration budget runs out and
    ``NumericalError`` when a step cannot be computed.
    """
    if compiled.row_count != compiled.size:
        logger.warning("non-square system: %d residual rows, %d unknown slots",
                       compiled.row_count, compiled.size)

    history: List[IterationRecord] = []
    last_error = None
    alpha = 1.0
    n = 0

    while True:
        A, b = assemble(compiled)
        error = float(np.linalg.norm(b))
        history.append(IterationRecord(n, error, alpha))
        logger.debug("iteration %d: alpha=%g residual=%g", n, alpha, error)

        if error < settings.tolerance:
            logger.info("solution found after %d iteration(s)", n)
            return NewtonReport(iterations=n, residual=error, history=history)

        if compiled.size == 0:
            raise ConvergenceFailure(
                "The equations do not hold and there is no unknown to adjust.",
                iterations=n, residual=error, history=history)

        delta = solve_step(A, b)
        for unknown in compiled.unknowns:
            unknown.value += alpha * complex(delta[unknown.slot],
                                             delta[unknown.slot + 1])

        if last_error is not None and error >= last_error * settings.stall_ratio:
            alpha *= settings.alpha_shrink

        # n counts from 0, so at most max_iterations + 1 steps are taken
        if alpha < settings.min_alpha or n >= settings.max_iterations:
            logger.warning("no convergence: %d iteration(s), residual %g",
                           n + 1, error)
            raise ConvergenceFailure(
                f"No solution found after {n + 1} iteration(s); "
                f"remaining residual {error:.3g}.",
                iterations=n + 1, residual=error, history=history)

        last_error = error
        n += 1
