"""
DualSolver — Defaults

The SI-prefix table and the numeric knobs of the Newton iteration.  Both are
plain values handed to the grammar and the solver; nothing reads them
implicitly.
"""

from dataclasses import dataclass
from typing import Dict, NamedTuple, Sequence


class SiPrefix(NamedTuple):
    symbol: str
    factor: float


# Ordered largest to smallest, "" is the unscaled entry.
SI_PREFIXES = (
    SiPrefix("T", 1e12),
    SiPrefix("G", 1e9),
    SiPrefix("M", 1e6),
    SiPrefix("k", 1e3),
    SiPrefix("h", 1e2),
    SiPrefix("", 1.0),
    SiPrefix("%", 1e-2),
    SiPrefix("d", 1e-1),
    SiPrefix("c", 1e-2),
    SiPrefix("m", 1e-3),
    SiPrefix("u", 1e-6),
    SiPrefix("n", 1e-9),
    SiPrefix("p", 1e-12),
)

# Significant digits written back into source text.
DEFAULT_PRECISION = 15


def prefix_map(prefixes: Sequence[SiPrefix] = SI_PREFIXES) -> Dict[str, float]:
    """Return ``{symbol: factor}`` for *prefixes*."""
    return {p.symbol: p.factor for p in prefixes}


@dataclass(frozen=True)
class NewtonSettings:
    """Newton iteration limits.

    The run gives up once the step counter (starting at 0) has reached
    ``max_iterations``, so the default allows 101 steps.  It also gives up
    when α drops below ``min_alpha``.
    """

    tolerance: float = 1e-14
    max_iterations: int = 100
    min_alpha: float = 0.1
    alpha_shrink: float = 0.9
    # A step that does not bring the residual below this fraction of the
    # previous one counts as stalled.
    stall_ratio: float = 0.99


DEFAULT_NEWTON_SETTINGS = NewtonSettings()
