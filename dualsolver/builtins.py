"""Builtin functions available in expressions."""

from typing import Callable, Dict, NamedTuple

from dualsolver.dual import DualComplex, atan2


class Builtin(NamedTuple):
    arity: int
    apply: Callable[..., DualComplex]


def _atan2(y: DualComplex, x: DualComplex) -> DualComplex:
    # defined on the real parts only
    return DualComplex.from_real(atan2(y.real, x.real))


BUILTINS: Dict[str, Builtin] = {
    "sqrt": Builtin(1, lambda z: z.sqrt()),
    "atan2": Builtin(2, _atan2),
    "abs": Builtin(1, lambda z: z.abs()),
    "arg": Builtin(1, lambda z: z.arg()),
    "conj": Builtin(1, lambda z: z.conj()),
    "re": Builtin(1, lambda z: DualComplex.from_real(z.real)),
    "im": Builtin(1, lambda z: DualComplex.from_real(z.imag)),
}
