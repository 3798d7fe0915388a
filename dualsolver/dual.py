"""
DualSolver — Dual numbers

Forward-mode automatic differentiation.  A ``DualReal`` is a value together
with its partial derivatives with respect to every unknown of the solve; a
``DualComplex`` is a pair of them.  All derivative vectors taking part in one
solve have the same length, the evaluator guarantees that by construction.
"""

from __future__ import annotations

import math

import numpy as np


class DualReal:
    __slots__ = ("value", "derivatives")

    def __init__(self, value: float, derivatives: np.ndarray):
        self.value = float(value)
        self.derivatives = derivatives

    @classmethod
    def constant(cls, value: float, size: int) -> "DualReal":
        return cls(value, np.zeros(size))

    @classmethod
    def variable(cls, value: float, size: int, index: int) -> "DualReal":
        derivatives = np.zeros(size)
        derivatives[index] = 1.0
        return cls(value, derivatives)

    @property
    def size(self) -> int:
        return len(self.derivatives)

    def __repr__(self) -> str:
        return f"DualReal({self.value!r}, {self.derivatives!r})"

    # ── Arithmetic ─────────────────────────────────────────────────────

    def __add__(self, other: "DualReal") -> "DualReal":
        return DualReal(self.value + other.value,
                        self.derivatives + other.derivatives)

    def __sub__(self, other: "DualReal") -> "DualReal":
        return DualReal(self.value - other.value,
                        self.derivatives - other.derivatives)

    def __neg__(self) -> "DualReal":
        return DualReal(-self.value, -self.derivatives)

    def __mul__(self, other: "DualReal") -> "DualReal":
        return DualReal(
            self.value * other.value,
            self.value * other.derivatives + other.value * self.derivatives,
        )

    def scale(self, factor: float) -> "DualReal":
        return DualReal(self.value * factor, self.derivatives * factor)

    def inverse(self) -> "DualReal":
        value = 1.0 / self.value
        return DualReal(value, self.derivatives * (-value * value))

    def __truediv__(self, other: "DualReal") -> "DualReal":
        return self * other.inverse()

    def sqrt(self) -> "DualReal":
        root = math.sqrt(self.value)
        return DualReal(root, self.derivatives / (2.0 * root))


def atan2(y: DualReal, x: DualReal) -> DualReal:
    """Angle of the point (x, y) with its gradient."""
    denominator = x.value * x.value + y.value * y.value
    return DualReal(
        math.atan2(y.value, x.value),
        (x.value * y.derivatives - y.value * x.derivatives) / denominator,
    )


class DualComplex:
    """Complex dual number built from two ``DualReal`` parts."""

    __slots__ = ("real", "imag")

    def __init__(self, real: DualReal, imag: DualReal):
        self.real = real
        self.imag = imag

    @classmethod
    def constant(cls, value: complex, size: int) -> "DualComplex":
        value = complex(value)
        return cls(DualReal.constant(value.real, size),
                   DualReal.constant(value.imag, size))

    @classmethod
    def variable(cls, value: complex, size: int, slot: int) -> "DualComplex":
        """An unknown owning derivative slots ``slot`` (real) and ``slot + 1``."""
        value = complex(value)
        return cls(DualReal.variable(value.real, size, slot),
                   DualReal.variable(value.imag, size, slot + 1))

    @classmethod
    def from_real(cls, real: DualReal) -> "DualComplex":
        return cls(real, DualReal.constant(0.0, real.size))

    @property
    def value(self) -> complex:
        return complex(self.real.value, self.imag.value)

    @property
    def size(self) -> int:
        return self.real.size

    def __repr__(self) -> str:
        return f"DualComplex({self.real!r}, {self.imag!r})"

    def __add__(self, other: "DualComplex") -> "DualComplex":
        return DualComplex(self.real + other.real, self.imag + other.imag)

    def __sub__(self, other: "DualComplex") -> "DualComplex":
        return DualComplex(self.real - other.real, self.imag - other.imag)

    def __neg__(self) -> "DualComplex":
        return DualComplex(-self.real, -self.imag)

    def __mul__(self, other: "DualComplex") -> "DualComplex":
        a, b, c, d = self.real, self.imag, other.real, other.imag
        return DualComplex(a * c - b * d, a * d + b * c)

    def modulus_squared(self) -> DualReal:
        return self.real * self.real + self.imag * self.imag

    def inverse(self) -> "DualComplex":
        # conj(z) / |z|^2
        scale = self.modulus_squared().inverse()
        return DualComplex(self.real * scale, -(self.imag * scale))

    def __truediv__(self, other: "DualComplex") -> "DualComplex":
        return self * other.inverse()

    def conj(self) -> "DualComplex":
        return DualComplex(self.real, -self.imag)

    def abs(self) -> "DualComplex":
        return DualComplex.from_real(self.modulus_squared().sqrt())

    def arg(self) -> "DualComplex":
        return DualComplex.from_real(atan2(self.imag, self.real))

    def sqrt(self) -> "DualComplex":
        """Principal square root, branch cut on the negative real axis."""
        a, b = self.real, self.imag
        r = self.modulus_squared().sqrt()
        if a.value >= 0:
            u = (r + a).scale(0.5).sqrt()
            v = b / u.scale(2.0)
        else:
            v = (r - a).scale(0.5).sqrt()
            if b.value < 0:
                v = -v
            u = b / v.scale(2.0)
        return DualComplex(u, v)
