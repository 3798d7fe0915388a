import cmath
import math

import numpy as np
import pytest
from sympy import atan2 as sym_atan2, diff, sqrt as sym_sqrt, symbols

from dualsolver.dual import DualComplex, DualReal, atan2


def _gradient(expr, names, point):
    subs = dict(zip(names, point))
    return [float(diff(expr, n).subs(subs)) for n in names]


def test_variable_and_constant_seed_vectors() -> None:
    x = DualReal.variable(2.0, 3, 1)
    assert x.value == 2.0
    assert list(x.derivatives) == [0.0, 1.0, 0.0]
    c = DualReal.constant(5.0, 3)
    assert not c.derivatives.any()


def test_rational_expression_matches_sympy() -> None:
    xs, ys = symbols("x y")
    x = DualReal.variable(2.0, 2, 0)
    y = DualReal.variable(3.0, 2, 1)

    result = x * y / (x + y) - x
    expected = xs * ys / (xs + ys) - xs

    assert result.value == pytest.approx(float(expected.subs({xs: 2, ys: 3})))
    assert list(result.derivatives) == pytest.approx(
        _gradient(expected, [xs, ys], [2, 3]))


def test_sqrt_and_atan2_match_sympy() -> None:
    xs, ys = symbols("x y")
    x = DualReal.variable(1.5, 2, 0)
    y = DualReal.variable(-0.5, 2, 1)

    root = (x * x + y * y).sqrt()
    expected = sym_sqrt(xs ** 2 + ys ** 2)
    assert list(root.derivatives) == pytest.approx(
        _gradient(expected, [xs, ys], [1.5, -0.5]))

    angle = atan2(y, x)
    assert angle.value == pytest.approx(math.atan2(-0.5, 1.5))
    assert list(angle.derivatives) == pytest.approx(
        _gradient(sym_atan2(ys, xs), [xs, ys], [1.5, -0.5]))


def test_inverse_of_zero_raises() -> None:
    with pytest.raises(ZeroDivisionError):
        DualReal.constant(0.0, 1).inverse()


def test_scale_and_negation() -> None:
    x = DualReal.variable(4.0, 1, 0)
    assert x.scale(0.5).value == 2.0
    assert list((-x).derivatives) == [-1.0]


def test_complex_variable_owns_two_slots() -> None:
    z = DualComplex.variable(1 + 2j, 4, 2)
    assert z.value == 1 + 2j
    assert list(z.real.derivatives) == [0, 0, 1, 0]
    assert list(z.imag.derivatives) == [0, 0, 0, 1]
    assert z.size == 4


def test_complex_square_obeys_cauchy_riemann() -> None:
    z = DualComplex.variable(3 + 4j, 2, 0)
    w = z * z
    assert w.value == (3 + 4j) ** 2
    # dw/dz = 2z = 6 + 8j
    assert list(w.real.derivatives) == pytest.approx([6.0, -8.0])
    assert list(w.imag.derivatives) == pytest.approx([8.0, 6.0])


def test_complex_division_and_inverse() -> None:
    a = DualComplex.constant(2 + 1j, 2)
    z = DualComplex.variable(1 + 1j, 2, 0)
    q = a / z
    assert q.value == pytest.approx((2 + 1j) / (1 + 1j))
    # d(a/z)/dz = -a / z^2
    derivative = -(2 + 1j) / (1 + 1j) ** 2
    assert q.real.derivatives[0] == pytest.approx(derivative.real)
    assert q.imag.derivatives[0] == pytest.approx(derivative.imag)
    assert z.inverse().value == pytest.approx(0.5 - 0.5j)


@pytest.mark.parametrize("value", [3 + 4j, -4 + 0j, 2 - 3j, -1 - 1j, 9 + 0j])
def test_complex_sqrt_is_principal_root(value) -> None:
    z = DualComplex.variable(value, 2, 0)
    root = z.sqrt()
    assert root.value == pytest.approx(cmath.sqrt(value))
    derivative = 1 / (2 * cmath.sqrt(value))
    assert root.real.derivatives[0] == pytest.approx(derivative.real)
    assert root.imag.derivatives[0] == pytest.approx(derivative.imag)


def test_abs_arg_and_conj() -> None:
    z = DualComplex.variable(3 + 4j, 2, 0)
    modulus = z.abs()
    assert modulus.value == pytest.approx(5.0)
    assert list(modulus.real.derivatives) == pytest.approx([0.6, 0.8])
    assert modulus.imag.value == 0.0

    assert DualComplex.constant(1j, 1).arg().value.real == pytest.approx(math.pi / 2)
    assert z.conj().value == 3 - 4j
    assert list(z.conj().imag.derivatives) == [0.0, -1.0]


def test_from_real_has_zero_imaginary_part() -> None:
    r = DualReal(2.0, np.array([1.0, 0.0]))
    c = DualComplex.from_real(r)
    assert c.value == 2 + 0j
    assert not c.imag.derivatives.any()
