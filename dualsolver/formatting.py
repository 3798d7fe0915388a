"""Number formatting for solved values written back into source text."""

import math

import numpy as np

from dualsolver.config import DEFAULT_PRECISION


def format_number(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """Format *value* with *precision* significant digits.

    Moderate magnitudes are written positionally (``1234.5``, ``0.00012``),
    very large or very small ones in exponent form (``1.5e-7``).  Trailing
    zeros are trimmed, so exact results stay short: ``2.0000000000000004``
    becomes ``2``.  The output is always a valid numeric literal.
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot format non-finite value {value!r}")
    if value == 0:
        return "0"
    if value < 0:
        return "-" + format_number(-value, precision)

    leading = math.floor(math.log10(value)) + 1
    if leading - precision > 3 or leading < -3:
        text = np.format_float_scientific(value, precision=precision - 1,
                                          unique=False, trim="-")
        mantissa, exponent = text.split("e")
        return f"{mantissa.rstrip('.')}e{int(exponent)}"
    text = np.format_float_positional(value, precision=precision, unique=False,
                                      fractional=False, trim="-")
    return text.rstrip(".")


def format_complex(value: complex, precision: int = DEFAULT_PRECISION) -> str:
    """``real`` or ``real:imag`` in the literal syntax of the language."""
    value = complex(value)
    if value.imag == 0:
        return format_number(value.real, precision)
    return (f"{format_number(value.real, precision)}:"
            f"{format_number(value.imag, precision)}")
