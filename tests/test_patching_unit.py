import math

import pytest

from dualsolver.evaluator import compile_system
from dualsolver.formatting import format_complex, format_number
from dualsolver.grammar import parse_system
from dualsolver.newton import solve
from dualsolver.patching import (
    TextEdit, apply_edits, solution_edits, updated_variables,
)
from dualsolver.project import VariableDefinition


def _solved(source: str, variables=()):
    compiled = compile_system(source, parse_system(source), variables)
    solve(compiled)
    return compiled


# ── format_number ────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "value,expected",
    [
        (0.0, "0"),
        (2.0, "2"),
        (2.0000000000000004, "2"),
        (0.1 + 0.2, "0.3"),
        (-1.5, "-1.5"),
        (1234.5, "1234.5"),
        (0.00012, "0.00012"),
        (1.5e-7, "1.5e-7"),
        (1e20, "1e20"),
        (-2.5e-12, "-2.5e-12"),
    ],
)
def test_format_number(value, expected) -> None:
    assert format_number(value) == expected


def test_format_number_precision() -> None:
    assert format_number(1 / 3, 3) == "0.333"
    assert format_number(2 / 3, 4) == "0.6667"


def test_format_number_rejects_non_finite() -> None:
    with pytest.raises(ValueError):
        format_number(math.inf)
    with pytest.raises(ValueError):
        format_number(math.nan)


def test_format_complex() -> None:
    assert format_complex(3) == "3"
    assert format_complex(1 + 2j) == "1:2"
    assert format_complex(0.5 - 1e-9j) == "0.5:-1e-9"


@pytest.mark.parametrize("value", [1.5e-7, -2.5e20, 123.456, 1 / 3, 7e-4])
def test_formatted_numbers_parse_back(value) -> None:
    literal = parse_system(f"var x = {format_number(value)};").variables[0].value
    assert literal.real == pytest.approx(value, rel=1e-14)


# ── apply_edits ──────────────────────────────────────────────────────────

def test_apply_edits_in_any_order() -> None:
    edits = [TextEdit(0, 3, "x"), TextEdit(4, 3, "yz")]
    assert apply_edits("abc def", edits) == "x yz"
    assert apply_edits("abc def", list(reversed(edits))) == "x yz"
    assert apply_edits("abc", []) == "abc"


def test_apply_edits_rejects_bad_spans() -> None:
    with pytest.raises(ValueError):
        apply_edits("abc", [TextEdit(2, 5, "x")])
    with pytest.raises(ValueError):
        apply_edits("abcdef", [TextEdit(0, 3, "x"), TextEdit(2, 2, "y")])


# ── solution_edits / updated_variables ───────────────────────────────────

def test_solution_edits_only_touch_unknown_literals() -> None:
    source = "var a=1; lvar b=3; var c=1; a * b=c;c=6;"
    edits = solution_edits(_solved(source))
    assert [(e.offset, e.replacement) for e in edits] == [(6, "2"), (25, "6")]
    assert apply_edits(source, edits) == "var a=2; lvar b=3; var c=6; a * b=c;c=6;"


def test_solution_is_written_in_the_literal_prefix() -> None:
    source = "var C = 1u[F]; C = 2.5u;"
    assert apply_edits(source, solution_edits(_solved(source))) == \
        "var C = 2.5u[F]; C = 2.5u;"


def test_imaginary_part_written_only_when_present() -> None:
    real_only = _solved("var z = 1; z = 1:1;")
    assert len(solution_edits(real_only)) == 1

    source = "var z = 1:1; z = 3:-4;"
    patched = apply_edits(source, solution_edits(_solved(source)))
    assert patched == "var z = 3:-4; z = 3:-4;"


def test_updated_variables_keep_locked_values() -> None:
    externals = [
        VariableDefinition(1, "a", value=1.0),
        VariableDefinition(2, "b", value=3.0, locked=True),
    ]
    compiled = _solved("var c = 1; a * b = c; c = 6;", externals)
    a, b = updated_variables(compiled)
    assert a.id == 1 and a.value == pytest.approx(2.0)
    assert b is externals[1]
    assert externals[0].value == 1.0
