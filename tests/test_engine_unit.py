import cmath
import json
import math

import pytest

from dualsolver import calculate, check_source
from dualsolver.config import NewtonSettings
from dualsolver.errors import ParseError
from dualsolver.grammar import parse_system
from dualsolver.project import VariableDefinition


def test_calculate_patches_unknowns_and_keeps_the_rest() -> None:
    result = calculate("var a=1; lvar b=3; var c=1; a * b=c;c=6;")
    assert result.ok is True
    assert result.failure is None
    assert result.errors == []
    assert result.source_code == "var a=2; lvar b=3; var c=6; a * b=c;c=6;"
    assert result.iterations >= 1
    assert result.message == "Solution found"


def test_recalculation_is_idempotent() -> None:
    first = calculate("var a=1; lvar b=3; var c=1; a * b=c;c=6; // done")
    second = calculate(first.source_code)
    assert second.ok
    assert second.iterations == 0
    assert second.source_code == first.source_code


def test_recalculation_after_rounding_keeps_the_text() -> None:
    first = calculate("var x = 1; x * x = 2; // root two")
    second = calculate(first.source_code)
    assert second.ok
    assert second.iterations <= 1
    assert second.source_code == first.source_code
    assert first.source_code.endswith("x * x = 2; // root two")


def test_calculate_with_prefixes_and_units() -> None:
    source = "lvar U = 5[V]; lvar R = 1k[Ohm]; var I = 1m[A]; U = R * I;"
    result = calculate(source)
    assert result.ok
    assert result.source_code == \
        "lvar U = 5[V]; lvar R = 1k[Ohm]; var I = 5m[A]; U = R * I;"


def test_calculate_complex_solution() -> None:
    result = calculate("var z = 1:1; z * z = -4;")
    assert result.ok
    value = parse_system(result.source_code).variables[0].value
    assert value.imag is not None
    assert value.scaled == pytest.approx(2j, abs=1e-9)


def test_calculate_with_definitions() -> None:
    source = ("eq ohm(U, R, I) { U = R * I; }\n"
              "fun twice(a) = 2 * a;\n"
              "lvar U = 12; var I = 1; var x = 1;\n"
              "ohm(U, 4, I); twice(x) = 10;")
    result = calculate(source)
    assert result.ok
    solved = {v.name.name: v.value.scaled for v in
              parse_system(result.source_code).variables}
    assert solved["I"] == pytest.approx(3)
    assert solved["x"] == pytest.approx(5)


def test_calculate_updates_external_variables() -> None:
    externals = [
        VariableDefinition(1, "a", value=1.0),
        VariableDefinition(2, "b", value=3.0, locked=True),
    ]
    result = calculate("var c = 1; a * b = c; c = 6;", externals)
    assert result.ok
    assert result.variables[0].value == pytest.approx(2.0)
    assert result.variables[1] == externals[1]
    assert result.source_code == "var c = 6; a * b = c; c = 6;"


def test_undefined_symbol_never_reaches_the_solver() -> None:
    source = "var a = 1; a = d * e;"
    result = calculate(source)
    assert result.ok is False
    assert result.failure == "compile"
    assert result.source_code == source
    assert result.history == []
    assert [e.error_message for e in result.errors] == [
        "Unknown variable d", "Unknown variable e"]


def test_duplicate_declaration_fails_compile() -> None:
    result = calculate("var a = 1; var a = 2; a = 3;")
    assert result.failure == "compile"
    assert "defined more than once" in result.message


def test_parse_failure_is_a_single_error() -> None:
    result = calculate("var a = 1;\na = ;")
    assert result.failure == "parse"
    (error,) = result.errors
    assert isinstance(error, ParseError)
    assert error.position.line_number == 2
    assert result.message.startswith("2(5): ")


def test_numerical_failure_leaves_source_untouched() -> None:
    source = "var x = 0; 1 / x = 1;"
    result = calculate(source)
    assert result.failure == "numerical"
    assert result.source_code == source


def test_convergence_failure_reports_history() -> None:
    source = "var x = 1; x * x = 2;"
    externals = [VariableDefinition(1, "y", value=4.0)]
    result = calculate(source, externals,
                       settings=NewtonSettings(max_iterations=2))
    assert result.failure == "convergence"
    assert result.iterations == 3
    assert len(result.history) == 3
    assert result.source_code == source
    assert result.variables == externals
    assert result.summary["validation_status"] == "fail"


def test_precision_controls_written_digits() -> None:
    result = calculate("var x = 1; 3 * x = 1;", precision=4)
    assert result.source_code == "var x = 0.3333; 3 * x = 1;"


def test_result_to_dict_is_json_ready() -> None:
    result = calculate("var x = 1; x * x = 2;")
    data = result.to_dict()
    json.dumps(data)
    assert data["ok"] is True
    assert data["history"][0] == {"iteration": 0, "residual": 1.0, "alpha": 1.0}
    assert data["summary"]["library"].startswith("NumPy")
    assert data["summary"]["validation_status"] == "pass"
    assert data["summary"]["unknowns"] == 1
    assert "runtime_ms" in data["summary"]


def test_failed_result_to_dict_lists_errors() -> None:
    data = calculate("var a = 1; a = b;").to_dict()
    assert data["errors"] == [{
        "message": "Unknown variable b",
        "line": 1,
        "column": 16,
        "offset": 15,
        "rendered": "1(16): Unknown variable b\nvar a = 1; a = b;\n               ^",
    }]


def test_check_source() -> None:
    assert check_source("var a = 1; a = 2;") == []
    (error,) = check_source("a = ;")
    assert error.position.column_number == 5


@pytest.mark.parametrize("equation, check", [
    ("abs(x) = 2", lambda x: abs(x) == pytest.approx(2)),
    ("re(x) = 2", lambda x: x.real == pytest.approx(2)),
    ("im(x) = 2", lambda x: x == pytest.approx(1 + 2j)),
    ("arg(x) = 0.5", lambda x: cmath.phase(x) == pytest.approx(0.5)),
    ("atan2(x, 1) = 0.5", lambda x: x == pytest.approx(math.tan(0.5))),
])
def test_calculate_solves_through_real_valued_builtins(equation, check) -> None:
    result = calculate(f"var x = 1; {equation};")
    assert result.ok, result.message
    assert check(parse_system(result.source_code).variables[0].value.scaled)


def test_equation_and_function_with_the_same_name() -> None:
    result = calculate("fun f(a) = 2 * a; eq f(x) { f(x) = 4; } var y = 1; f(y);")
    assert result.ok, result.message
    assert parse_system(result.source_code).variables[0].value.scaled == \
        pytest.approx(2)
