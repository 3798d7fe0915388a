import pytest

from dualsolver.config import SiPrefix
from dualsolver.errors import ParseError
from dualsolver.grammar import Grammar, parse_system
from dualsolver.nodes import (
    BinaryOp, EquationCall, FunctionCall, ImaginaryPart, NumberLiteral, Paren,
    SourcePosition, Symbol, TerminalEquation,
)


def _single_equation(source: str):
    system = parse_system(source)
    assert len(system.equations) == 1
    return system.equations[0]


def test_terminal_equation_positions() -> None:
    eq = _single_equation("a *b=c;")
    assert eq == TerminalEquation(
        left=BinaryOp(
            "*",
            Symbol("a", SourcePosition(0, 1, 1, 0)),
            Symbol("b", SourcePosition(3, 1, 4, 0)),
        ),
        right=Symbol("c", SourcePosition(5, 1, 6, 0)),
    )


def test_symbol_position_on_second_line() -> None:
    system = parse_system("var x = 1;\n  x = 2;")
    left = system.equations[0].left
    assert left == Symbol("x", SourcePosition(13, 2, 3, 11))


def test_precedence_and_left_associativity() -> None:
    eq = _single_equation("a - b - c * d / e = 0;")
    left = eq.left
    assert isinstance(left, BinaryOp) and left.operator == "-"
    assert isinstance(left.left, BinaryOp) and left.left.operator == "-"
    product = left.right
    assert product.operator == "/"
    assert product.left.operator == "*"


def test_parenthesised_expression() -> None:
    eq = _single_equation("(a + b) * c = 1;")
    assert isinstance(eq.left.left, Paren)
    assert eq.left.left.expression.operator == "+"


def test_numeric_literal_with_imaginary_part_prefix_and_unit() -> None:
    system = parse_system("var I = 1.5:-2 k[Ohm];")
    value = system.variables[0].value
    assert value.real == 1.5
    assert value.real_start.offset == 8
    assert value.real_length == 3
    assert value.imag == ImaginaryPart(-2.0, value.imag.start, 2)
    assert value.imag.start.offset == 12
    assert value.si_prefix == "k"
    assert value.factor == 1e3
    assert value.unit == "Ohm"
    assert value.scaled == complex(1500, -2000)


@pytest.mark.parametrize(
    "literal,real,prefix,unit",
    [
        ("3", 3.0, "", None),
        ("-1.25e-3", -0.00125, "", None),
        ("2E+2", 200.0, "", None),
        ("3 m", 3.0, "", "m"),
        ("3m[A]", 3.0, "m", "A"),
        ("4.7u[F]", 4.7, "u", "F"),
        ("1[m/s^2]", 1.0, "", "m/s^2"),
        ("5%", 5.0, "%", None),
    ],
)
def test_numeric_literal_forms(literal, real, prefix, unit) -> None:
    value = parse_system(f"var x = {literal};").variables[0].value
    assert value.real == pytest.approx(real)
    assert value.si_prefix == prefix
    assert value.unit == unit
    assert value.imag is None


def test_bare_m_means_metres() -> None:
    value = parse_system("lvar d = 2 m;").variables[0].value
    assert value.unit == "m"
    assert value.factor == 1.0
    assert value.scaled == 2


def test_declarations_keep_locked_flag() -> None:
    system = parse_system("var a = 1; lvar b = 2;")
    assert [(v.name.name, v.locked) for v in system.variables] == [
        ("a", False), ("b", True)]


def test_comments_and_crlf_are_whitespace() -> None:
    source = "// header\r\nvar x = 1; // trailing\r\n\r\nx = 2; // end"
    system = parse_system(source)
    assert len(system.variables) == 1
    assert len(system.equations) == 1
    assert system.equations[0].left.position.line_number == 4


def test_equation_call_with_named_arguments() -> None:
    eq = _single_equation("cap(a:foo,b:1+1);")
    assert isinstance(eq, EquationCall)
    assert eq.positional_args == ()
    assert [n.parameter.name for n in eq.named_args] == ["a", "b"]
    assert isinstance(eq.named_args[1].value, BinaryOp)


def test_positional_then_named_arguments() -> None:
    eq = _single_equation("cap(1, b: 2);")
    assert len(eq.positional_args) == 1
    assert isinstance(eq.positional_args[0], NumberLiteral)
    assert eq.named_args[0].parameter.name == "b"


def test_named_then_positional_is_rejected() -> None:
    with pytest.raises(ParseError):
        parse_system("foo(foo:bar,1);")


def test_function_call_inside_expression() -> None:
    eq = _single_equation("y = sqrt(x * 2);")
    assert isinstance(eq.right, FunctionCall)
    assert eq.right.name.name == "sqrt"
    assert len(eq.right.positional_args) == 1


def test_equation_and_function_definitions() -> None:
    source = ("eq ohm(U, R, I) { U = R * I; }\n"
              "fun par(a, b) = a * b / (a + b);\n"
              "eq empty() { }\n")
    system = parse_system(source)
    ohm, empty = system.equation_definitions
    assert ohm.name.name == "ohm"
    assert ohm.parameters == ("U", "R", "I")
    assert len(ohm.equations) == 1
    assert empty.parameters == ()
    assert empty.equations == ()
    (par,) = system.function_definitions
    assert par.parameters == ("a", "b")
    assert par.expression.operator == "/"


def test_keyword_prefix_is_still_a_symbol() -> None:
    system = parse_system("var variable = 1; variable = eqx;")
    assert system.variables[0].name.name == "variable"
    assert system.equations[0].right.name == "eqx"


def test_empty_source_is_an_empty_system() -> None:
    system = parse_system("  // nothing here\n")
    assert system.equations == ()
    assert system.variables == ()


def test_error_points_at_longest_match() -> None:
    with pytest.raises(ParseError) as exc:
        parse_system("var x = 1;\nx = ;")
    pos = exc.value.position
    assert (pos.offset, pos.line_number, pos.column_number) == (15, 2, 5)
    lines = exc.value.message.splitlines()
    assert lines[0].startswith("2(5): ")
    assert lines[1:] == ["x = ;", "    ^"]


def test_unterminated_definition_fails() -> None:
    with pytest.raises(ParseError):
        parse_system("eq f(a) { a = 1; ")


def test_custom_prefix_table() -> None:
    prefixes = (SiPrefix("", 1.0), SiPrefix("x", 10.0))
    value = Grammar("var a = 2x;", prefixes).system().variables[0].value
    assert value.si_prefix == "x"
    assert value.scaled == 20
    with pytest.raises(ParseError):
        parse_system("var a = 2x;")
