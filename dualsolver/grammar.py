"""
DualSolver — Grammar

Recursive-descent grammar for the equation language::

    // declarations
    var   I  = 1 m[A];          unknown, initial value 1 mA
    lvar  U  = 5 [V];           locked
    lvar  Z  = 50:-20 [Ohm];    complex literal, real:imag

    // reusable templates
    eq  ohm(U, I, R) { U = R * I; }
    fun par(a, b) = a * b / (a + b);

    // top-level equations
    ohm(U, I, R: par(Z, 100));
    R2 = 2 * R1;

Whitespace (blanks, newlines, ``//`` comments) is consumed *after* every
token, never before, except once at the start of ``system``.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from dualsolver.config import SI_PREFIXES, SiPrefix, prefix_map
from dualsolver.nodes import (
    BinaryOp, Equation, EquationCall, EquationDefinition, EquationSystem,
    Expression, FunctionCall, FunctionDefinition, ImaginaryPart,
    NamedArgument, NumberLiteral, NumericValue, Paren, SourcePosition, Symbol,
    TerminalEquation, VariableDeclaration,
)
from dualsolver.scanner import Scanner

_IS_DIGIT = ("digit", lambda c: c in "0123456789")
_IS_UNIT_CHAR = ("unit character", lambda c: c.isalnum() or c in "/^*._°")


class Grammar:
    def __init__(self, source: str, prefixes: Sequence[SiPrefix] = SI_PREFIXES):
        self.scanner = Scanner(source)
        self._factors = prefix_map(prefixes)
        symbols = frozenset(p.symbol for p in prefixes if p.symbol)
        self._is_prefix = ("SI prefix", lambda c: c in symbols)

    # ── Whitespace ─────────────────────────────────────────────────────

    def _comment(self) -> None:
        s = self.scanner
        s.consume_exact("//")
        s.consume_zero_or_more("^\n")
        if not s.at_end:
            s.consume_char("\n")

    def _newline_crlf(self) -> None:
        self.scanner.consume_exact("\r\n")

    def _blank(self) -> None:
        self.scanner.consume_char(" \t\n")

    def whitespace(self) -> None:
        s = self.scanner
        s.one_or_more(lambda: s.choice(self._comment, self._newline_crlf,
                                       self._blank))

    def whitespace_opt(self) -> None:
        self.scanner.optional(self.whitespace)

    # ── Tokens ─────────────────────────────────────────────────────────

    def symbol(self) -> Symbol:
        s = self.scanner
        position = s.position
        name = s.consume_char("a-zA-Z_") + s.consume_zero_or_more("a-zA-Z0-9_")
        self.whitespace_opt()
        return Symbol(name, position)

    def number(self) -> Tuple[float, SourcePosition, int]:
        """Signed decimal with optional exponent: ``-12.5e-3``."""
        s = self.scanner
        start = s.position
        text = s.optional(lambda: s.consume_char("-")) or ""
        text += s.consume_one_or_more(_IS_DIGIT)

        def fraction() -> str:
            return s.consume_char(".") + s.consume_zero_or_more(_IS_DIGIT)

        def exponent() -> str:
            mark = s.consume_char("eE")
            sign = s.optional(lambda: s.consume_char("+-")) or ""
            return mark + sign + s.consume_one_or_more(_IS_DIGIT)

        text += s.optional(fraction) or ""
        text += s.optional(exponent) or ""
        length = s.offset - start.offset
        self.whitespace_opt()
        return float(text), start, length

    def numeric_value(self) -> NumericValue:
        s = self.scanner
        real, real_start, real_length = self.number()

        def imaginary() -> ImaginaryPart:
            s.consume_char(":")
            self.whitespace_opt()
            value, start, length = self.number()
            return ImaginaryPart(value, start, length)

        imag = s.optional(imaginary)
        si_prefix = s.optional(lambda: s.consume_char(self._is_prefix)) or ""

        def unit() -> str:
            s.consume_exact("[")
            self.whitespace_opt()
            text = s.consume_zero_or_more(_IS_UNIT_CHAR)
            self.whitespace_opt()
            s.consume_exact("]")
            return text

        unit_text = s.optional(unit)
        self.whitespace_opt()

        # A bare "m" means metres, not milli-of-nothing.
        if not unit_text and si_prefix == "m":
            unit_text = "m"
            si_prefix = ""

        return NumericValue(
            real=real,
            real_start=real_start,
            real_length=real_length,
            si_prefix=si_prefix,
            factor=self._factors[si_prefix],
            unit=unit_text,
            imag=imag,
        )

    # ── Expressions ────────────────────────────────────────────────────

    def _paren(self) -> Paren:
        s = self.scanner
        s.consume_char("(")
        self.whitespace_opt()
        expression = self.expression()
        s.consume_char(")")
        self.whitespace_opt()
        return Paren(expression)

    def _number_literal(self) -> NumberLiteral:
        return NumberLiteral(self.numeric_value())

    def function_call(self) -> FunctionCall:
        name, positional, named = self.call()
        return FunctionCall(name, positional, named)

    def value(self) -> Expression:
        return self.scanner.choice(
            self._paren,
            self._number_literal,
            self.function_call,
            self.symbol,
        )

    def _binary_op(self, operators: str, nested) -> Expression:
        s = self.scanner
        result = nested()

        def operation():
            operator = s.consume_char(operators)
            self.whitespace_opt()
            return operator, nested()

        for operator, right in s.zero_or_more(operation):
            result = BinaryOp(operator, result, right)
        return result

    def product(self) -> Expression:
        return self._binary_op("*/", self.value)

    def sum(self) -> Expression:
        return self._binary_op("+-", self.product)

    def expression(self) -> Expression:
        return self.sum()

    # ── Calls ──────────────────────────────────────────────────────────

    def call(self) -> Tuple[Symbol, Tuple[Expression, ...],
                            Tuple[NamedArgument, ...]]:
        """``name(positional..., param: value, ...)``.

        Positional arguments come first; once ``param:`` is seen every
        remaining argument must be named.
        """
        s = self.scanner
        name = self.symbol()
        s.consume_char("(")
        self.whitespace_opt()

        def positional_arg() -> Expression:
            value = self.expression()
            s.peek(lambda: s.choice(lambda: s.consume_exact(","),
                                    lambda: s.consume_exact(")")))
            return value

        def next_positional() -> Expression:
            s.consume_exact(",")
            self.whitespace_opt()
            return positional_arg()

        positional: List[Expression] = s.optional(
            lambda: [positional_arg()] + s.zero_or_more(next_positional)) or []

        def named_arg() -> NamedArgument:
            parameter = self.symbol()
            s.consume_exact(":")
            self.whitespace_opt()
            return NamedArgument(parameter, self.expression())

        def next_named() -> NamedArgument:
            s.consume_exact(",")
            self.whitespace_opt()
            return named_arg()

        def named_args() -> List[NamedArgument]:
            if positional:
                s.consume_exact(",")
                self.whitespace_opt()
            return [named_arg()] + s.zero_or_more(next_named)

        named: List[NamedArgument] = s.optional(named_args) or []

        s.consume_exact(")")
        self.whitespace_opt()
        return name, tuple(positional), tuple(named)

    # ── Equations ──────────────────────────────────────────────────────

    def equation_terminal(self) -> TerminalEquation:
        s = self.scanner
        left = self.expression()
        s.consume_char("=")
        self.whitespace_opt()
        right = self.expression()
        s.consume_char(";")
        self.whitespace_opt()
        return TerminalEquation(left, right)

    def equation_call(self) -> EquationCall:
        name, positional, named = self.call()
        self.scanner.consume_char(";")
        self.whitespace_opt()
        return EquationCall(name, positional, named)

    def equation(self) -> Equation:
        return self.scanner.choice(self.equation_terminal, self.equation_call)

    def parameter_list(self) -> Tuple[str, ...]:
        s = self.scanner

        def next_parameter() -> Symbol:
            s.consume_char(",")
            self.whitespace_opt()
            return self.symbol()

        symbols = s.optional(
            lambda: [self.symbol()] + s.zero_or_more(next_parameter)) or []
        return tuple(sym.name for sym in symbols)

    def _parameters(self) -> Tuple[str, ...]:
        s = self.scanner
        s.consume_exact("(")
        self.whitespace_opt()
        parameters = self.parameter_list()
        s.consume_exact(")")
        self.whitespace_opt()
        return parameters

    def equation_definition(self) -> EquationDefinition:
        s = self.scanner
        s.consume_exact("eq")
        self.whitespace()
        name = self.symbol()
        parameters = self._parameters()
        s.consume_exact("{")
        self.whitespace_opt()

        equations = []
        while s.peek_char() != "}":
            equations.append(self.equation())

        s.consume_exact("}")
        self.whitespace_opt()
        return EquationDefinition(name, parameters, tuple(equations))

    def function_definition(self) -> FunctionDefinition:
        s = self.scanner
        s.consume_exact("fun")
        self.whitespace()
        name = self.symbol()
        parameters = self._parameters()
        s.consume_exact("=")
        self.whitespace_opt()
        expression = self.expression()
        s.consume_exact(";")
        self.whitespace_opt()
        return FunctionDefinition(name, parameters, expression)

    def variable_declaration(self) -> VariableDeclaration:
        s = self.scanner

        def unknown() -> bool:
            s.consume_exact("var")
            return False

        def locked_value() -> bool:
            s.consume_exact("lvar")
            return True

        locked = s.choice(unknown, locked_value)
        self.whitespace()
        name = self.symbol()
        s.consume_exact("=")
        self.whitespace_opt()
        value = self.numeric_value()
        s.consume_exact(";")
        self.whitespace_opt()
        return VariableDeclaration(name, value, locked)

    # ── Whole input ────────────────────────────────────────────────────

    def system(self) -> EquationSystem:
        s = self.scanner
        self.whitespace_opt()

        equations: List[Equation] = []
        equation_definitions: List[EquationDefinition] = []
        function_definitions: List[FunctionDefinition] = []
        variables: List[VariableDeclaration] = []

        while not s.at_end:
            item = s.choice(
                self.variable_declaration,
                self.equation_definition,
                self.function_definition,
                self.equation,
            )
            if isinstance(item, VariableDeclaration):
                variables.append(item)
            elif isinstance(item, EquationDefinition):
                equation_definitions.append(item)
            elif isinstance(item, FunctionDefinition):
                function_definitions.append(item)
            else:
                equations.append(item)

        return EquationSystem(
            equations=tuple(equations),
            equation_definitions=tuple(equation_definitions),
            function_definitions=tuple(function_definitions),
            variables=tuple(variables),
        )


def parse_system(source: str,
                 prefixes: Sequence[SiPrefix] = SI_PREFIXES) -> EquationSystem:
    """Parse *source* into an ``EquationSystem``; raises ``ParseError``."""
    return Grammar(source, prefixes).system()
