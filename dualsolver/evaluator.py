"""
DualSolver — Evaluator

Turns a parsed ``EquationSystem`` plus the externally defined variables into
a list of residual closures over dual numbers.

* Every unknown owns two consecutive derivative slots (real, imaginary),
  external variables first, then in-source declarations, in order.
* Locked values are constants with an all-zero derivative vector.
* Equation and function calls are inlined at each call site; symbols inside
  a definition body resolve to the bound arguments first and to the caller's
  scope otherwise.

Semantic problems do not stop the pass.  They are collected, a zero
placeholder is substituted, and the whole batch is raised at the end as a
``CompileErrorBatch``.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dualsolver.builtins import BUILTINS
from dualsolver.dual import DualComplex
from dualsolver.errors import CompileError, CompileErrorBatch
from dualsolver.nodes import (
    START, BinaryOp, Call, Equation, EquationCall, EquationDefinition,
    EquationSystem, Expression, FunctionCall, FunctionDefinition,
    NumberLiteral, Paren, SourcePosition, Symbol, TerminalEquation,
    VariableDeclaration,
)
from dualsolver.project import VariableDefinition

logger = logging.getLogger(__name__)

Thunk = Callable[[], DualComplex]
Resolver = Callable[[Symbol], Thunk]
# ("eq" | "fun", name) of every definition currently being expanded
CallStack = Tuple[Tuple[str, str], ...]

_OPERATORS = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


@dataclass
class Unknown:
    """A variable the solver adjusts.  ``value`` is updated in place."""

    name: str
    value: complex
    slot: int
    size: int
    external: Optional[VariableDefinition] = None
    declaration: Optional[VariableDeclaration] = None

    def dual(self) -> DualComplex:
        return DualComplex.variable(self.value, self.size, self.slot)


@dataclass
class CompiledSystem:
    source: str
    size: int
    unknowns: List[Unknown] = field(default_factory=list)
    residuals: List[Thunk] = field(default_factory=list)
    externals: List[VariableDefinition] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return 2 * len(self.residuals)


class Evaluator:
    def __init__(self, source: str, system: EquationSystem,
                 variables: Sequence[VariableDefinition] = ()):
        self.source = source
        self.system = system
        self.externals = list(variables)
        self.errors: List[CompileError] = []
        self._seen_errors = set()
        self._values: Dict[str, Thunk] = {}
        self._equation_definitions: Dict[str, EquationDefinition] = {}
        self._function_definitions: Dict[str, FunctionDefinition] = {}

    # ── Error collection ───────────────────────────────────────────────

    def _error(self, position: SourcePosition, message: str) -> None:
        key = (position.offset, message)
        if key in self._seen_errors:
            return
        self._seen_errors.add(key)
        self.errors.append(CompileError(self.source, position, message))

    def _placeholder(self) -> Thunk:
        zero = DualComplex.constant(0, self._size)
        return lambda: zero

    # ── Variables ──────────────────────────────────────────────────────

    def _bind_variables(self) -> List[Unknown]:
        accepted: List[Tuple[str, complex, bool, object]] = []
        names = set()
        for var in self.externals:
            if var.name in names:
                self._error(START, f"Variable {var.name} is defined more than once")
                continue
            names.add(var.name)
            accepted.append((var.name, var.complex_value, var.locked, var))
        for decl in self.system.variables:
            if decl.name.name in names:
                self._error(decl.name.position,
                            f"Variable {decl.name.name} is defined more than once")
                continue
            names.add(decl.name.name)
            accepted.append((decl.name.name, decl.value.scaled, decl.locked, decl))

        self._size = 2 * sum(1 for _, _, locked, _ in accepted if not locked)

        unknowns: List[Unknown] = []
        for name, value, locked, origin in accepted:
            if locked:
                constant = DualComplex.constant(value, self._size)
                self._values[name] = lambda c=constant: c
                continue
            unknown = Unknown(
                name=name,
                value=value,
                slot=2 * len(unknowns),
                size=self._size,
                external=origin if isinstance(origin, VariableDefinition) else None,
                declaration=origin if isinstance(origin, VariableDeclaration) else None,
            )
            unknowns.append(unknown)
            self._values[name] = unknown.dual
        return unknowns

    def _resolve_global(self, symbol: Symbol) -> Thunk:
        thunk = self._values.get(symbol.name)
        if thunk is None:
            self._error(symbol.position, f"Unknown variable {symbol.name}")
            return self._placeholder()
        return thunk

    # ── Definitions ────────────────────────────────────────────────────

    def _index_definitions(self) -> None:
        for kind, definitions, table in (
            ("Equation", self.system.equation_definitions,
             self._equation_definitions),
            ("Function", self.system.function_definitions,
             self._function_definitions),
        ):
            for definition in definitions:
                name = definition.name.name
                if name in table:
                    self._error(definition.name.position,
                                f"{kind} {name} is defined more than once")
                    continue
                if len(set(definition.parameters)) != len(definition.parameters):
                    self._error(definition.name.position,
                                f"{kind} {name} repeats a parameter name")
                table[name] = definition

    def _bind_arguments(self, call: Call, parameters: Tuple[str, ...],
                        resolve: Resolver,
                        stack: CallStack) -> Optional[Dict[str, Thunk]]:
        """Positional arguments fill the first parameters, named ones the rest."""
        name = call.name.name
        ok = True
        if len(call.positional_args) > len(parameters):
            self._error(call.name.position,
                        f"Too many arguments for {name}: expected {len(parameters)}, "
                        f"got {len(call.positional_args)}")
            ok = False

        bound: Dict[str, Thunk] = {}
        for parameter, argument in zip(parameters, call.positional_args):
            bound[parameter] = self._compile_expression(argument, resolve, stack)

        for named in call.named_args:
            parameter = named.parameter.name
            if parameter not in parameters:
                self._error(named.parameter.position,
                            f"Unknown parameter {parameter} for {name}")
                ok = False
            elif parameter in bound:
                self._error(named.parameter.position,
                            f"Argument {parameter} for {name} is given more than once")
                ok = False
            else:
                bound[parameter] = self._compile_expression(named.value, resolve, stack)

        missing = [p for p in parameters if p not in bound]
        if missing:
            self._error(call.name.position,
                        f"Missing argument{'s' if len(missing) > 1 else ''} "
                        f"{', '.join(missing)} for {name}")
            ok = False
        return bound if ok else None

    @staticmethod
    def _scope(bound: Dict[str, Thunk], outer: Resolver) -> Resolver:
        def resolve(symbol: Symbol) -> Thunk:
            thunk = bound.get(symbol.name)
            return thunk if thunk is not None else outer(symbol)
        return resolve

    # ── Expressions ────────────────────────────────────────────────────

    def _compile_expression(self, expression: Expression, resolve: Resolver,
                            stack: CallStack) -> Thunk:
        if isinstance(expression, NumberLiteral):
            constant = DualComplex.constant(expression.value.scaled, self._size)
            return lambda: constant
        if isinstance(expression, Symbol):
            return resolve(expression)
        if isinstance(expression, Paren):
            return self._compile_expression(expression.expression, resolve, stack)
        if isinstance(expression, BinaryOp):
            left = self._compile_expression(expression.left, resolve, stack)
            right = self._compile_expression(expression.right, resolve, stack)
            op = _OPERATORS[expression.operator]
            return lambda: op(left(), right())
        if isinstance(expression, FunctionCall):
            return self._compile_function_call(expression, resolve, stack)
        raise TypeError(f"Unknown expression {expression!r}")

    def _compile_function_call(self, call: FunctionCall, resolve: Resolver,
                               stack: CallStack) -> Thunk:
        name = call.name.name
        definition = self._function_definitions.get(name)
        if definition is not None:
            if ("fun", name) in stack:
                self._error(call.name.position, f"Recursive call of {name}")
                return self._placeholder()
            bound = self._bind_arguments(call, definition.parameters, resolve, stack)
            if bound is None:
                return self._placeholder()
            return self._compile_expression(definition.expression,
                                            self._scope(bound, resolve),
                                            stack + (("fun", name),))

        builtin = BUILTINS.get(name)
        if builtin is None:
            self._error(call.name.position, f"Unknown function {name}")
            return self._placeholder()
        if call.named_args:
            self._error(call.named_args[0].parameter.position,
                        f"Function {name} takes no named arguments")
            return self._placeholder()
        if len(call.positional_args) != builtin.arity:
            self._error(call.name.position,
                        f"Function {name} expects {builtin.arity} "
                        f"argument{'s' if builtin.arity > 1 else ''}, "
                        f"got {len(call.positional_args)}")
            return self._placeholder()
        args = [self._compile_expression(a, resolve, stack)
                for a in call.positional_args]
        apply = builtin.apply
        return lambda: apply(*(a() for a in args))

    # ── Equations ──────────────────────────────────────────────────────

    def _push_equation(self, equation: Equation, resolve: Resolver,
                       stack: CallStack, residuals: List[Thunk]) -> None:
        if isinstance(equation, TerminalEquation):
            left = self._compile_expression(equation.left, resolve, stack)
            right = self._compile_expression(equation.right, resolve, stack)
            residuals.append(lambda: left() - right())
            return
        if not isinstance(equation, EquationCall):
            raise TypeError(f"Unknown equation {equation!r}")

        name = equation.name.name
        definition = self._equation_definitions.get(name)
        if definition is None:
            self._error(equation.name.position, f"Unknown equation {name}")
            return
        if ("eq", name) in stack:
            self._error(equation.name.position, f"Recursive call of {name}")
            return
        bound = self._bind_arguments(equation, definition.parameters, resolve, stack)
        if bound is None:
            return
        scope = self._scope(bound, resolve)
        for body_equation in definition.equations:
            self._push_equation(body_equation, scope, stack + (("eq", name),),
                                residuals)

    # ── Entry point ────────────────────────────────────────────────────

    def compile(self) -> CompiledSystem:
        unknowns = self._bind_variables()
        self._index_definitions()

        residuals: List[Thunk] = []
        for equation in self.system.equations:
            self._push_equation(equation, self._resolve_global, (), residuals)

        if self.errors:
            logger.info("compilation failed with %d error(s)", len(self.errors))
            raise CompileErrorBatch(self.errors)

        logger.debug("compiled %d equation(s) over %d unknown(s)",
                     len(residuals), len(unknowns))
        return CompiledSystem(
            source=self.source,
            size=self._size,
            unknowns=unknowns,
            residuals=residuals,
            externals=self.externals,
        )


def compile_system(source: str, system: EquationSystem,
                   variables: Sequence[VariableDefinition] = ()) -> CompiledSystem:
    """Compile *system*; raises ``CompileErrorBatch`` on semantic errors."""
    return Evaluator(source, system, variables).compile()
