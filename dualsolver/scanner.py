"""
DualSolver — Character scanner

A cursor over the source string with line/column bookkeeping and the
backtracking combinators (optional, zero_or_more, choice, ...) the grammar is
written in.  Failure is signalled by raising ``ParseError``; the combinators
catch it, rewind and try the next thing.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable, List, Optional, Tuple, TypeVar, Union

from dualsolver.errors import ParseError
from dualsolver.nodes import SourcePosition

T = TypeVar("T")

# Either a regex character class body ("a-zA-Z_", "^\n") or (name, test).
CharPredicate = Union[str, Tuple[str, Callable[[str], bool]]]

Mark = Tuple[int, int, int, int]


@lru_cache(maxsize=None)
def _char_class(body: str):
    return re.compile("[" + body + "]")


def matches(char: str, predicate: CharPredicate) -> bool:
    if isinstance(predicate, str):
        return _char_class(predicate).fullmatch(char) is not None
    return predicate[1](char)


def describe(predicate: CharPredicate) -> str:
    if isinstance(predicate, str):
        return f'one of "{predicate}"'
    return predicate[0]


class _FurthestError:
    """Keeps the error that got furthest into the input (first one on ties)."""

    def __init__(self) -> None:
        self.error: Optional[ParseError] = None

    def add(self, error: ParseError) -> None:
        if self.error is None or error.position.offset > self.error.position.offset:
            self.error = error


class Scanner:
    def __init__(self, source: str):
        self.source = source
        self.offset = 0
        self.line_number = 1
        self.column_number = 1
        self.line_start_offset = 0

    # ── Position ───────────────────────────────────────────────────────

    @property
    def position(self) -> SourcePosition:
        return SourcePosition(self.offset, self.line_number,
                              self.column_number, self.line_start_offset)

    @property
    def at_end(self) -> bool:
        return self.offset >= len(self.source)

    def mark(self) -> Mark:
        return (self.offset, self.line_number, self.column_number,
                self.line_start_offset)

    def reset(self, mark: Mark) -> None:
        (self.offset, self.line_number, self.column_number,
         self.line_start_offset) = mark

    def error(self, message: str,
              position: Optional[SourcePosition] = None) -> ParseError:
        return ParseError(self.source, position or self.position, message)

    # ── Primitive consumers ────────────────────────────────────────────

    def peek_char(self) -> Optional[str]:
        if self.at_end:
            return None
        return self.source[self.offset]

    def consume_char(self, predicate: Optional[CharPredicate] = None) -> str:
        """Consume one character, optionally requiring it to match *predicate*."""
        if self.at_end:
            raise self.error("End of input reached")
        char = self.source[self.offset]
        if predicate is not None and not matches(char, predicate):
            raise self.error(f"Expected {describe(predicate)}")

        self.offset += 1
        if char == "\n":
            self.line_number += 1
            self.column_number = 1
            self.line_start_offset = self.offset
        else:
            self.column_number += 1
        return char

    def consume_zero_or_more(self, predicate: CharPredicate) -> str:
        result = []
        while not self.at_end and matches(self.source[self.offset], predicate):
            result.append(self.consume_char())
        return "".join(result)

    def consume_one_or_more(self, predicate: CharPredicate) -> str:
        return self.consume_char(predicate) + self.consume_zero_or_more(predicate)

    def consume_exact(self, expected: str) -> str:
        start = self.mark()
        position = self.position
        consumed = ""
        for want in expected:
            if self.at_end or self.source[self.offset] != want:
                got = consumed + (self.peek_char() or "")
                self.reset(start)
                raise self.error(
                    f'Expected "{expected}" but got "{got}" instead', position)
            consumed += self.consume_char()
        return consumed

    # ── Combinators ────────────────────────────────────────────────────

    def optional(self, rule: Callable[[], T]) -> Optional[T]:
        mark = self.mark()
        try:
            return rule()
        except ParseError:
            self.reset(mark)
            return None

    def zero_or_more(self, rule: Callable[[], T]) -> List[T]:
        result: List[T] = []
        while True:
            mark = self.mark()
            try:
                item = rule()
            except ParseError:
                self.reset(mark)
                break
            result.append(item)
            if self.offset == mark[0]:
                # rule matched without consuming; repeating would never end
                break
        return result

    def one_or_more(self, rule: Callable[[], T]) -> List[T]:
        first = rule()
        return [first] + self.zero_or_more(rule)

    def peek(self, rule: Callable[[], object]) -> None:
        """Require *rule* to match here without consuming anything."""
        mark = self.mark()
        try:
            rule()
        finally:
            self.reset(mark)

    def choice(self, *alternatives: Callable[[], T]) -> T:
        """Ordered choice; reports the alternative that failed furthest in."""
        furthest = _FurthestError()
        for alternative in alternatives:
            mark = self.mark()
            try:
                return alternative()
            except ParseError as e:
                furthest.add(e)
                self.reset(mark)
        if furthest.error is None:
            raise self.error("No alternative to choose from")
        raise furthest.error
