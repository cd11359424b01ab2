"""Structural rules composed from child rules.

Speculative attempts are undone by rolling the token log back to the
checkpoint taken before the attempt; only :class:`Optional`,
:class:`Select`, :class:`Repeat`, :class:`SeparatedBy` and :class:`Lines`
absorb a child failure, and they keep it as the recorded error of the
result so the deepest failure can still be reported.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from mathsyntax.errors import ParseErrorKind, deepest
from mathsyntax.rules import ParseResult, Rule
from mathsyntax.source import Range


@dataclass(eq=False)
class Sequence(Rule):
    """All of ``args``, in order, each starting where the last one ended."""

    args: list[Rule]

    def children(self) -> Iterator[Rule]:
        return iter(self.args)

    def parse(self, tokenizer, state, chars, offset):
        start = offset
        start_state = state
        opt_error = None
        for rule in self.args:
            result = rule.parse(tokenizer, state, chars, offset)
            if not result.ok:
                tokenizer.rollback(start_state)
                return ParseResult.failure(deepest(result.error, opt_error), start_state)
            offset = result.range.next_offset
            state = result.state
            opt_error = deepest(opt_error, result.error)
        return ParseResult.success(Range(start, offset - start), state, opt_error)


@dataclass(eq=False)
class Select(Rule):
    """Ordered choice: the first alternative that matches wins."""

    args: list[Rule]

    def children(self) -> Iterator[Rule]:
        return iter(self.args)

    def parse(self, tokenizer, state, chars, offset):
        if not self.args:
            return self._fail(ParseErrorKind.NO_ALTERNATIVES, Range.empty(offset), state)
        failures = None
        for rule in self.args:
            result = rule.parse(tokenizer, state, chars, offset)
            if result.ok:
                return ParseResult.success(
                    result.range, result.state, deepest(result.error, failures),
                )
            tokenizer.rollback(state)
            failures = deepest(failures, result.error)
        return ParseResult.failure(failures, state)


@dataclass(eq=False)
class Optional(Rule):
    """Zero or one ``rule``; a failed attempt leaves no trace."""

    rule: Rule

    def children(self) -> Iterator[Rule]:
        yield self.rule

    def parse(self, tokenizer, state, chars, offset):
        result = self.rule.parse(tokenizer, state, chars, offset)
        if result.ok:
            return result
        tokenizer.rollback(state)
        return ParseResult.success(Range.empty(offset), state, result.error)


@dataclass(eq=False)
class Repeat(Rule):
    """One or more ``rule`` (zero or more when ``optional``)."""

    rule: Rule
    optional: bool = False

    def children(self) -> Iterator[Rule]:
        yield self.rule

    def parse(self, tokenizer, state, chars, offset):
        start = offset
        opt_error = None
        first = True
        while True:
            result = self.rule.parse(tokenizer, state, chars, offset)
            if not result.ok:
                tokenizer.rollback(state)
                if first and not self.optional:
                    return ParseResult.failure(result.error, state)
                opt_error = deepest(opt_error, result.error)
                break
            first = False
            state = result.state
            opt_error = deepest(opt_error, result.error)
            if result.range.is_empty():
                break
            offset = result.range.next_offset
        return ParseResult.success(Range(start, offset - start), state, opt_error)


@dataclass(eq=False)
class SeparatedBy(Rule):
    """``rule`` items separated by ``by``.

    With ``optional`` an input without any item is an empty match.  With
    ``allow_trail`` a separator that is not followed by an item is still
    consumed; otherwise the list ends before it and the separator is left
    unconsumed for the enclosing rule, not reported as an error here.
    """

    rule: Rule
    by: Rule
    optional: bool = False
    allow_trail: bool = False

    def children(self) -> Iterator[Rule]:
        yield self.rule
        yield self.by

    def parse(self, tokenizer, state, chars, offset):
        start = offset
        result = self.rule.parse(tokenizer, state, chars, offset)
        if not result.ok:
            tokenizer.rollback(state)
            if not self.optional:
                return ParseResult.failure(result.error, state)
            return ParseResult.success(Range.empty(offset), state, result.error)
        offset = result.range.next_offset
        state = result.state
        opt_error = result.error

        while True:
            sep = self.by.parse(tokenizer, state, chars, offset)
            if not sep.ok:
                tokenizer.rollback(state)
                opt_error = deepest(opt_error, sep.error)
                break
            item = self.rule.parse(tokenizer, sep.state, chars, sep.range.next_offset)
            if not item.ok:
                opt_error = deepest(opt_error, item.error)
                if self.allow_trail:
                    tokenizer.rollback(sep.state)
                    offset = sep.range.next_offset
                    state = sep.state
                    opt_error = deepest(opt_error, sep.error)
                else:
                    tokenizer.rollback(state)
                break
            if item.range.next_offset == offset:
                tokenizer.rollback(state)
                break
            offset = item.range.next_offset
            state = item.state
            opt_error = deepest(deepest(opt_error, sep.error), item.error)
        return ParseResult.success(Range(start, offset - start), state, opt_error)


def _skip_blank(chars: str, pos: int) -> int:
    """Skip whitespace up to, but not including, the next new line."""
    n = len(chars)
    while pos < n and chars[pos] != "\n" and chars[pos].isspace():
        pos += 1
    return pos


def _ends_with_new_line(chars: str, start: int, end: int) -> bool:
    """Whether the trailing whitespace of ``chars[start:end]`` holds a new line."""
    while end > start and chars[end - 1].isspace():
        if chars[end - 1] == "\n":
            return True
        end -= 1
    return False


@dataclass(eq=False)
class Lines(Rule):
    """Applies ``rule`` once per non-blank line until the input runs out.

    A line that fails to match ends the loop; the failure is kept as the
    recorded error and the result covers the lines matched so far, so a
    caller has to compare the consumed range with the input length.  A
    line rule may swallow the new line that ends it.
    """

    rule: Rule

    def children(self) -> Iterator[Rule]:
        yield self.rule

    def parse(self, tokenizer, state, chars, offset):
        start = offset
        n = len(chars)
        opt_error = None
        while True:
            pos = _skip_blank(chars, offset)
            if pos >= n:
                offset = pos
                break
            if chars[pos] == "\n":
                offset = pos + 1
                continue

            result = self.rule.parse(tokenizer, state, chars, pos)
            if not result.ok:
                tokenizer.rollback(state)
                opt_error = deepest(opt_error, result.error)
                break
            state = result.state
            opt_error = deepest(opt_error, result.error)
            end = result.range.next_offset
            if end == pos:
                break
            if _ends_with_new_line(chars, pos, end):
                offset = end
                continue

            after = _skip_blank(chars, end)
            if after >= n:
                offset = after
                break
            if chars[after] != "\n":
                offset = end
                opt_error = deepest(
                    self._error(ParseErrorKind.EXPECTED_NEW_LINE, Range.empty(after)),
                    opt_error,
                )
                break
            offset = after + 1
        return ParseResult.success(Range(start, offset - start), state, opt_error)
