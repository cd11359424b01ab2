"""Checks notation source files against the grammar."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from mathsyntax.errors import MetaError, ParseError, ParseErrorKind, SourceReadError
from mathsyntax.grammar import Grammar, default_grammar
from mathsyntax.rules import ParseResult
from mathsyntax.source import Range
from mathsyntax.tokens import MetaToken, Tokenizer


@dataclass(frozen=True)
class ParseOutcome:
    """The top-level result of parsing one source text."""

    source: str
    result: ParseResult
    tokens: list[MetaToken]

    @property
    def failure(self) -> ParseError | None:
        return find_failure(self.source, self.result)

    @property
    def ok(self) -> bool:
        return self.failure is None


def parse_source(source: str, grammar: Grammar | None = None) -> ParseOutcome:
    """Run the top-level rule over ``source`` from offset 0."""
    grammar = grammar or default_grammar()
    tokenizer = Tokenizer()
    state = tokenizer.checkpoint()
    result = grammar.top.parse(tokenizer, state, source, 0)
    tokens = tokenizer.tokens[state : result.state] if result.ok else []
    return ParseOutcome(source, result, tokens)


def find_failure(source: str, result: ParseResult) -> ParseError | None:
    """Return the error to report for ``result``, or None if it covers ``source``.

    A match that stops short of the end is reported at its deepest
    recorded failure, or as trailing input when nothing was recorded.
    """
    if not result.ok:
        return result.error
    end = result.range.next_offset
    if end >= len(source):
        return None
    if result.error is not None:
        return result.error
    return ParseError(ParseErrorKind.UNCONSUMED_INPUT, Range.empty(end))


def read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(path, e) from e


@dataclass
class Syntax:
    """The set of source files that passed the syntax check."""

    files: list[Path] = field(default_factory=list)

    @classmethod
    def new(cls, files: Iterable[Path | str], grammar: Grammar | None = None) -> Syntax:
        """Check every file in order, stopping at the first failure.

        Raises :class:`SourceReadError` when a file cannot be read and
        :class:`MetaError` when one does not match the grammar.
        """
        paths = [Path(f) for f in files]
        grammar = grammar or default_grammar()
        for path in paths:
            source = read_source(path)
            outcome = parse_source(source, grammar)
            error = outcome.failure
            if error is not None:
                raise MetaError(path, source, error.range, error)
        return cls(files=paths)
