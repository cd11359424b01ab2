"""Shared test helpers for the mathsyntax test suite."""

from __future__ import annotations

from mathsyntax.errors import ParseError
from mathsyntax.rules import ParseResult, Rule
from mathsyntax.syntax import parse_source
from mathsyntax.tokens import MetaKind, Tokenizer


def run(rule: Rule, text: str, offset: int = 0) -> tuple[ParseResult, Tokenizer]:
    """Apply a single rule to text with a fresh token log."""
    tokenizer = Tokenizer()
    result = rule.parse(tokenizer, tokenizer.checkpoint(), text, offset)
    return result, tokenizer


def accepts(source: str) -> bool:
    """Whether the notation grammar accepts the whole source."""
    return parse_source(source).ok


def failure(source: str) -> ParseError:
    """Parse source, asserting it is rejected. Returns the reported error."""
    error = parse_source(source).failure
    assert error is not None, f"Expected {source!r} to be rejected"
    return error


def properties(source: str) -> list[tuple[str, object]]:
    """Parse source and return the (name, value) property tokens."""
    outcome = parse_source(source)
    assert outcome.ok, outcome.failure
    return [
        (t.name, t.value)
        for t in outcome.tokens
        if t.kind not in (MetaKind.START_NODE, MetaKind.END_NODE)
    ]


def nodes(source: str) -> list[str]:
    """Parse source and return the names of the nodes it opened, in order."""
    outcome = parse_source(source)
    assert outcome.ok, outcome.failure
    return [t.name for t in outcome.tokens if t.kind == MetaKind.START_NODE]
