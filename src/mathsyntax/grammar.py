"""Grammar of the notation language for mathematical function signatures.

A source file is a sequence of lines, each one of::

    // comment
    pub use std::nat::*;
    pub mod nat;
    zero: nat;
    pub fn add(a: nat, b: nat) -> nat; // comment

Function signatures are curried (``fn f(x)(y) -> z``) and names may carry
bracket annotations such as ``[:]`` or ``[T]``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import cache

from mathsyntax.combinators import Lines, Optional, Repeat, Select, SeparatedBy, Sequence
from mathsyntax.nodes import Node, NodeRef, RuleTable
from mathsyntax.rules import Number, Rule, Text, Token, UntilAny, UntilAnyOrWhitespace, Whitespace

# Characters that end an identifier.
SEPARATORS = "()[]{},;:/*+-"


@dataclass(frozen=True)
class Grammar:
    """A resolved rule table together with its top-level rule."""

    table: RuleTable
    top: Rule


# ── Builders ──────────────────────────────────────────────────────


def _tok(text: str, property: str | None = None) -> Token:
    return Token(text, property=property)


def _ws(optional: bool = True) -> Whitespace:
    return Whitespace(optional=optional)


def _ident(optional: bool = False, property: str | None = None) -> UntilAnyOrWhitespace:
    return UntilAnyOrWhitespace(SEPARATORS, optional=optional, property=property)


def _keyword(text: str) -> Sequence:
    """A keyword with optional trailing whitespace."""
    return Sequence([_tok(text), _ws()])


def _pub() -> Optional:
    return Optional(_keyword("pub"))


def _ref(name: str) -> NodeRef:
    return NodeRef(name)


# ── Rules ─────────────────────────────────────────────────────────


def _brackets() -> Node:
    member_bracket = Optional(Sequence([
        _tok("["),
        Select([_tok(":"), _ident()]),
        _tok("]"),
    ]))
    return Node("brackets", SeparatedBy(
        member_bracket, _ws(optional=False), optional=True, allow_trail=False,
    ))


def _path() -> Node:
    return Node("path", Sequence([
        Optional(_tok("::", property="root")),
        SeparatedBy(
            _ident(property="name"), _tok("::"), optional=False, allow_trail=True,
        ),
    ]))


def _arg() -> Node:
    return Node("arg", Sequence([
        _ref("brackets"),
        _ref("path"),
        _ref("brackets"),
        Optional(_ref("repeated_arguments")),
    ]))


def _arguments() -> Node:
    item = Select([
        Number(allow_underscore=True),
        Text(allow_empty=True),
        _ref("arguments"),
        _ref("member_lambda"),
        _ref("lambda"),
        _ref("arg"),
    ])
    return Node("arguments", Sequence([
        _tok("("),
        _ws(),
        SeparatedBy(
            item,
            Sequence([_tok(","), _ws(optional=False)]),
            optional=True,
            allow_trail=True,
        ),
        _ws(),
        _tok(")"),
    ]))


def _repeated_arguments() -> Node:
    return Node("repeated_arguments", Repeat(_ref("arguments")))


def _comment() -> Node:
    return Node("comment", Sequence([
        _ws(),
        _tok("//"),
        UntilAny("\n", optional=True),
    ]))


def _lambda() -> Node:
    return Node("lambda", Sequence([
        _ws(),
        Optional(_keyword("fn")),
        _ident(optional=True, property="name"),
        _ws(),
        _ref("brackets"),
        _ref("repeated_arguments"),
        _ws(optional=False),
        _tok("->"),
        _ws(optional=False),
        _ref("arg"),
        _ws(),
    ]))


def _fn() -> Node:
    return Node("fn", Sequence([
        _pub(),
        _ref("lambda"),
        _tok(";"),
        _ws(),
        Optional(_ref("comment")),
    ]))


def _use() -> Node:
    return Node("use", Sequence([
        _ws(),
        _pub(),
        _tok("use"),
        _ws(optional=False),
        _ref("path"),
        Optional(_tok("*")),
        _tok(";"),
    ]))


def _module() -> Node:
    return Node("module", Sequence([
        _ws(),
        _pub(),
        _tok("mod"),
        _ws(optional=False),
        _ident(optional=True, property="name"),
        _tok(";"),
    ]))


def _member_lambda() -> Node:
    return Node("member_lambda", Sequence([
        _ref("arg"),
        _ws(),
        _tok(":"),
        _ws(optional=False),
        _ref("arg"),
    ]))


def _member() -> Node:
    return Node("member", Sequence([
        _ref("member_lambda"),
        _tok(";"),
    ]))


def _number_rules(roots: Iterable[Rule], start: int = 100, step: int = 100) -> None:
    """Give every rule below ``roots`` a distinct debug id, in declaration order."""
    next_id = start
    for root in roots:
        pending = [root]
        while pending:
            rule = pending.pop()
            rule.debug_id = next_id
            next_id += step
            pending.extend(reversed(list(rule.children())))


# Tried in order; earlier alternatives take precedence.
LINE_RULES = ("comment", "use", "module", "member", "fn")


def build_grammar() -> Grammar:
    """Build and resolve a fresh copy of the notation grammar."""
    table = RuleTable([
        _comment(),
        _use(),
        _module(),
        _fn(),
        _lambda(),
        _arg(),
        _member(),
        _member_lambda(),
        _brackets(),
        _arguments(),
        _path(),
        _repeated_arguments(),
    ])
    top = Lines(Select([_ref(name) for name in LINE_RULES]))
    table.resolve(top)
    _number_rules([*table, top])
    return Grammar(table, top)


@cache
def default_grammar() -> Grammar:
    """The shared notation grammar; read-only once built."""
    return build_grammar()
