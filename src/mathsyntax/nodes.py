"""Named rules and the registry that ties recursive references together.

Grammar rules refer to each other by name through :class:`NodeRef`, so a
cyclic grammar is just a table of :class:`Node` objects.  After every
node is registered, :meth:`RuleTable.resolve` binds each reference to its
target once; parsing only follows the bound links.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

from mathsyntax.errors import GrammarError
from mathsyntax.rules import ParseResult, Rule
from mathsyntax.source import Range
from mathsyntax.tokens import MetaKind, MetaToken, Tokenizer, TokenizerState


@dataclass(eq=False)
class Node(Rule):
    """A named rule; brackets its tokens with start/end node markers."""

    name: str
    rule: Rule

    def children(self) -> Iterator[Rule]:
        yield self.rule

    def parse(self, tokenizer, state, chars, offset):
        key = (self, offset)
        cached = tokenizer.memo.get(key)
        if cached is not None:
            return _replay(tokenizer, state, *cached)

        start_state = state
        state = tokenizer.emit(
            state, MetaToken(Range.empty(offset), MetaKind.START_NODE, self.name),
        )
        result = self.rule.parse(tokenizer, state, chars, offset)
        if not result.ok:
            tokenizer.rollback(start_state)
            failure = ParseResult.failure(result.error, start_state)
            tokenizer.memo[key] = (failure, [])
            return failure
        tokenizer.tokens[start_state] = replace(
            tokenizer.tokens[start_state], range=result.range,
        )
        state = tokenizer.emit(
            result.state, MetaToken(result.range, MetaKind.END_NODE, self.name),
        )
        success = ParseResult.success(result.range, state, result.error)
        tokenizer.memo[key] = (success, tokenizer.tokens[start_state:state])
        return success


def _replay(
    tokenizer: Tokenizer,
    state: TokenizerState,
    result: ParseResult,
    tokens: list[MetaToken],
) -> ParseResult:
    """Re-emit a cached outcome on top of ``state``."""
    tokenizer.rollback(state)
    if not result.ok:
        return ParseResult.failure(result.error, state)
    tokenizer.tokens.extend(tokens)
    return ParseResult.success(result.range, len(tokenizer), result.error)


@dataclass(eq=False)
class NodeRef(Rule):
    """A reference to a named rule, bound by :meth:`RuleTable.resolve`."""

    name: str
    node: Node | None = field(default=None, repr=False)

    def parse(self, tokenizer, state, chars, offset):
        if self.node is None:
            raise GrammarError(f"rule reference `{self.name}` was never resolved")
        return self.node.parse(tokenizer, state, chars, offset)


class RuleTable:
    """Registry of named rules, keyed by unique name."""

    def __init__(self, nodes: Iterable[Node] = ()) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            self.add(node)

    def add(self, node: Node) -> None:
        if node.name in self._nodes:
            raise GrammarError(f"duplicate rule `{node.name}`")
        self._nodes[node.name] = node

    def get(self, name: str) -> Node:
        try:
            return self._nodes[name]
        except KeyError:
            raise GrammarError(f"undefined rule `{name}`") from None

    def names(self) -> list[str]:
        return list(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def resolve(self, *roots: Rule) -> None:
        """Bind every reference reachable from the table and ``roots``.

        References are not followed during the walk, which keeps it finite
        on cyclic grammars.  Raises :class:`GrammarError` for a name that is
        not in the table.
        """
        pending: list[Rule] = [node.rule for node in self._nodes.values()]
        pending.extend(roots)
        seen: set[int] = set()
        while pending:
            rule = pending.pop()
            if id(rule) in seen:
                continue
            seen.add(id(rule))
            if isinstance(rule, NodeRef):
                rule.node = self.get(rule.name)
                continue
            pending.extend(rule.children())
