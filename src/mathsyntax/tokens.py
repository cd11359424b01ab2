"""Meta token kinds and the token log used for backtracking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mathsyntax.rules import ParseResult
    from mathsyntax.source import Range


class MetaKind(Enum):
    START_NODE = auto()
    END_NODE = auto()
    BOOL = auto()
    NUMBER = auto()
    STRING = auto()


@dataclass(frozen=True)
class MetaToken:
    """A recorded match: a node boundary or a named property value."""

    range: Range
    kind: MetaKind
    name: str
    value: bool | float | str | None = None

    def __str__(self) -> str:
        if self.kind == MetaKind.START_NODE:
            return self.name
        if self.kind == MetaKind.END_NODE:
            return f"/{self.name}"
        return f"{self.name}: {self.value!r}"


# A checkpoint into the token log is its length at the time it was taken.
TokenizerState = int


class Tokenizer:
    """Append-only log of meta tokens with checkpoint/rollback.

    One tokenizer serves one parse; it also caches the outcome of every
    named rule tried so far so a rule is applied at most once per offset.
    """

    def __init__(self) -> None:
        self.tokens: list[MetaToken] = []
        # Named rule outcomes of this parse, keyed by (node, offset).
        self.memo: dict[tuple[object, int], tuple[ParseResult, list[MetaToken]]] = {}

    def __len__(self) -> int:
        return len(self.tokens)

    def checkpoint(self) -> TokenizerState:
        return len(self.tokens)

    def rollback(self, state: TokenizerState) -> None:
        """Discard every token emitted after ``state``."""
        del self.tokens[state:]

    def emit(
        self,
        state: TokenizerState,
        token: MetaToken,
    ) -> TokenizerState:
        """Append ``token`` on top of ``state`` and return the new state.

        Tokens left over from an abandoned attempt past ``state`` are
        dropped first, so the log always reflects the current path.
        """
        self.rollback(state)
        self.tokens.append(token)
        return len(self.tokens)
