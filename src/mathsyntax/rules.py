"""Meta rules: the parse outcome type and the primitive matchers.

Every rule parses ``chars`` (the whole source text) starting at ``offset``
and returns a :class:`ParseResult`.  Rules never raise for ordinary
mismatches; a failed match is a value carrying a :class:`ParseError`.
Matched property values are appended to the :class:`Tokenizer` log on top
of the ``state`` checkpoint the caller passes in.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from mathsyntax.errors import ParseError, ParseErrorKind
from mathsyntax.source import Range
from mathsyntax.tokens import MetaKind, MetaToken, Tokenizer, TokenizerState

_DIGITS = frozenset("0123456789")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


@dataclass(frozen=True)
class ParseResult:
    """Outcome of applying a rule at an offset.

    On success ``range`` is the consumed range, ``state`` the token log
    checkpoint after the match and ``error`` the furthest failure recorded
    on an abandoned path (kept for diagnostics).  On failure ``error`` is
    the cause and ``range`` its location.
    """

    ok: bool
    range: Range
    state: TokenizerState
    error: ParseError | None = None

    @classmethod
    def success(
        cls,
        range: Range,
        state: TokenizerState,
        error: ParseError | None = None,
    ) -> ParseResult:
        return cls(True, range, state, error)

    @classmethod
    def failure(cls, error: ParseError, state: TokenizerState) -> ParseResult:
        return cls(False, error.range, state, error)


@dataclass(eq=False)
class Rule:
    """Base class of every primitive and combinator."""

    debug_id: int | None = field(default=None, kw_only=True)

    def parse(
        self,
        tokenizer: Tokenizer,
        state: TokenizerState,
        chars: str,
        offset: int,
    ) -> ParseResult:
        raise NotImplementedError

    def children(self) -> Iterator[Rule]:
        """Yield directly nested rules (named references are not followed)."""
        return iter(())

    def _error(self, kind: ParseErrorKind, range: Range, detail: str = "") -> ParseError:
        return ParseError(kind, range, detail, self.debug_id)

    def _fail(
        self,
        kind: ParseErrorKind,
        range: Range,
        state: TokenizerState,
        detail: str = "",
    ) -> ParseResult:
        return ParseResult.failure(self._error(kind, range, detail), state)


def _emit(
    tokenizer: Tokenizer,
    state: TokenizerState,
    property: str | None,
    rng: Range,
    kind: MetaKind,
    value: bool | float | str,
) -> TokenizerState:
    if property is None:
        return state
    return tokenizer.emit(state, MetaToken(rng, kind, property, value))


# ── Primitive matchers ────────────────────────────────────────────


@dataclass(eq=False)
class Token(Rule):
    """Matches ``text`` verbatim, or anything up to it when ``inverted``."""

    text: str
    inverted: bool = False
    property: str | None = None

    def parse(self, tokenizer, state, chars, offset):
        if self.inverted:
            end = chars.find(self.text, offset)
            if end == -1:
                end = len(chars)
            if end == offset:
                return self._fail(
                    ParseErrorKind.EXPECTED_SOMETHING, Range.empty(offset), state,
                )
            rng = Range(offset, end - offset)
        else:
            if not chars.startswith(self.text, offset):
                return self._fail(
                    ParseErrorKind.EXPECTED_TOKEN, Range.empty(offset), state, self.text,
                )
            rng = Range(offset, len(self.text))
        state = _emit(tokenizer, state, self.property, rng, MetaKind.BOOL, not self.inverted)
        return ParseResult.success(rng, state)


@dataclass(eq=False)
class Whitespace(Rule):
    """Matches a run of whitespace, required unless ``optional``."""

    optional: bool = False

    def parse(self, tokenizer, state, chars, offset):
        end = offset
        n = len(chars)
        while end < n and chars[end].isspace():
            end += 1
        if end == offset and not self.optional:
            return self._fail(
                ParseErrorKind.EXPECTED_WHITESPACE, Range.empty(offset), state,
            )
        return ParseResult.success(Range(offset, end - offset), state)


@dataclass(eq=False)
class UntilAny(Rule):
    """Matches everything up to the first of ``any_characters``."""

    any_characters: str
    optional: bool = False
    property: str | None = None

    def _stops_at(self, ch: str) -> bool:
        return ch in self.any_characters

    def parse(self, tokenizer, state, chars, offset):
        end = offset
        n = len(chars)
        while end < n and not self._stops_at(chars[end]):
            end += 1
        if end == offset and not self.optional:
            return self._fail(
                ParseErrorKind.EXPECTED_SOMETHING, Range.empty(offset), state,
            )
        rng = Range(offset, end - offset)
        state = _emit(
            tokenizer, state, self.property, rng, MetaKind.STRING, chars[offset:end],
        )
        return ParseResult.success(rng, state)


@dataclass(eq=False)
class UntilAnyOrWhitespace(UntilAny):
    """Like :class:`UntilAny`, but whitespace also ends the match."""

    def _stops_at(self, ch: str) -> bool:
        return ch in self.any_characters or ch.isspace()


def _digit_run(chars: str, pos: int, allow_underscore: bool) -> int:
    """Return the end of the digit run at ``pos`` (``pos`` if there is none).

    Underscores are only taken between two digits.
    """
    n = len(chars)
    end = pos
    while end < n:
        ch = chars[end]
        if ch in _DIGITS:
            end += 1
        elif (
            ch == "_"
            and allow_underscore
            and end > pos
            and end + 1 < n
            and chars[end + 1] in _DIGITS
        ):
            end += 1
        else:
            break
    return end


@dataclass(eq=False)
class Number(Rule):
    """Matches a decimal numeral such as ``-1``, ``2.5`` or ``1_000e-3``."""

    allow_underscore: bool = False
    property: str | None = None

    def parse(self, tokenizer, state, chars, offset):
        n = len(chars)
        pos = offset
        if pos < n and chars[pos] in "+-":
            pos += 1
        end = _digit_run(chars, pos, self.allow_underscore)
        if end == pos:
            return self._fail(
                ParseErrorKind.EXPECTED_NUMBER, Range.empty(offset), state,
            )
        if end < n and chars[end] == ".":
            frac_end = _digit_run(chars, end + 1, self.allow_underscore)
            if frac_end > end + 1:
                end = frac_end
        if end < n and chars[end] in "eE":
            exp = end + 1
            if exp < n and chars[exp] in "+-":
                exp += 1
            exp_end = _digit_run(chars, exp, self.allow_underscore)
            if exp_end > exp:
                end = exp_end
        rng = Range(offset, end - offset)
        value = float(chars[offset:end].replace("_", ""))
        state = _emit(tokenizer, state, self.property, rng, MetaKind.NUMBER, value)
        return ParseResult.success(rng, state)


@dataclass(eq=False)
class Text(Rule):
    """Matches a double quoted text literal with JSON-style escapes."""

    allow_empty: bool = True
    property: str | None = None

    def parse(self, tokenizer, state, chars, offset):
        n = len(chars)
        if offset >= n or chars[offset] != '"':
            return self._fail(ParseErrorKind.EXPECTED_TEXT, Range.empty(offset), state)

        pos = offset + 1
        out: list[str] = []
        while True:
            if pos >= n:
                return self._fail(
                    ParseErrorKind.UNTERMINATED_TEXT, Range(offset, pos - offset), state,
                )
            ch = chars[pos]
            if ch == '"':
                break
            if ch != "\\":
                out.append(ch)
                pos += 1
                continue
            esc = chars[pos + 1] if pos + 1 < n else ""
            if esc in _ESCAPES:
                out.append(_ESCAPES[esc])
                pos += 2
            elif esc == "u" and len(chars[pos + 2 : pos + 6]) == 4 and all(
                c in _HEX_DIGITS for c in chars[pos + 2 : pos + 6]
            ):
                out.append(chr(int(chars[pos + 2 : pos + 6], 16)))
                pos += 6
            else:
                bad = chars[pos : pos + 2]
                return self._fail(
                    ParseErrorKind.INVALID_ESCAPE, Range(pos, len(bad)), state, bad,
                )

        value = "".join(out)
        rng = Range(offset, pos + 1 - offset)
        if not value and not self.allow_empty:
            return self._fail(ParseErrorKind.EMPTY_TEXT_NOT_ALLOWED, rng, state)
        state = _emit(tokenizer, state, self.property, rng, MetaKind.STRING, value)
        return ParseResult.success(rng, state)
