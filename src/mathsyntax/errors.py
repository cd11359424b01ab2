"""Parse failure causes, syntax check errors and diagnostic rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from mathsyntax.source import range_to_span

if TYPE_CHECKING:
    from mathsyntax.source import Range, Span


# ── Parse failure causes ──────────────────────────────────────────


class ParseErrorKind(Enum):
    EXPECTED_TOKEN = "E101"
    EXPECTED_WHITESPACE = "E102"
    EXPECTED_SOMETHING = "E103"
    EXPECTED_NUMBER = "E104"
    EXPECTED_TEXT = "E105"
    EMPTY_TEXT_NOT_ALLOWED = "E106"
    INVALID_ESCAPE = "E107"
    UNTERMINATED_TEXT = "E108"
    NO_ALTERNATIVES = "E109"
    EXPECTED_NEW_LINE = "E110"
    UNCONSUMED_INPUT = "E111"

    @property
    def code(self) -> str:
        return self.value


@dataclass(frozen=True)
class ParseError:
    """Why a rule could not match, and where."""

    kind: ParseErrorKind
    range: Range
    detail: str = ""
    debug_id: int | None = None

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def offset(self) -> int:
        return self.range.offset

    def message(self) -> str:
        kind = self.kind
        if kind is ParseErrorKind.EXPECTED_TOKEN:
            return f"expected token `{self.detail}`"
        if kind is ParseErrorKind.EXPECTED_WHITESPACE:
            return "expected whitespace"
        if kind is ParseErrorKind.EXPECTED_SOMETHING:
            return "expected something"
        if kind is ParseErrorKind.EXPECTED_NUMBER:
            return "expected number"
        if kind is ParseErrorKind.EXPECTED_TEXT:
            return "expected text"
        if kind is ParseErrorKind.EMPTY_TEXT_NOT_ALLOWED:
            return "empty text not allowed"
        if kind is ParseErrorKind.INVALID_ESCAPE:
            return f"invalid escape sequence `{self.detail}`"
        if kind is ParseErrorKind.UNTERMINATED_TEXT:
            return "unterminated text"
        if kind is ParseErrorKind.NO_ALTERNATIVES:
            return "no rule alternatives"
        if kind is ParseErrorKind.EXPECTED_NEW_LINE:
            return "expected new line"
        return "unexpected trailing input"

    def __str__(self) -> str:
        return f"{self.message()} at {self.range}"


def deepest(first: ParseError | None, second: ParseError | None) -> ParseError | None:
    """Pick the error that got furthest into the input.

    Ties keep ``first``, so callers pass the hard failure first and the
    recorded errors of abandoned attempts second.
    """
    if first is None:
        return second
    if second is None:
        return first
    if second.offset > first.offset:
        return second
    return first


# ── Syntax check errors ───────────────────────────────────────────


class SyntaxCheckError(Exception):
    """Base class for failures raised while checking notation files."""


class GrammarError(SyntaxCheckError):
    """A grammar was built incorrectly (duplicate or unresolved rule names)."""


class SourceReadError(SyntaxCheckError):
    """A source file could not be read or is not valid UTF-8."""

    def __init__(self, path: Path, cause: OSError | UnicodeDecodeError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"could not read {path}: {cause}")

    @property
    def reason(self) -> str:
        if isinstance(self.cause, OSError) and self.cause.strerror:
            return self.cause.strerror
        return str(self.cause)

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code="E001",
            message=f"could not read `{self.path}`: {self.reason}",
        )


class MetaError(SyntaxCheckError):
    """A source file does not conform to the grammar."""

    def __init__(self, path: Path, source: str, range: Range, error: ParseError) -> None:
        self.path = path
        self.source = source
        self.range = range
        self.error = error
        super().__init__(f"{path}: {error}")

    @property
    def span(self) -> Span:
        return range_to_span(str(self.path), self.source, self.range)

    def to_diagnostic(self) -> Diagnostic:
        notes = []
        if self.error.debug_id is not None:
            notes.append(f"in rule #{self.error.debug_id}")
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.error.code,
            message=self.error.message(),
            labels=[DiagnosticLabel(span=self.span, message="")],
            notes=notes,
        )


# ── Diagnostics ───────────────────────────────────────────────────


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._file_cache: dict[str, list[str]] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def add_source(self, filename: str, text: str) -> None:
        """Register in-memory source text so it is not re-read from disk."""
        self._file_cache[filename] = text.splitlines()

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            try:
                path = Path(filename)
                if path.is_file():
                    self._file_cache[filename] = path.read_text(encoding="utf-8").splitlines()
                else:
                    self._file_cache[filename] = []
            except (OSError, UnicodeDecodeError):
                self._file_cache[filename] = []
        lines = self._file_cache[filename]
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E101]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            gutter = f"{span.start_line:>4}"
            lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                lines.append(
                    f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
                )

            if span.start_line == span.end_line:
                caret_len = max(1, span.end_col - span.start_col + 1)
                padding = " " * (span.start_col - 1)
                carets = "^" * caret_len
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                    f"{padding}{self._c(color)}{carets}{self._c(_RESET)}"
                )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)
