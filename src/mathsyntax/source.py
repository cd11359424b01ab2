"""Source text representation, character ranges and span tracking."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Range:
    """A half-open range ``[offset, offset + length)`` of character offsets."""

    offset: int
    length: int

    @classmethod
    def empty(cls, offset: int) -> Range:
        return cls(offset, 0)

    @property
    def next_offset(self) -> int:
        return self.offset + self.length

    def is_empty(self) -> bool:
        return self.length == 0

    def contains(self, offset: int) -> bool:
        return self.offset <= offset < self.next_offset

    def union(self, other: Range) -> Range:
        """Return the smallest range covering both ranges."""
        start = min(self.offset, other.offset)
        end = max(self.next_offset, other.next_offset)
        return Range(start, end - start)

    def __str__(self) -> str:
        return f"{self.offset}..{self.next_offset}"


@dataclass(frozen=True)
class Span:
    """A line/column range within a source file (1-indexed, inclusive)."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"


def line_col(text: str, offset: int) -> tuple[int, int]:
    """Return the 1-indexed (line, column) of a character offset."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def range_to_span(file: str, text: str, rng: Range) -> Span:
    """Convert a character range into a line/column span.

    Empty ranges point at a single column so that diagnostics still show
    a caret where the parser stopped.
    """
    start_line, start_col = line_col(text, rng.offset)
    if rng.is_empty():
        return Span(file, start_line, start_col, start_line, start_col)
    end_line, end_col = line_col(text, rng.next_offset - 1)
    return Span(file, start_line, start_col, end_line, end_col)
