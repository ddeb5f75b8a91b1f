"""
Shared record types
===================

Records produced by the extraction engine and consumed by callers.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Location:
    """Position of a match inside a source file (1-based line, 0-based column)."""
    file_path: str = ""
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class ExtractedString:
    """A newly minted key for a text value."""
    value: str
    key: str
    file_path: str
    line: int
    column: int


@dataclass(frozen=True)
class UsedExistingKey:
    """A text value that matched a key from an existing translation source."""
    value: str
    key: str
    file_path: str
    line: int
    column: int


@dataclass
class PatchSpan:
    """Replace ``[start, end)`` with ``replacement``.

    Offsets are relative to whatever coordinate space the planner that
    produced the span works in (file, block, wrapper or expression).
    """
    start: int
    end: int
    replacement: str
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def overlaps(self, other: "PatchSpan") -> bool:
        if self.start == self.end or other.start == other.end:
            # insertions only clash when strictly inside the other span
            point, span = (self, other) if self.start == self.end else (other, self)
            if point.start == point.end and span.start == span.end:
                return point.start == span.start
            return span.start < point.start < span.end
        return self.start < other.end and other.start < self.end


@dataclass
class ChangeDetail:
    """A single substitution reported in minimal-patch mode."""
    file_path: str
    original: str
    replacement: str
    start: int
    end: int
    line: int
    column: int
    end_line: int
    end_column: int
    description: Optional[str] = None
