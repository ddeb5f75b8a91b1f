"""
Positional patch algebra.

Every rewrite in the engine is expressed as a list of ``PatchSpan`` objects
that are spliced into the untouched source. Spans are applied from the end of
the text backwards so earlier offsets never shift.
"""

import logging
from typing import Iterable, List, Optional

from .types import ChangeDetail, PatchSpan

logger = logging.getLogger(__name__)

TEMPLATE_WRAPPER_OPEN = "<template>"
TEMPLATE_WRAPPER_CLOSE = "</template>"


def apply_patches(text: str, spans: Iterable[PatchSpan], offset: int = 0) -> str:
    """Apply non-overlapping spans to ``text``.

    ``offset`` is subtracted from every span before splicing. It converts
    spans computed against a synthetic wrapper (``<template>`` + block) back
    into coordinates of the block itself.

    The result does not depend on the order of ``spans``.
    """
    ordered = sorted(spans, key=lambda s: (s.start, s.end), reverse=True)
    if not ordered:
        return text

    result = text
    for span in ordered:
        start = span.start - offset
        end = span.end - offset
        if start < 0 or end > len(result) or start > end:
            raise ValueError(
                f"Patch span [{span.start}, {span.end}) out of range for text of length {len(text)}"
            )
        result = result[:start] + span.replacement + result[end:]
    return result


class SpanCollector:
    """Collects spans for one coordinate space and rejects overlaps."""

    def __init__(self):
        self.spans: List[PatchSpan] = []

    def __len__(self) -> int:
        return len(self.spans)

    def __iter__(self):
        return iter(self.spans)

    def add(self, span: PatchSpan) -> bool:
        for existing in self.spans:
            if existing.overlaps(span):
                logger.debug(
                    f"Dropping overlapping span [{span.start}, {span.end}) "
                    f"(clashes with [{existing.start}, {existing.end}))"
                )
                return False
        self.spans.append(span)
        return True

    def extend(self, spans: Iterable[PatchSpan]) -> None:
        for span in spans:
            self.add(span)


def shift_spans(spans: Iterable[PatchSpan], delta: int, line_delta: int = 0) -> List[PatchSpan]:
    """Move spans into an enclosing coordinate space."""
    return [
        PatchSpan(
            start=s.start + delta,
            end=s.end + delta,
            replacement=s.replacement,
            line=s.line + line_delta,
            column=s.column,
            end_line=s.end_line + line_delta,
            end_column=s.end_column,
        )
        for s in spans
    ]


def to_change_details(
    text: str,
    spans: Iterable[PatchSpan],
    file_path: str,
    description: Optional[str] = None,
) -> List[ChangeDetail]:
    """Describe spans (already in ``text`` coordinates) as change records."""
    return [
        ChangeDetail(
            file_path=file_path,
            original=text[s.start:s.end],
            replacement=s.replacement,
            start=s.start,
            end=s.end,
            line=s.line,
            column=s.column,
            end_line=s.end_line,
            end_column=s.end_column,
            description=description,
        )
        for s in sorted(spans, key=lambda s: (s.start, s.end))
    ]
