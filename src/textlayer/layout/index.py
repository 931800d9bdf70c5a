"""Build flat page offset spaces from ordered text fragments."""

from __future__ import annotations

from typing import Iterable, Mapping

from textlayer.geometry.rects import Rect
from textlayer.layout.models import (
    DocumentTextIndex,
    PageTextCorpus,
    RawFragment,
    TextFragment,
    TextMetrics,
)


# Rects thinner than this carry no visible highlight.
MIN_RECT_SIZE = 0.01

_DEFAULT_METRICS = TextMetrics()


def build_page_corpus(page_number: int, fragments: Iterable[RawFragment]) -> PageTextCorpus:
    """Join fragment texts with single spaces and record each fragment's range.

    Fragments with empty text are dropped; the remaining order is kept as the
    reading order.
    """

    parts: list[str] = []
    built: list[TextFragment] = []
    cursor = 0

    for raw in fragments:
        if not raw.text:
            continue
        start = cursor
        end = start + len(raw.text)
        built.append(
            TextFragment(
                text=raw.text,
                start=start,
                end=end,
                rect=Rect(x=raw.x, y=raw.y, width=max(0.0, raw.width), height=max(0.0, raw.height)),
            )
        )
        parts.append(raw.text)
        cursor = end + 1

    return PageTextCorpus(page_number=page_number, full_text=" ".join(parts), fragments=tuple(built))


def build_document_index(
    document_id: str,
    pages: Mapping[int, Iterable[RawFragment]],
) -> DocumentTextIndex:
    return DocumentTextIndex(
        document_id=document_id,
        pages={number: build_page_corpus(number, fragments) for number, fragments in pages.items()},
    )


def fragments_overlapping(corpus: PageTextCorpus, start: int, end: int) -> list[TextFragment]:
    return [fragment for _, fragment in corpus.fragments_overlapping(start, end)]


def slice_fragment_rect(fragment: TextFragment, start: int, end: int) -> Rect:
    """Approximate the rect of ``[start, end)`` inside one fragment.

    Glyphs are assumed to be equally wide, so the X extent is interpolated
    from the character counts. No per-glyph widths are available.
    """

    overlap_start = max(start, fragment.start)
    overlap_end = min(end, fragment.end)
    if overlap_start <= fragment.start and overlap_end >= fragment.end:
        return fragment.rect

    length = fragment.length
    if length <= 0:
        return Rect(x=fragment.rect.x, y=fragment.rect.y, width=0.0, height=fragment.rect.height)

    char_width = fragment.rect.width / length
    return Rect(
        x=fragment.rect.x + char_width * (overlap_start - fragment.start),
        y=fragment.rect.y,
        width=char_width * max(0, overlap_end - overlap_start),
        height=fragment.rect.height,
    )


def range_rects(corpus: PageTextCorpus, start: int, end: int) -> list[Rect]:
    """Per-fragment rects covering the page offset range ``[start, end)``."""

    rects: list[Rect] = []
    for fragment in fragments_overlapping(corpus, start, end):
        rect = slice_fragment_rect(fragment, start, end)
        if rect.width < MIN_RECT_SIZE or rect.height < MIN_RECT_SIZE:
            continue
        rects.append(rect)
    return rects


def text_metrics(corpus: PageTextCorpus) -> TextMetrics:
    heights: list[float] = []
    char_widths: list[float] = []

    for fragment in corpus.fragments:
        if not fragment.text.strip() or fragment.rect.height <= 0:
            continue
        heights.append(fragment.rect.height)
        if fragment.rect.width > 0:
            char_widths.append(fragment.rect.width / len(fragment.text))

    return TextMetrics(
        line_height=sum(heights) / len(heights) if heights else _DEFAULT_METRICS.line_height,
        average_char_width=(
            sum(char_widths) / len(char_widths) if char_widths else _DEFAULT_METRICS.average_char_width
        ),
    )
