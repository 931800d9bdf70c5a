"""Per-page text layout index."""

from .index import (
    MIN_RECT_SIZE,
    build_document_index,
    build_page_corpus,
    fragments_overlapping,
    range_rects,
    slice_fragment_rect,
    text_metrics,
)
from .models import DocumentTextIndex, PageTextCorpus, RawFragment, TextFragment, TextMetrics

__all__ = [
    "DocumentTextIndex",
    "MIN_RECT_SIZE",
    "PageTextCorpus",
    "RawFragment",
    "TextFragment",
    "TextMetrics",
    "build_document_index",
    "build_page_corpus",
    "fragments_overlapping",
    "range_rects",
    "slice_fragment_rect",
    "text_metrics",
]
