"""Offset-preserving normalization and local page search."""

from .engine import CONTEXT_RADIUS, DocumentMatch, Match, search_document, search_page
from .normalize import NormalizedView, SearchOptions, is_word_char, normalize, normalize_query

__all__ = [
    "CONTEXT_RADIUS",
    "DocumentMatch",
    "Match",
    "NormalizedView",
    "SearchOptions",
    "is_word_char",
    "normalize",
    "normalize_query",
    "search_document",
    "search_page",
]
