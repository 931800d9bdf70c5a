"""Local in-page text search producing highlight rectangles."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from textlayer.geometry.rects import DEFAULT_LINE_TOLERANCE, Rect, merge_into_lines
from textlayer.layout.index import range_rects
from textlayer.layout.models import DocumentTextIndex, PageTextCorpus
from textlayer.search.normalize import NormalizedView, SearchOptions, is_word_char, normalize

logger = logging.getLogger(__name__)

CONTEXT_RADIUS = 40


@dataclass(slots=True)
class Match:
    start: int
    end: int
    text: str
    rects: list[Rect] = field(default_factory=list)


@dataclass(slots=True)
class DocumentMatch:
    document_id: str
    page_number: int
    match_index: int
    start: int
    end: int
    text: str
    context_before: str
    context_after: str
    rects: list[Rect] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "document_id": self.document_id,
            "page_number": self.page_number,
            "match_index": self.match_index,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "context_before": self.context_before,
            "context_after": self.context_after,
            "rects": [rect.to_dict() for rect in self.rects],
        }


def _is_whole_word(text: str, start: int, end: int) -> bool:
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    return not is_word_char(before) and not is_word_char(after)


def _iter_match_starts(view: NormalizedView, query: str, options: SearchOptions):
    text = view.normalized
    step = 1 if options.allow_overlapping_matches else len(query)
    position = text.find(query)

    while position != -1:
        end = position + len(query)
        if not options.match_whole_word or _is_whole_word(text, position, end):
            yield position
            position = text.find(query, position + step)
        else:
            position = text.find(query, position + 1)


def search_page(
    corpus: PageTextCorpus,
    query: str,
    options: SearchOptions | None = None,
    *,
    y_tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> list[Match]:
    """Find every occurrence of ``query`` in one page.

    Matches are reported in original ``full_text`` offsets. Their rects are
    the overlapped fragment rects (sliced proportionally for partial
    overlaps) merged into one rect per line.
    """

    opts = options or SearchOptions()
    normalized_query = normalize(query, opts).normalized
    if not normalized_query:
        return []

    view = normalize(corpus.full_text, opts)
    if not view.normalized:
        return []

    matches: list[Match] = []
    for position in _iter_match_starts(view, normalized_query, opts):
        start, end = view.original_span(position, len(normalized_query))
        matches.append(
            Match(
                start=start,
                end=end,
                text=corpus.full_text[start:end],
                rects=merge_into_lines(range_rects(corpus, start, end), y_tolerance),
            )
        )
    return matches


def search_document(
    index: DocumentTextIndex,
    query: str,
    options: SearchOptions | None = None,
    *,
    y_tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> list[DocumentMatch]:
    """Search all indexed pages in page order with document-wide numbering."""

    results: list[DocumentMatch] = []
    for page_number in index.page_numbers():
        corpus = index.pages[page_number]
        text = corpus.full_text
        for match in search_page(corpus, query, options, y_tolerance=y_tolerance):
            results.append(
                DocumentMatch(
                    document_id=index.document_id,
                    page_number=page_number,
                    match_index=len(results),
                    start=match.start,
                    end=match.end,
                    text=match.text,
                    context_before=text[max(0, match.start - CONTEXT_RADIUS) : match.start],
                    context_after=text[match.end : match.end + CONTEXT_RADIUS],
                    rects=match.rects,
                )
            )

    logger.debug(
        "Search for %r in %s matched %d times across %d pages",
        query,
        index.document_id,
        len(results),
        len(index.pages),
    )
    return results
