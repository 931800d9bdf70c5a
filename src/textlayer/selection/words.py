"""Point resolution and word selection over a page's fragments."""

from __future__ import annotations

import math
import re

from textlayer.layout.index import text_metrics
from textlayer.layout.models import PageTextCorpus, TextFragment, TextMetrics
from textlayer.selection.models import SelectionEndpoint, SelectionRange


# Letters and digits only; underscore does not join words here.
_WORD_CHAR_RE = re.compile(r"[^\W_]")

NEAREST_SEARCH_LINES = 3.0
VERTICAL_DISTANCE_WEIGHT = 1.5
WORD_GAP_CHAR_WIDTHS = 1.5
SAME_LINE_TOLERANCE = 0.5
# Biases a click towards the next glyph once it is past ~65% of the current one.
CLICK_ROUNDING_BIAS = 0.35


def is_word_char(char: str) -> bool:
    return bool(char) and bool(_WORD_CHAR_RE.match(char))


def _offset_for_x(fragment: TextFragment, x: float, metrics: TextMetrics) -> int:
    text_length = len(fragment.text)
    if text_length == 0:
        return 0
    char_width = fragment.rect.width / text_length if fragment.rect.width > 0 else metrics.average_char_width
    relative_x = min(max(x, fragment.rect.x), fragment.rect.right) - fragment.rect.x
    offset = math.floor(relative_x / char_width + CLICK_ROUNDING_BIAS)
    return max(0, min(offset, text_length))


def _axis_distance(value: float, low: float, high: float) -> float:
    if value < low:
        return low - value
    if value > high:
        return value - high
    return 0.0


def _text_fragments(corpus: PageTextCorpus) -> list[tuple[int, TextFragment]]:
    return [(index, fragment) for index, fragment in enumerate(corpus.fragments) if fragment.text.strip()]


def hit_fragment(
    corpus: PageTextCorpus,
    x: float,
    y: float,
    metrics: TextMetrics | None = None,
) -> SelectionEndpoint | None:
    """Resolve a point that lies inside a non-blank fragment's rect."""

    page_metrics = metrics or text_metrics(corpus)
    for index, fragment in _text_fragments(corpus):
        if fragment.rect.contains_point(x, y):
            return SelectionEndpoint(corpus.page_number, index, _offset_for_x(fragment, x, page_metrics))
    return None


def resolve_point(
    corpus: PageTextCorpus,
    x: float,
    y: float,
    metrics: TextMetrics | None = None,
) -> SelectionEndpoint | None:
    """Resolve a page-local point to ``(fragment, offset)``.

    A fragment whose rect contains the point wins. Otherwise the nearest
    fragment within a few line heights is used, weighting vertical distance
    more than horizontal. Returns None when nothing is close enough.
    """

    page_metrics = metrics or text_metrics(corpus)
    direct = hit_fragment(corpus, x, y, page_metrics)
    if direct is not None:
        return direct

    candidates = _text_fragments(corpus)
    radius = page_metrics.line_height * NEAREST_SEARCH_LINES
    best: tuple[float, int, TextFragment] | None = None
    for index, fragment in candidates:
        dy = _axis_distance(y, fragment.rect.y, fragment.rect.bottom)
        if dy > radius:
            continue
        dx = _axis_distance(x, fragment.rect.x, fragment.rect.right)
        score = dx + dy * VERTICAL_DISTANCE_WEIGHT
        if best is None or score < best[0]:
            best = (score, index, fragment)

    if best is None:
        return None
    _, index, fragment = best
    return SelectionEndpoint(corpus.page_number, index, _offset_for_x(fragment, x, page_metrics))


def joins_word(left: TextFragment, right: TextFragment, metrics: TextMetrics) -> bool:
    """Return True when ``right`` continues a word that ``left`` ends.

    PDF producers often split one word into several fragments; they are
    stitched back when they sit on the same line, nearly touch, and the
    boundary characters are both word characters.
    """

    if not left.text or not right.text:
        return False
    if abs(right.rect.y - left.rect.y) > metrics.line_height * SAME_LINE_TOLERANCE:
        return False
    gap = right.rect.x - left.rect.right
    if gap > metrics.average_char_width * WORD_GAP_CHAR_WIDTHS:
        return False
    return is_word_char(left.text[-1]) and is_word_char(right.text[0])


def _extend_backward(
    corpus: PageTextCorpus,
    fragment_index: int,
    metrics: TextMetrics,
) -> tuple[int, int]:
    start_index, start_offset = fragment_index, 0
    current = corpus.fragments[fragment_index]

    for index in range(fragment_index - 1, -1, -1):
        previous = corpus.fragments[index]
        if not joins_word(previous, current, metrics):
            break
        offset = len(previous.text) - 1
        while offset > 0 and is_word_char(previous.text[offset - 1]):
            offset -= 1
        start_index, start_offset = index, offset
        current = previous
        if offset > 0:
            break

    return start_index, start_offset


def _extend_forward(
    corpus: PageTextCorpus,
    fragment_index: int,
    metrics: TextMetrics,
) -> tuple[int, int]:
    current = corpus.fragments[fragment_index]
    end_index, end_offset = fragment_index, len(current.text)

    for index in range(fragment_index + 1, len(corpus.fragments)):
        following = corpus.fragments[index]
        if not joins_word(current, following, metrics):
            break
        offset = 1
        while offset < len(following.text) and is_word_char(following.text[offset]):
            offset += 1
        end_index, end_offset = index, offset
        current = following
        if offset < len(following.text):
            break

    return end_index, end_offset


def select_word_at(
    corpus: PageTextCorpus,
    x: float,
    y: float,
    metrics: TextMetrics | None = None,
) -> SelectionRange | None:
    """Select the word under a point, stitching split fragments together."""

    page_metrics = metrics or text_metrics(corpus)
    endpoint = resolve_point(corpus, x, y, page_metrics)
    if endpoint is None:
        return None

    text = corpus.fragment_text(endpoint.fragment_index)
    if not text:
        return None

    offset = min(endpoint.char_offset, len(text))
    if offset > 0 and offset == len(text):
        offset -= 1
    if not is_word_char(text[offset]):
        if offset > 0 and is_word_char(text[offset - 1]):
            offset -= 1
        else:
            return None

    start = offset
    while start > 0 and is_word_char(text[start - 1]):
        start -= 1
    end = offset
    while end < len(text) and is_word_char(text[end]):
        end += 1

    start_index, start_offset = endpoint.fragment_index, start
    if start == 0:
        start_index, start_offset = _extend_backward(corpus, endpoint.fragment_index, page_metrics)

    end_index, end_offset = endpoint.fragment_index, end
    if end == len(text):
        end_index, end_offset = _extend_forward(corpus, endpoint.fragment_index, page_metrics)

    return SelectionRange(
        anchor=SelectionEndpoint(corpus.page_number, start_index, start_offset),
        focus=SelectionEndpoint(corpus.page_number, end_index, end_offset),
    )
