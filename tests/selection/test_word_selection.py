from __future__ import annotations

from textlayer.layout.index import build_page_corpus
from textlayer.layout.models import PageTextCorpus, RawFragment, TextMetrics
from textlayer.selection.models import SelectionEndpoint, SelectionRange
from textlayer.selection.words import hit_fragment, joins_word, resolve_point, select_word_at


def _corpus(*fragments: RawFragment) -> PageTextCorpus:
    return build_page_corpus(1, list(fragments))


def _metrics() -> TextMetrics:
    return TextMetrics(line_height=12, average_char_width=10)


def _split_word_page() -> PageTextCorpus:
    return _corpus(
        RawFragment(text="Hel", x=0, y=0, width=30, height=12),
        RawFragment(text="lo", x=30, y=0, width=20, height=12),
        RawFragment(text="next", x=80, y=0, width=40, height=12),
    )


def test_direct_hit_uses_biased_character_rounding() -> None:
    corpus = _corpus(RawFragment(text="Hello", x=0, y=0, width=50, height=12))

    # 2.5 glyphs in: the 0.35 bias is not enough to reach the third boundary.
    assert resolve_point(corpus, 25, 6) == SelectionEndpoint(1, 0, 2)
    # 2.7 glyphs in: past ~65% of the glyph, so the caret lands after it.
    assert resolve_point(corpus, 27, 6) == SelectionEndpoint(1, 0, 3)
    assert resolve_point(corpus, 50, 6) == SelectionEndpoint(1, 0, 5)


def test_nearest_fragment_fallback_and_miss() -> None:
    corpus = _corpus(
        RawFragment(text="top", x=0, y=0, width=30, height=12),
        RawFragment(text="bottom", x=0, y=30, width=60, height=12),
    )

    assert hit_fragment(corpus, 10, 20) is None
    assert resolve_point(corpus, 10, 20) == SelectionEndpoint(1, 0, 1)
    assert resolve_point(corpus, 10, 40) == SelectionEndpoint(1, 1, 1)
    assert resolve_point(corpus, 10, 500) is None


def test_blank_fragments_are_never_resolved() -> None:
    corpus = _corpus(
        RawFragment(text="   ", x=0, y=0, width=30, height=12),
        RawFragment(text="word", x=100, y=0, width=40, height=12),
    )

    assert hit_fragment(corpus, 10, 6) is None
    assert resolve_point(corpus, 10, 6) == SelectionEndpoint(1, 1, 0)


def test_word_inside_one_fragment() -> None:
    corpus = _corpus(RawFragment(text="Hello world", x=0, y=0, width=110, height=12))

    word = select_word_at(corpus, 82, 6)

    assert word == SelectionRange(SelectionEndpoint(1, 0, 6), SelectionEndpoint(1, 0, 11))


def test_word_split_across_adjacent_fragments_is_stitched() -> None:
    corpus = _split_word_page()

    from_first = select_word_at(corpus, 5, 6)
    from_second = select_word_at(corpus, 45, 6)

    expected = SelectionRange(SelectionEndpoint(1, 0, 0), SelectionEndpoint(1, 1, 2))
    assert from_first == expected
    assert from_second == expected


def test_stitching_requires_same_line_and_small_gap() -> None:
    corpus = _split_word_page()
    metrics_page = _corpus(
        RawFragment(text="Hel", x=0, y=0, width=30, height=12),
        RawFragment(text="lo", x=30, y=20, width=20, height=12),
    )

    hel, lo, following = corpus.fragments
    assert joins_word(hel, lo, _metrics())
    assert not joins_word(lo, following, _metrics())
    assert not joins_word(metrics_page.fragments[0], metrics_page.fragments[1], _metrics())


def test_punctuation_and_spaces() -> None:
    corpus = _corpus(RawFragment(text="a, b", x=0, y=0, width=40, height=12))

    # On the comma, the word to its left is taken.
    assert select_word_at(corpus, 12, 6) == SelectionRange(SelectionEndpoint(1, 0, 0), SelectionEndpoint(1, 0, 1))
    # On the space after the comma there is no adjacent word character.
    assert select_word_at(corpus, 21, 6) is None


def test_underscore_does_not_join_words() -> None:
    corpus = _corpus(RawFragment(text="snake_case", x=0, y=0, width=100, height=12))

    assert select_word_at(corpus, 75, 6) == SelectionRange(SelectionEndpoint(1, 0, 6), SelectionEndpoint(1, 0, 10))
