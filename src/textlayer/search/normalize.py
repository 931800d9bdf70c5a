from __future__ import annotations

from dataclasses import dataclass, field
import re
import unicodedata


_WORD_CHAR_RE = re.compile(r"\w")


@dataclass(frozen=True, slots=True)
class SearchOptions:
    match_case: bool = False
    match_whole_word: bool = False
    match_diacritics: bool = False
    # Resume scanning one character after a match start, so "aa" is found
    # twice in "aaa". Kept as the default to match existing results.
    allow_overlapping_matches: bool = True


@dataclass(frozen=True, slots=True)
class NormalizedView:
    """Search-normalized text plus the source offset of every character."""

    normalized: str
    index_map: list[int] = field(default_factory=list)

    def original_span(self, start: int, length: int) -> tuple[int, int]:
        """Map ``normalized[start:start + length]`` back to source offsets."""

        return self.index_map[start], self.index_map[start + length - 1] + 1


def is_word_char(char: str) -> bool:
    return bool(char) and bool(_WORD_CHAR_RE.match(char))


def _fold_char(char: str, options: SearchOptions) -> str:
    value = char
    if not options.match_diacritics:
        decomposed = unicodedata.normalize("NFD", value)
        value = "".join(part for part in decomposed if not unicodedata.combining(part))
    if not options.match_case:
        value = value.casefold()
    return value


def normalize(text: str, options: SearchOptions | None = None) -> NormalizedView:
    """Collapse whitespace, fold case and strip diacritics with an offset map.

    Parameters
    ----------
    text:
        Raw page or query text.
    options:
        Folding switches; ``match_case`` keeps case and ``match_diacritics``
        keeps combining marks. Defaults fold both.

    Every emitted character has exactly one ``index_map`` entry pointing at the
    source character that produced it. A whitespace run maps to its first
    character; leading and trailing whitespace are dropped.
    """

    opts = options or SearchOptions()
    chars: list[str] = []
    index_map: list[int] = []
    pending_space: int | None = None

    for index, char in enumerate(text):
        if char.isspace():
            if pending_space is None and chars:
                pending_space = index
            continue

        folded = _fold_char(char, opts)
        if not folded:
            continue

        if pending_space is not None:
            chars.append(" ")
            index_map.append(pending_space)
            pending_space = None

        for emitted in folded:
            chars.append(emitted)
            index_map.append(index)

    return NormalizedView(normalized="".join(chars), index_map=index_map)


def normalize_query(query: str, options: SearchOptions | None = None) -> str:
    """Normalize a search query with the same rules as page text."""

    return normalize(query, options).normalized
