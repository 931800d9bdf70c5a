"""Canonical page text structures shared by search and selection."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Mapping

from textlayer.geometry.rects import Rect


@dataclass(frozen=True, slots=True)
class RawFragment:
    """One text item as emitted by the page-content source."""

    text: str
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class TextFragment:
    """A run of page text with its offset range and bounding rectangle."""

    text: str
    start: int
    end: int
    rect: Rect

    @property
    def offset_range(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def length(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "start": self.start, "end": self.end, "rect": self.rect.to_dict()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TextFragment":
        return cls(
            text=str(payload["text"]),
            start=int(payload["start"]),
            end=int(payload["end"]),
            rect=Rect.from_dict(payload["rect"]),
        )


@dataclass(frozen=True, slots=True)
class PageTextCorpus:
    """Immutable text layout of one page.

    ``full_text`` is the fragment texts joined by single spaces and every
    fragment's ``[start, end)`` indexes into it. Selection code addresses the
    page through ``(fragment_index, char_offset)`` pairs only.
    """

    page_number: int
    full_text: str
    fragments: tuple[TextFragment, ...] = ()

    def fragment_text(self, fragment_index: int) -> str:
        return self.fragments[fragment_index].text

    def page_offset(self, fragment_index: int, char_offset: int) -> int:
        """Translate a fragment-local offset into a ``full_text`` offset."""

        fragment = self.fragments[fragment_index]
        return fragment.start + max(0, min(char_offset, fragment.length))

    def fragment_at_offset(self, offset: int) -> tuple[int, int] | None:
        """Return ``(fragment_index, char_offset)`` for a page offset.

        Offsets that fall on a separator space resolve to the end of the
        preceding fragment.
        """

        if not self.fragments:
            return None
        starts = [fragment.start for fragment in self.fragments]
        index = max(0, bisect_right(starts, offset) - 1)
        fragment = self.fragments[index]
        return index, max(0, min(offset - fragment.start, fragment.length))

    def fragments_overlapping(self, start: int, end: int) -> list[tuple[int, TextFragment]]:
        """Fragments whose range intersects ``[start, end)``, in reading order."""

        return [
            (index, fragment)
            for index, fragment in enumerate(self.fragments)
            if fragment.end > start and fragment.start < end
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "full_text": self.full_text,
            "fragments": [fragment.to_dict() for fragment in self.fragments],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PageTextCorpus":
        return cls(
            page_number=int(payload["page_number"]),
            full_text=str(payload.get("full_text") or ""),
            fragments=tuple(TextFragment.from_dict(item) for item in payload.get("fragments") or []),
        )


@dataclass(slots=True)
class DocumentTextIndex:
    """Per-document mapping of page number to its text corpus."""

    document_id: str
    pages: dict[int, PageTextCorpus] = field(default_factory=dict)

    def page(self, page_number: int) -> PageTextCorpus | None:
        return self.pages.get(page_number)

    def page_numbers(self) -> list[int]:
        return sorted(self.pages)

    def is_complete(self, total_pages: int) -> bool:
        return all(number in self.pages for number in range(1, total_pages + 1))

    def copy(self) -> "DocumentTextIndex":
        return DocumentTextIndex(document_id=self.document_id, pages=dict(self.pages))


@dataclass(frozen=True, slots=True)
class TextMetrics:
    """Average line height and glyph width of a page's fragments."""

    line_height: float = 16.0
    average_char_width: float = 8.0
