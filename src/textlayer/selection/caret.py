"""Keyboard caret over the fragments of a single page."""

from __future__ import annotations

import logging
from typing import Callable

from textlayer.layout.models import PageTextCorpus
from textlayer.selection.models import CaretState, SelectionEndpoint, SelectionRange
from textlayer.selection.platform import EditableMarker, KeyEvent, KeyKind, SelectionPlatform
from textlayer.selection.words import hit_fragment

logger = logging.getLogger(__name__)

# Fragments whose edges are this close still count as being on the next line.
VERTICAL_TOLERANCE = 5.0
VERTICAL_SCORE_WEIGHT = 10.0

NAVIGATION_KEYS = frozenset({"ArrowLeft", "ArrowRight", "ArrowUp", "ArrowDown", "Home", "End"})


def _navigable(corpus: PageTextCorpus) -> list[int]:
    return [index for index, fragment in enumerate(corpus.fragments) if fragment.text.strip()]


def nearest_vertical(corpus: PageTextCorpus, fragment_index: int, downward: bool) -> int | None:
    """Closest navigable fragment above or below ``fragment_index``.

    Candidates must start below the current bottom (or end above the current
    top) within a small tolerance; vertical distance dominates the score.
    """

    current = corpus.fragments[fragment_index].rect
    best: tuple[float, int] | None = None

    for index in _navigable(corpus):
        if index == fragment_index:
            continue
        rect = corpus.fragments[index].rect
        if downward:
            if rect.y <= current.bottom - VERTICAL_TOLERANCE:
                continue
            vertical = rect.y - current.bottom
        else:
            if rect.bottom >= current.y + VERTICAL_TOLERANCE:
                continue
            vertical = current.y - rect.bottom
        score = vertical * VERTICAL_SCORE_WEIGHT + abs(rect.center_x - current.center_x)
        if best is None or score < best[0]:
            best = (score, index)

    return None if best is None else best[1]


class CaretNavigator:
    """Caret browsing inside a page's text layer.

    The caret lives on one fragment at a time. That fragment is marked
    editable so the platform shows a native caret; every move is mirrored
    into the platform selection (collapsed, or anchor to focus with Shift).
    """

    def __init__(
        self,
        corpus_for_page: Callable[[int], PageTextCorpus | None],
        platform: SelectionPlatform,
        marker: EditableMarker | None = None,
    ) -> None:
        self._corpus_for_page = corpus_for_page
        self._platform = platform
        if marker is None and isinstance(platform, EditableMarker):
            marker = platform
        self._marker = marker
        self.state = CaretState()

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    def activate(self, page_number: int, x: float, y: float, shift: bool = False) -> bool:
        corpus = self._corpus_for_page(page_number)
        endpoint = hit_fragment(corpus, x, y) if corpus is not None else None
        if endpoint is None:
            self.deactivate()
            return False

        anchor = None
        if shift:
            anchor = self.state.anchor or self.state.active
            if anchor is not None and anchor.page_number != page_number:
                anchor = None

        self._move_to(endpoint, anchor)
        logger.debug("Caret activated on page %d fragment %d", page_number, endpoint.fragment_index)
        return True

    def handle_key(self, event: KeyEvent) -> bool:
        """React to a key press; True means the host should suppress it."""

        if not self.state.is_active or event.kind is not KeyKind.DOWN:
            return False

        if event.key == "Escape":
            self.deactivate()
            return True

        if event.key in NAVIGATION_KEYS:
            self._navigate(event.key, event.shift)
            return True

        if event.ctrl or event.meta:
            return False
        return True

    def click_outside(self) -> None:
        self.deactivate()

    def focus_lost(self) -> None:
        self.deactivate()

    def deactivate(self) -> None:
        active = self.state.active
        if active is None:
            return
        self._unmark(active)
        self.state = CaretState()

    def _navigate(self, key: str, shift: bool) -> None:
        current = self.state.active
        if current is None:
            return
        corpus = self._corpus_for_page(current.page_number)
        if corpus is None or not corpus.fragments:
            return

        target = self._target_for_key(corpus, current, key)
        if target is None:
            return

        anchor = (self.state.anchor or current) if shift else None
        self._move_to(target, anchor)

    def _target_for_key(
        self,
        corpus: PageTextCorpus,
        current: SelectionEndpoint,
        key: str,
    ) -> SelectionEndpoint | None:
        page = current.page_number
        index = current.fragment_index
        length = len(corpus.fragment_text(index))
        navigable = _navigable(corpus)

        if key == "ArrowRight":
            if current.char_offset < length:
                return SelectionEndpoint(page, index, current.char_offset + 1)
            following = [candidate for candidate in navigable if candidate > index]
            if not following:
                return None
            return SelectionEndpoint(page, following[0], 0)

        if key == "ArrowLeft":
            if current.char_offset > 0:
                return SelectionEndpoint(page, index, current.char_offset - 1)
            preceding = [candidate for candidate in navigable if candidate < index]
            if not preceding:
                return None
            previous = preceding[-1]
            return SelectionEndpoint(page, previous, len(corpus.fragment_text(previous)))

        if key in ("ArrowUp", "ArrowDown"):
            target = nearest_vertical(corpus, index, downward=key == "ArrowDown")
            if target is None:
                return None
            offset = min(current.char_offset, len(corpus.fragment_text(target)))
            return SelectionEndpoint(page, target, offset)

        if key == "Home":
            return SelectionEndpoint(page, index, 0)
        if key == "End":
            return SelectionEndpoint(page, index, length)
        return None

    def _move_to(self, target: SelectionEndpoint, anchor: SelectionEndpoint | None) -> None:
        previous = self.state.active
        moved = previous is None or (previous.page_number, previous.fragment_index) != (
            target.page_number,
            target.fragment_index,
        )
        if moved:
            if previous is not None:
                self._unmark(previous)
            self._mark(target)

        self.state = CaretState(active=target, anchor=anchor)
        if anchor is None:
            self._platform.apply_selection(SelectionRange.collapsed(target))
        else:
            self._platform.apply_selection(SelectionRange(anchor=anchor, focus=target))

    def _mark(self, endpoint: SelectionEndpoint) -> None:
        if self._marker is not None:
            self._marker.mark_editable(endpoint.page_number, endpoint.fragment_index)

    def _unmark(self, endpoint: SelectionEndpoint) -> None:
        if self._marker is not None:
            self._marker.unmark_editable(endpoint.page_number, endpoint.fragment_index)
