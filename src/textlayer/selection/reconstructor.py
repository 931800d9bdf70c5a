"""Turn a live selection into per-page line rectangles."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Sequence

from textlayer.geometry.rects import DEFAULT_LINE_TOLERANCE, Rect, merge_into_lines, rect_maps_equal
from textlayer.layout.index import range_rects, text_metrics
from textlayer.layout.models import DocumentTextIndex, PageTextCorpus
from textlayer.selection.models import SelectionEndpoint, SelectionRange
from textlayer.selection.platform import (
    FrameScheduler,
    InputEvent,
    KeyEvent,
    KeyKind,
    PageGeometry,
    PointerEvent,
    PointerKind,
    SelectionChangedEvent,
    SelectionPlatform,
)
from textlayer.selection.words import joins_word, select_word_at

logger = logging.getLogger(__name__)

DRAG_THROTTLE_SECONDS = 0.016
_ARROW_KEYS = frozenset({"ArrowLeft", "ArrowRight", "ArrowUp", "ArrowDown"})

RectsByPage = dict[int, list[Rect]]
OverlayListener = Callable[[RectsByPage, bool], None]


def _page_span(selection: SelectionRange) -> range:
    start, end = selection.ordered()
    return range(start.page_number, end.page_number + 1)


def calculate_page_rects(
    selection: SelectionRange,
    client_rects: Sequence[Rect],
    geometry_for_page: Callable[[int], PageGeometry | None],
    zoom: float = 1.0,
    y_tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> RectsByPage:
    """Distribute client rects of a selection onto the pages they cover.

    Every page between the anchor's and focus's page is a candidate. Rects are
    translated from client space into page-local space, merged per line in
    that space, then divided by ``zoom`` to the reference scale.
    """

    result: RectsByPage = {}
    if not client_rects or zoom <= 0:
        return result

    for page_number in _page_span(selection):
        geometry = geometry_for_page(page_number)
        if geometry is None:
            continue

        reference = geometry.reference_rect
        offset_x = reference.x - geometry.page_rect.x
        offset_y = reference.y - geometry.page_rect.y

        collected: list[Rect] = []
        for rect in client_rects:
            if rect.width <= 0 or rect.height <= 0:
                continue
            if not rect.overlaps(reference):
                continue
            collected.append(rect.translate(offset_x - reference.x, offset_y - reference.y))

        if collected:
            merged = merge_into_lines(collected, y_tolerance)
            result[page_number] = [rect.scale(1 / zoom) for rect in merged]

    return result


def _page_bounds(corpus: PageTextCorpus, selection: SelectionRange) -> tuple[int, int]:
    start, end = selection.ordered()
    page_start = 0
    page_end = len(corpus.full_text)
    if start.page_number == corpus.page_number and corpus.fragments:
        page_start = corpus.page_offset(start.fragment_index, start.char_offset)
    if end.page_number == corpus.page_number and corpus.fragments:
        page_end = corpus.page_offset(end.fragment_index, end.char_offset)
    return page_start, page_end


def model_rects_for_selection(
    index: DocumentTextIndex,
    selection: SelectionRange,
    y_tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> RectsByPage:
    """Per-page line rects computed from fragment geometry alone."""

    result: RectsByPage = {}
    for page_number in _page_span(selection):
        corpus = index.page(page_number)
        if corpus is None:
            continue
        start, end = _page_bounds(corpus, selection)
        rects = merge_into_lines(range_rects(corpus, start, end), y_tolerance)
        if rects:
            result[page_number] = rects
    return result


def _page_selected_text(corpus: PageTextCorpus, start: int, end: int) -> str:
    metrics = text_metrics(corpus)
    parts: list[str] = []
    previous = None

    for _, fragment in corpus.fragments_overlapping(start, end):
        local_start = max(start, fragment.start) - fragment.start
        local_end = min(end, fragment.end) - fragment.start
        if previous is not None:
            parts.append("" if joins_word(previous, fragment, metrics) else " ")
        parts.append(fragment.text[local_start:local_end])
        previous = fragment

    return "".join(parts)


def selected_text(index: DocumentTextIndex, selection: SelectionRange) -> str:
    """Plain text of a selection; pages are separated by newlines."""

    pages: list[str] = []
    for page_number in _page_span(selection):
        corpus = index.page(page_number)
        if corpus is None:
            continue
        start, end = _page_bounds(corpus, selection)
        text = _page_selected_text(corpus, start, end)
        if text:
            pages.append(text)
    return "\n".join(pages)


@dataclass(slots=True)
class OverlayTelemetry:
    event_count: int = 0
    dropped_frames: int = 0
    programmatic_blocks: int = 0


class SelectionOverlay:
    """Keeps the highlight overlay in step with the platform selection.

    Recomputation runs at most once per frame. While a drag is in progress a
    momentarily empty platform selection keeps the previous rects; releasing
    the pointer always republishes.
    """

    def __init__(
        self,
        platform: SelectionPlatform,
        scheduler: FrameScheduler,
        corpus_for_page: Callable[[int], PageTextCorpus | None],
        *,
        y_tolerance: float = DEFAULT_LINE_TOLERANCE,
        clock: Callable[[], float] = time.monotonic,
        drag_throttle_seconds: float = DRAG_THROTTLE_SECONDS,
    ) -> None:
        self._platform = platform
        self._scheduler = scheduler
        self._corpus_for_page = corpus_for_page
        self._y_tolerance = y_tolerance
        self._clock = clock
        self._drag_throttle = drag_throttle_seconds

        self._rects: RectsByPage = {}
        self._has_selection = False
        self._listeners: list[OverlayListener] = []

        self._pointer_down = False
        self._dragging = False
        self._keyboard_selecting = False
        self._last_drag_update = float("-inf")

        self._programmatic = False
        self._selection_epoch = 0
        self._last_applied: SelectionRange | None = None

        self._pending_handle: int | None = None
        self._force_pending = False

        self.telemetry = OverlayTelemetry()

    @property
    def rects_by_page(self) -> RectsByPage:
        return {page: list(rects) for page, rects in self._rects.items()}

    @property
    def has_selection(self) -> bool:
        return self._has_selection

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def subscribe(self, listener: OverlayListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def handle_event(self, event: InputEvent) -> None:
        self.telemetry.event_count += 1
        if isinstance(event, PointerEvent):
            self._on_pointer(event)
        elif isinstance(event, KeyEvent):
            self._on_key(event)
        elif isinstance(event, SelectionChangedEvent):
            self._on_selection_changed()

    def _on_pointer(self, event: PointerEvent) -> None:
        if event.kind is PointerKind.DOWN:
            if event.button != 0:
                return
            if self._has_selection and not event.on_overlay:
                self.clear_selection()
            self._pointer_down = True
            if event.in_text_layer:
                self._dragging = True
                logger.debug("Selection drag started at (%.1f, %.1f)", event.x, event.y)
        elif event.kind is PointerKind.MOVE:
            if not (self._pointer_down and self._dragging):
                return
            now = self._clock()
            if now - self._last_drag_update < self._drag_throttle:
                return
            self._last_drag_update = now
            self.schedule_update(force=True)
        elif event.kind is PointerKind.UP:
            was_dragging = self._dragging
            self._pointer_down = False
            self._dragging = False
            if was_dragging:
                self.schedule_update(force=True)
        elif event.kind is PointerKind.DOUBLE_CLICK:
            self._select_word(event)

    def _on_key(self, event: KeyEvent) -> None:
        if event.kind is KeyKind.DOWN:
            if event.key == "Escape" and self._has_selection:
                self.clear_selection()
            elif event.shift and event.key in _ARROW_KEYS:
                self._keyboard_selecting = True
            return

        if self._keyboard_selecting:
            self._keyboard_selecting = False
            self.schedule_update(force=True)

    def _on_selection_changed(self) -> None:
        if self._programmatic:
            self.telemetry.programmatic_blocks += 1
            return
        if self._keyboard_selecting:
            return
        self.schedule_update(force=self._dragging)

    def _select_word(self, event: PointerEvent) -> bool:
        if not event.in_text_layer or event.page_number is None:
            return False
        corpus = self._corpus_for_page(event.page_number)
        if corpus is None:
            return False
        word = select_word_at(corpus, event.x, event.y)
        if word is None:
            return False
        if self.apply_range(word):
            self.schedule_update(force=True)
        return True

    def apply_range(self, selection: SelectionRange) -> bool:
        """Drive the platform selection without reacting to its echo."""

        if selection == self._last_applied:
            return False

        self._selection_epoch += 1
        epoch = self._selection_epoch
        self._programmatic = True
        try:
            self._platform.apply_selection(selection)
            self._last_applied = selection
        finally:
            self._scheduler.request(lambda: self._end_programmatic(epoch))
        return True

    def _end_programmatic(self, epoch: int) -> None:
        if self._selection_epoch == epoch:
            self._programmatic = False

    def schedule_update(self, force: bool = False) -> None:
        """Coalesce recomputation into the next frame.

        A request arriving while one is pending replaces it; the force flag is
        sticky until the frame runs.
        """

        self._force_pending = self._force_pending or force
        if self._pending_handle is not None:
            self._scheduler.cancel(self._pending_handle)
            self.telemetry.dropped_frames += 1
        self._pending_handle = self._scheduler.request(self._run_frame)

    def _run_frame(self) -> None:
        force = self._force_pending
        self._pending_handle = None
        self._force_pending = False
        self.recalculate(force=force)

    def recalculate(self, force: bool = False) -> None:
        selection = self._platform.current_selection()

        if selection is None or selection.is_collapsed:
            if self._pointer_down and self._dragging and self._rects:
                return
            if self._has_selection and self._rects and not force:
                return
            if self._rects and not self._pointer_down:
                self._clear_overlay()
            return

        rects = calculate_page_rects(
            selection,
            self._platform.selection_client_rects(),
            self._platform.page_geometry,
            self._platform.zoom,
            self._y_tolerance,
        )
        if rects:
            self._publish(rects, force)

    def _publish(self, rects: RectsByPage, force: bool) -> None:
        if rect_maps_equal(self._rects, rects) and not force:
            return
        self._rects = rects
        self._has_selection = True
        self._notify()

    def _clear_overlay(self) -> None:
        if not self._rects and not self._has_selection:
            return
        self._rects = {}
        self._has_selection = False
        self._notify()

    def clear_selection(self) -> None:
        if self._pending_handle is not None:
            self._scheduler.cancel(self._pending_handle)
            self._pending_handle = None
        self._force_pending = False
        self._selection_epoch += 1
        epoch = self._selection_epoch
        self._last_applied = None

        self._programmatic = True
        try:
            self._platform.clear_selection()
        finally:
            self._scheduler.request(lambda: self._end_programmatic(epoch))

        self._dragging = False
        self._clear_overlay()

    def _notify(self) -> None:
        snapshot = self.rects_by_page
        for listener in list(self._listeners):
            listener(snapshot, self._has_selection)


def endpoint_for_offset(corpus: PageTextCorpus, offset: int) -> SelectionEndpoint | None:
    located = corpus.fragment_at_offset(offset)
    if located is None:
        return None
    fragment_index, char_offset = located
    return SelectionEndpoint(corpus.page_number, fragment_index, char_offset)


def range_for_match(corpus: PageTextCorpus, start: int, end: int) -> SelectionRange | None:
    """Selection covering a page offset range, e.g. a search match."""

    anchor = endpoint_for_offset(corpus, start)
    focus = endpoint_for_offset(corpus, end)
    if anchor is None or focus is None:
        return None
    return SelectionRange(anchor=anchor, focus=focus)

