"""Wire an input event source to the overlay and the caret."""

from __future__ import annotations

import logging
from typing import Callable

from textlayer.selection.caret import CaretNavigator
from textlayer.selection.platform import (
    FocusLostEvent,
    InputEvent,
    InputEventSource,
    KeyEvent,
    PointerEvent,
    PointerKind,
)
from textlayer.selection.reconstructor import SelectionOverlay

logger = logging.getLogger(__name__)


class SelectionController:
    """Routes platform input to ``SelectionOverlay`` and ``CaretNavigator``.

    Reactions are synchronous. ``dispatch`` returns True when the host should
    suppress the platform's default handling of the event.
    """

    def __init__(self, overlay: SelectionOverlay, caret: CaretNavigator) -> None:
        self.overlay = overlay
        self.caret = caret
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, source: InputEventSource) -> None:
        self.detach()
        self._unsubscribe = source.subscribe(self.dispatch)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def dispatch(self, event: InputEvent) -> bool:
        suppress = False
        if isinstance(event, KeyEvent):
            suppress = self.caret.handle_key(event)
        elif isinstance(event, PointerEvent):
            self._route_pointer(event)
        elif isinstance(event, FocusLostEvent):
            self.caret.focus_lost()

        self.overlay.handle_event(event)
        return suppress

    def _route_pointer(self, event: PointerEvent) -> None:
        if event.kind is PointerKind.CLICK:
            if event.in_text_layer and event.page_number is not None:
                self.caret.activate(event.page_number, event.x, event.y, shift=event.shift)
            else:
                self.caret.click_outside()
        elif event.kind is PointerKind.DOUBLE_CLICK:
            # Word selection takes over from the caret.
            self.caret.deactivate()
