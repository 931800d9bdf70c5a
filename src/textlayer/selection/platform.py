"""Boundary between the selection engine and the host platform.

Only adapters implementing these protocols touch real platform handles
(DOM nodes, widget items). The engine sees page-local coordinates and
``SelectionEndpoint`` values.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import itertools
import math
from typing import Callable, Protocol, Union, runtime_checkable

from textlayer.geometry.rects import Rect
from textlayer.selection.models import SelectionRange


FRAME_INTERVAL_SECONDS = 1 / 60


class PointerKind(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CLICK = "click"
    DOUBLE_CLICK = "double_click"


class KeyKind(Enum):
    DOWN = "down"
    UP = "up"


@dataclass(frozen=True, slots=True)
class PointerEvent:
    kind: PointerKind
    x: float = 0.0
    y: float = 0.0
    page_number: int | None = None  # None when outside every page
    in_text_layer: bool = False
    shift: bool = False
    button: int = 0
    on_overlay: bool = False  # over the highlight overlay or its popup


@dataclass(frozen=True, slots=True)
class KeyEvent:
    kind: KeyKind
    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False


@dataclass(frozen=True, slots=True)
class SelectionChangedEvent:
    pass


@dataclass(frozen=True, slots=True)
class FocusLostEvent:
    pass


InputEvent = Union[PointerEvent, KeyEvent, SelectionChangedEvent, FocusLostEvent]
InputHandler = Callable[[InputEvent], None]


@runtime_checkable
class InputEventSource(Protocol):
    def subscribe(self, handler: InputHandler) -> Callable[[], None]:
        """Register a handler; return a callable that unsubscribes it."""


class EventHub:
    """In-process event source that fans events out to subscribers in order."""

    def __init__(self) -> None:
        self._handlers: list[InputHandler] = []

    def subscribe(self, handler: InputHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: InputEvent) -> None:
        for handler in list(self._handlers):
            handler(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)


@dataclass(frozen=True, slots=True)
class PageGeometry:
    """Client-space boxes of a page container and of its text layer."""

    page_rect: Rect
    reference_rect: Rect


@runtime_checkable
class SelectionPlatform(Protocol):
    """Native selection primitives the engine reads and drives."""

    @property
    def zoom(self) -> float: ...

    def current_selection(self) -> SelectionRange | None: ...

    def selection_client_rects(self) -> list[Rect]: ...

    def page_geometry(self, page_number: int) -> PageGeometry | None: ...

    def apply_selection(self, selection: SelectionRange) -> None: ...

    def clear_selection(self) -> None: ...


@runtime_checkable
class EditableMarker(Protocol):
    """Toggles the editable marking that makes the native caret visible."""

    def mark_editable(self, page_number: int, fragment_index: int) -> None: ...

    def unmark_editable(self, page_number: int, fragment_index: int) -> None: ...


class FrameScheduler(Protocol):
    def request(self, callback: Callable[[], None]) -> int: ...

    def cancel(self, handle: int) -> None: ...


class ManualFrameScheduler:
    """Frame scheduler driven explicitly; ``flush`` runs one frame."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._pending: dict[int, Callable[[], None]] = {}

    def request(self, callback: Callable[[], None]) -> int:
        handle = next(self._counter)
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> int:
        callbacks = list(self._pending.values())
        self._pending.clear()
        for callback in callbacks:
            callback()
        return len(callbacks)


class AsyncioFrameScheduler:
    """Run frame callbacks on the event loop at display frame pace.

    Callbacks fire on the next frame boundary of the loop clock, so a request
    cancelled and re-issued within one frame keeps the same deadline.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        interval_seconds: float = FRAME_INTERVAL_SECONDS,
    ) -> None:
        self._loop = loop
        self._interval = interval_seconds
        self._counter = itertools.count(1)
        self._handles: dict[int, asyncio.TimerHandle] = {}

    def request(self, callback: Callable[[], None]) -> int:
        loop = self._loop or asyncio.get_running_loop()
        handle_id = next(self._counter)

        def _run() -> None:
            self._handles.pop(handle_id, None)
            callback()

        deadline = (math.floor(loop.time() / self._interval) + 1) * self._interval
        self._handles[handle_id] = loop.call_at(deadline, _run)
        return handle_id

    def cancel(self, handle: int) -> None:
        timer = self._handles.pop(handle, None)
        if timer is not None:
            timer.cancel()
