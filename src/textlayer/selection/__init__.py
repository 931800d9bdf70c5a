"""Selection reconstruction, word selection and caret navigation."""

from .caret import CaretNavigator, nearest_vertical
from .controller import SelectionController
from .models import CaretState, SelectionEndpoint, SelectionRange
from .platform import (
    AsyncioFrameScheduler,
    EditableMarker,
    EventHub,
    FocusLostEvent,
    FrameScheduler,
    InputEvent,
    InputEventSource,
    KeyEvent,
    KeyKind,
    ManualFrameScheduler,
    PageGeometry,
    PointerEvent,
    PointerKind,
    SelectionChangedEvent,
    SelectionPlatform,
)
from .reconstructor import (
    RectsByPage,
    SelectionOverlay,
    calculate_page_rects,
    model_rects_for_selection,
    range_for_match,
    selected_text,
)
from .words import hit_fragment, resolve_point, select_word_at

__all__ = [
    "AsyncioFrameScheduler",
    "CaretNavigator",
    "CaretState",
    "EditableMarker",
    "EventHub",
    "FocusLostEvent",
    "FrameScheduler",
    "InputEvent",
    "InputEventSource",
    "KeyEvent",
    "KeyKind",
    "ManualFrameScheduler",
    "PageGeometry",
    "PointerEvent",
    "PointerKind",
    "RectsByPage",
    "SelectionChangedEvent",
    "SelectionController",
    "SelectionEndpoint",
    "SelectionOverlay",
    "SelectionPlatform",
    "SelectionRange",
    "calculate_page_rects",
    "hit_fragment",
    "model_rects_for_selection",
    "nearest_vertical",
    "range_for_match",
    "resolve_point",
    "select_word_at",
    "selected_text",
]
