"""Rectangle primitives and line merging."""

from .rects import DEFAULT_LINE_TOLERANCE, Rect, merge_into_lines, rect_maps_equal, rects_equal

__all__ = ["DEFAULT_LINE_TOLERANCE", "Rect", "merge_into_lines", "rect_maps_equal", "rects_equal"]
