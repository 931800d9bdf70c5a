"""Axis-aligned rectangles and per-line merging of highlight geometry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence


DEFAULT_LINE_TOLERANCE = 3.0
RECT_EQUALITY_TOLERANCE = 0.5


@dataclass(frozen=True, slots=True)
class Rect:
    """Rectangle with a top-left origin, in page-local units."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    def overlaps(self, other: "Rect") -> bool:
        """Return True when both rectangles share a non-empty area."""

        return (
            self.right > other.x
            and self.x < other.right
            and self.bottom > other.y
            and self.y < other.bottom
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def translate(self, dx: float, dy: float) -> "Rect":
        return Rect(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def scale(self, factor: float) -> "Rect":
        return Rect(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, payload: Mapping[str, float]) -> "Rect":
        return cls(
            x=float(payload["x"]),
            y=float(payload["y"]),
            width=float(payload["width"]),
            height=float(payload["height"]),
        )


def merge_into_lines(rects: Iterable[Rect], y_tolerance: float = DEFAULT_LINE_TOLERANCE) -> list[Rect]:
    """Merge fragment rectangles into one bounding rectangle per visual line.

    Rectangles are ordered by ``(y, x)``. Two neighbours share a line when
    their ``y`` differs by less than ``y_tolerance``. The comparison is
    chained: each rectangle is compared with the last one added to the
    current line, not with the line's first one. Consecutive output lines
    are at least ``y_tolerance`` apart.
    """

    items = list(rects)
    if not items:
        return []
    if len(items) == 1:
        return list(items)

    ordered = sorted(items, key=lambda rect: (rect.y, rect.x))

    lines: list[list[Rect]] = []
    current: list[Rect] = [ordered[0]]
    for rect in ordered[1:]:
        if abs(rect.y - current[-1].y) < y_tolerance:
            current.append(rect)
        else:
            lines.append(current)
            current = [rect]
    lines.append(current)

    merged: list[Rect] = []
    for line in lines:
        if len(line) == 1:
            merged.append(line[0])
            continue
        min_x = min(rect.x for rect in line)
        max_right = max(rect.right for rect in line)
        merged.append(
            Rect(
                x=min_x,
                y=min(rect.y for rect in line),
                width=max_right - min_x,
                height=max(rect.height for rect in line),
            )
        )
    return merged


def rects_equal(a: Sequence[Rect], b: Sequence[Rect], tolerance: float = RECT_EQUALITY_TOLERANCE) -> bool:
    if len(a) != len(b):
        return False
    for left, right in zip(a, b):
        if (
            abs(left.x - right.x) > tolerance
            or abs(left.y - right.y) > tolerance
            or abs(left.width - right.width) > tolerance
            or abs(left.height - right.height) > tolerance
        ):
            return False
    return True


def rect_maps_equal(a: Mapping[int, Sequence[Rect]], b: Mapping[int, Sequence[Rect]]) -> bool:
    if len(a) != len(b):
        return False
    for page_number, rects in a.items():
        other = b.get(page_number)
        if other is None or not rects_equal(rects, other):
            return False
    return True
