"""Platform-independent selection and caret identities."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, order=True)
class SelectionEndpoint:
    """One end of a selection or the caret, ordered in document order."""

    page_number: int
    fragment_index: int
    char_offset: int


@dataclass(frozen=True, slots=True)
class SelectionRange:
    """Anchor/focus pair; direction is whatever the user produced."""

    anchor: SelectionEndpoint
    focus: SelectionEndpoint

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.focus

    @property
    def is_backward(self) -> bool:
        return self.focus < self.anchor

    def ordered(self) -> tuple[SelectionEndpoint, SelectionEndpoint]:
        if self.is_backward:
            return self.focus, self.anchor
        return self.anchor, self.focus

    @classmethod
    def collapsed(cls, endpoint: SelectionEndpoint) -> "SelectionRange":
        return cls(anchor=endpoint, focus=endpoint)


@dataclass(slots=True)
class CaretState:
    active: SelectionEndpoint | None = None
    anchor: SelectionEndpoint | None = None

    @property
    def is_active(self) -> bool:
        return self.active is not None
