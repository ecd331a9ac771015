"""Capability contract between the overlay core and the editing surface.

Lines are 1-based everywhere. Columns are 0-based in this contract; adapters
convert from whatever their widget uses.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

_WORD_PATTERN = re.compile(r"[A-Za-z0-9_$]+")


@dataclass(frozen=True)
class Rect:
    """Rectangle in global (screen) coordinates."""

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


@dataclass(frozen=True)
class DecorationSpec:
    line: int
    start_column: int
    end_column: int
    color_index: int
    color_key: str


class EditorSurface(Protocol):
    def get_text(self) -> str: ...

    def set_text(self, text: str) -> None: ...

    def cursor_position(self) -> Tuple[int, int]: ...

    def word_range_at(self, line: int, column: int) -> Optional[Tuple[int, int]]: ...

    def scrolled_visible_position(self, line: int, column: int) -> Optional[Tuple[float, float]]:
        """Top-left pixel of ``(line, column)`` relative to the viewport, or None when not rendered."""
        ...

    def viewport_rect(self) -> Optional[Rect]: ...

    def line_height(self) -> float: ...

    def replace_decorations(self, previous_ids: Sequence[str], decorations: Sequence[DecorationSpec]) -> List[str]: ...

    def on_geometry_changed(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a scroll/layout listener; returns a function that removes it."""
        ...


class TabStripPanel(Protocol):
    def tab_rect(self, filename: str) -> Optional[Rect]: ...

    def panel_rect(self) -> Optional[Rect]: ...


def word_range(text: str, column: int) -> Optional[Tuple[int, int]]:
    """Return ``[start, end)`` of the word touching ``column`` in a single line of text."""
    if column < 0:
        return None
    for match in _WORD_PATTERN.finditer(text):
        if match.start() > column:
            break
        if match.start() <= column <= match.end():
            return match.start(), match.end()
    return None
