from __future__ import annotations

import json
import os
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest
from ecma426.codec import encode
from ecma426.model import Mapping as CodecMapping

from sourcemap_overlay.editor_surface import DecorationSpec, Rect, word_range

SOURCE_ID = "webpack:///./src/index.js"


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


def make_payload(entries: Sequence[Tuple], **extra) -> str:
    """Encode ``(gen_line, gen_col, source, orig_line, orig_col, name)`` tuples (1-based lines) as a v3 map."""
    payload = encode(_codec_mappings(entries))
    payload.update(extra)
    return json.dumps(payload)


def _codec_mappings(entries: Sequence[Tuple]) -> List[CodecMapping]:
    mappings = []
    for gen_line, gen_col, source, orig_line, orig_col, name in entries:
        mappings.append(
            CodecMapping(
                generated_line=gen_line - 1,
                generated_column=gen_col,
                source=source or "",
                original_line=(orig_line - 1) if orig_line else 0,
                original_column=orig_col or 0,
                name=name,
            )
        )
    return mappings


def make_index_map(sections: Sequence[Tuple[int, int, Sequence[Tuple]]]) -> str:
    """Sectioned map from ``(line_offset, column_offset, entries)``; offsets are 0-based as in the format."""
    return json.dumps(
        {
            "version": 3,
            "sections": [
                {"offset": {"line": line, "column": column}, "map": encode(_codec_mappings(entries))}
                for line, column, entries in sections
            ],
        }
    )


# Output line 1:  0 -> index.js 1:0 (greet), 10 -> 1:9, 20 -> 2:2 (console)
# Output line 3:  0 -> index.js 3:0, 10 -> 3:5 (foo)
BASIC_ENTRIES = [
    (1, 0, SOURCE_ID, 1, 0, "greet"),
    (1, 10, SOURCE_ID, 1, 9, None),
    (1, 20, SOURCE_ID, 2, 2, "console"),
    (3, 0, SOURCE_ID, 3, 0, None),
    (3, 10, SOURCE_ID, 3, 5, "foo"),
]


@pytest.fixture
def basic_payload() -> str:
    return make_payload(BASIC_ENTRIES)


@pytest.fixture
def payload_factory() -> Callable[..., str]:
    return make_payload


@pytest.fixture
def index_map_factory() -> Callable[..., str]:
    return make_index_map


class FakeEditor:
    """Monospace editor double: 8px per column, 20px per line, viewport at a fixed screen offset."""

    def __init__(
        self,
        lines: Optional[List[str]] = None,
        *,
        viewport: Optional[Rect] = Rect(100.0, 50.0, 600.0, 400.0),
        char_width: float = 8.0,
        line_height: float = 20.0,
        scroll_top: float = 0.0,
    ) -> None:
        self.lines = list(lines or [])
        self.viewport = viewport
        self.char_width = char_width
        self._line_height = line_height
        self.scroll_top = scroll_top
        self.decorations: Dict[str, DecorationSpec] = {}
        self.replace_calls: List[Tuple[List[str], List[DecorationSpec]]] = []
        self.geometry_listeners: List[Callable[[], None]] = []
        self._next_id = 0
        self.cursor = (1, 0)

    def get_text(self) -> str:
        return "\n".join(self.lines)

    def set_text(self, text: str) -> None:
        self.lines = text.split("\n")

    def cursor_position(self) -> Tuple[int, int]:
        return self.cursor

    def word_range_at(self, line: int, column: int):
        if not 1 <= line <= len(self.lines):
            return None
        return word_range(self.lines[line - 1], column)

    def scrolled_visible_position(self, line: int, column: int):
        top = (line - 1) * self._line_height - self.scroll_top
        if self.viewport is None or top < 0 or top > self.viewport.height:
            return None
        return column * self.char_width, top

    def viewport_rect(self):
        return self.viewport

    def line_height(self) -> float:
        return self._line_height

    def replace_decorations(self, previous_ids, decorations):
        self.replace_calls.append((list(previous_ids), list(decorations)))
        for decoration_id in previous_ids:
            self.decorations.pop(decoration_id, None)
        new_ids = []
        for spec in decorations:
            self._next_id += 1
            decoration_id = f"d{self._next_id}"
            self.decorations[decoration_id] = spec
            new_ids.append(decoration_id)
        return new_ids

    def on_geometry_changed(self, callback):
        self.geometry_listeners.append(callback)
        return lambda: self.geometry_listeners.remove(callback)


class FakePanel:
    def __init__(self, tabs: Optional[Dict[str, Rect]] = None, panel: Optional[Rect] = Rect(100.0, 0.0, 600.0, 450.0)):
        self.tabs = dict(tabs or {})
        self.panel = panel

    def tab_rect(self, filename: str):
        return self.tabs.get(filename)

    def panel_rect(self):
        return self.panel


class FakeScheduler:
    """Stands in for a timer loop: callbacks run only when ``flush`` is called."""

    def __init__(self) -> None:
        self.pending: Dict[int, Tuple[int, Callable[[], None]]] = {}
        self.cancelled: List[int] = []
        self._next = 0

    def after(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._next += 1
        self.pending[self._next] = (delay_ms, callback)
        return self._next

    def after_cancel(self, handle: object) -> None:
        self.cancelled.append(handle)  # type: ignore[arg-type]
        self.pending.pop(handle, None)  # type: ignore[arg-type]

    def flush(self) -> None:
        for handle in list(self.pending):
            _delay, callback = self.pending.pop(handle)
            callback()


@pytest.fixture
def fake_editor_factory():
    return FakeEditor


@pytest.fixture
def fake_panel_factory():
    return FakePanel


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
