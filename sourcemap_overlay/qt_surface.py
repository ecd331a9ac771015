"""PyQt6 implementations of the editing-surface contract."""
from __future__ import annotations

import itertools
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QEvent, QObject, QPoint, QTimer
from PyQt6.QtGui import QTextCharFormat, QTextCursor
from PyQt6.QtWidgets import QPlainTextEdit, QTabBar, QTextEdit, QWidget

from sourcemap_overlay.editor_surface import DecorationSpec, Rect, word_range
from sourcemap_overlay.hover_resolver import Pane
from sourcemap_overlay.paint_commands import to_qcolor
from sourcemap_overlay.segment_colors import color_for_segment

_DECORATION_IDS = itertools.count(1)


def widget_global_rect(widget: QWidget) -> Optional[Rect]:
    if not widget.isVisible():
        return None
    top_left = widget.mapToGlobal(QPoint(0, 0))
    return Rect(float(top_left.x()), float(top_left.y()), float(widget.width()), float(widget.height()))


class PlainTextEditorSurface:
    """Adapts a ``QPlainTextEdit`` to ``EditorSurface``."""

    def __init__(self, editor: QPlainTextEdit, *, name: str = "editor") -> None:
        self._editor = editor
        self._name = name
        self._selections: Dict[str, QTextEdit.ExtraSelection] = {}

    @property
    def widget(self) -> QPlainTextEdit:
        return self._editor

    def get_text(self) -> str:
        return self._editor.toPlainText()

    def set_text(self, text: str) -> None:
        self._editor.setPlainText(text)

    def cursor_position(self) -> Tuple[int, int]:
        cursor = self._editor.textCursor()
        return cursor.blockNumber() + 1, cursor.positionInBlock()

    def position_at(self, point: QPoint) -> Tuple[int, int]:
        """Line and 1-based column under a viewport point."""
        cursor = self._editor.cursorForPosition(point)
        return cursor.blockNumber() + 1, cursor.positionInBlock() + 1

    def _cursor_at(self, line: int, column: int) -> Optional[QTextCursor]:
        block = self._editor.document().findBlockByLineNumber(line - 1)
        if not block.isValid():
            return None
        cursor = QTextCursor(block)
        cursor.setPosition(block.position() + max(0, min(column, block.length() - 1)))
        return cursor

    def word_range_at(self, line: int, column: int) -> Optional[Tuple[int, int]]:
        block = self._editor.document().findBlockByLineNumber(line - 1)
        if not block.isValid():
            return None
        return word_range(block.text(), column)

    def scrolled_visible_position(self, line: int, column: int) -> Optional[Tuple[float, float]]:
        cursor = self._cursor_at(line, column)
        if cursor is None or not cursor.block().isVisible():
            return None
        rect = self._editor.cursorRect(cursor)
        viewport = self._editor.viewport()
        if rect.bottom() < 0 or rect.top() > viewport.height():
            return None
        return float(rect.left()), float(rect.top())

    def viewport_rect(self) -> Optional[Rect]:
        return widget_global_rect(self._editor.viewport())

    def line_height(self) -> float:
        return float(self._editor.fontMetrics().lineSpacing())

    def replace_decorations(self, previous_ids: Sequence[str], decorations: Sequence[DecorationSpec]) -> List[str]:
        for decoration_id in previous_ids:
            self._selections.pop(decoration_id, None)
        new_ids: List[str] = []
        for spec in decorations:
            selection = self._build_selection(spec)
            if selection is None:
                continue
            decoration_id = f"{self._name}-{next(_DECORATION_IDS)}"
            self._selections[decoration_id] = selection
            new_ids.append(decoration_id)
        self._editor.setExtraSelections(list(self._selections.values()))
        return new_ids

    def _build_selection(self, spec: DecorationSpec) -> Optional[QTextEdit.ExtraSelection]:
        block = self._editor.document().findBlockByLineNumber(spec.line - 1)
        if not block.isValid():
            return None
        last = block.length() - 1
        start = max(0, min(spec.start_column, last))
        end = max(start, min(spec.end_column, last))
        cursor = QTextCursor(block)
        cursor.setPosition(block.position() + start)
        cursor.setPosition(block.position() + end, QTextCursor.MoveMode.KeepAnchor)
        char_format = QTextCharFormat()
        char_format.setBackground(to_qcolor(color_for_segment(spec.color_index).bg))
        selection = QTextEdit.ExtraSelection()
        selection.cursor = cursor
        selection.format = char_format
        return selection

    def on_geometry_changed(self, callback: Callable[[], None]) -> Callable[[], None]:
        def _slot(*_args: object) -> None:
            callback()

        signals = (
            self._editor.verticalScrollBar().valueChanged,
            self._editor.horizontalScrollBar().valueChanged,
            self._editor.textChanged,
        )
        for signal in signals:
            signal.connect(_slot)

        def _remove() -> None:
            for signal in signals:
                try:
                    signal.disconnect(_slot)
                except TypeError:
                    pass

        return _remove


class TabBarPanel:
    """Adapts a panel widget and its ``QTabBar`` to ``TabStripPanel``."""

    def __init__(self, panel: QWidget, tab_bar: QTabBar) -> None:
        self._panel = panel
        self._tab_bar = tab_bar

    def tab_rect(self, filename: str) -> Optional[Rect]:
        if not self._tab_bar.isVisible():
            return None
        for index in range(self._tab_bar.count()):
            if self._tab_bar.tabData(index) == filename or self._tab_bar.tabText(index) == filename:
                rect = self._tab_bar.tabRect(index)
                top_left = self._tab_bar.mapToGlobal(rect.topLeft())
                return Rect(float(top_left.x()), float(top_left.y()), float(rect.width()), float(rect.height()))
        return None

    def panel_rect(self) -> Optional[Rect]:
        return widget_global_rect(self._panel)


class PointerEventBridge(QObject):
    """Forwards mouse move/leave on an editor viewport to a session as pointer messages."""

    def __init__(self, surface: PlainTextEditorSurface, pane: Pane, on_move, on_leave) -> None:
        super().__init__(surface.widget)
        self._surface = surface
        self._pane = pane
        self._on_move = on_move
        self._on_leave = on_leave
        viewport = surface.widget.viewport()
        viewport.setMouseTracking(True)
        viewport.installEventFilter(self)

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt override
        event_type = event.type()
        if event_type == QEvent.Type.MouseMove:
            line, column = self._surface.position_at(event.position().toPoint())
            self._on_move(self._pane, line, column)
        elif event_type == QEvent.Type.Leave:
            self._on_leave()
        return False


def qt_after(delay_ms: int, callback: Callable[[], None]) -> QTimer:
    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(callback)
    timer.start(max(0, int(delay_ms)))
    return timer


def qt_after_cancel(handle: object) -> None:
    if isinstance(handle, QTimer):
        handle.stop()
