"""Transparent widget that draws the hover overlay across both panes."""
from __future__ import annotations

from typing import Callable, List, Optional

from PyQt6.QtCore import QEvent, QObject, Qt, QTimer
from PyQt6.QtGui import QColor, QPainter, QPaintEvent, QPen
from PyQt6.QtWidgets import QWidget

from sourcemap_overlay.config import DebugConfig
from sourcemap_overlay.editor_surface import EditorSurface, TabStripPanel
from sourcemap_overlay.hover_resolver import Pane
from sourcemap_overlay.logging_utils import get_logger
from sourcemap_overlay.overlay_geometry import OverlayScene, build_overlay_scene, render_overlay
from sourcemap_overlay.paint_commands import QtOverlayPainterAdapter
from sourcemap_overlay.qt_surface import widget_global_rect
from sourcemap_overlay.session import SourcemapSession

_LOGGER = get_logger("Overlay")


class SourcemapOverlayWidget(QWidget):
    """Covers its parent, ignores input and repaints whenever the session or pane geometry changes."""

    def __init__(
        self,
        session: SourcemapSession,
        parent: QWidget,
        *,
        source_panel: Optional[TabStripPanel] = None,
        debug_config: Optional[DebugConfig] = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._source_panel = source_panel
        self._debug = debug_config or DebugConfig()
        self._geometry_removers: List[Callable[[], None]] = []
        self._settled = False
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self._remove_listener = session.add_listener(self._on_session_changed)
        parent.installEventFilter(self)
        self.setVisible(session.enabled)
        # The parent often reports a zero size until its first layout pass.
        QTimer.singleShot(session.settings.settle_delay_ms, self._settle)

    @property
    def settled(self) -> bool:
        return self._settled

    def set_source_panel(self, panel: Optional[TabStripPanel]) -> None:
        self._source_panel = panel
        self.update()

    def watch_editor(self, editor: EditorSurface) -> None:
        self._geometry_removers.append(editor.on_geometry_changed(self.update))

    def _settle(self) -> None:
        self._settled = True
        self.sync_to_parent()

    def sync_to_parent(self) -> None:
        parent = self.parentWidget()
        if parent is None or parent.width() <= 0 or parent.height() <= 0:
            return
        self.setGeometry(parent.rect())
        self.raise_()
        self.update()

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt override
        if obj is self.parentWidget() and event.type() in (QEvent.Type.Resize, QEvent.Type.LayoutRequest):
            self.sync_to_parent()
        return False

    def _on_session_changed(self) -> None:
        self.setVisible(self._session.enabled)
        if self._session.enabled:
            self.raise_()
        self.update()

    def current_scene(self) -> Optional[OverlayScene]:
        session = self._session
        if not session.enabled:
            return None
        window = self.window()
        return build_overlay_scene(
            session.cross_reference,
            source_editor=session.editor(Pane.SOURCE),
            output_editor=session.editor(Pane.OUTPUT),
            source_panel=self._source_panel,
            canvas_rect=widget_global_rect(self),
            window_rect=widget_global_rect(window) if window is not None else None,
            active_output=session.active_output,
            settings=session.settings,
        )

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt override
        if not self._session.enabled:
            return
        scene = self.current_scene()
        if scene is None and not self._debug.outline_canvas:
            return
        painter = QPainter(self)
        try:
            if self._debug.outline_canvas:
                painter.setPen(QPen(QColor(255, 0, 255, 160)))
                painter.drawRect(self.rect().adjusted(0, 0, -1, -1))
            trace = None
            if self._debug.trace_hover:
                trace = lambda stage, data: _LOGGER.debug("%s %s", stage, dict(data))  # noqa: E731
            render_overlay(QtOverlayPainterAdapter(painter), scene, trace=trace)
        finally:
            painter.end()

    def dispose(self) -> None:
        self._remove_listener()
        for remover in self._geometry_removers:
            remover()
        self._geometry_removers.clear()
        parent = self.parentWidget()
        if parent is not None:
            parent.removeEventFilter(self)
