from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PyQt6.QtGui import QFontDatabase
from PyQt6.QtWidgets import QApplication, QCheckBox, QHBoxLayout, QMainWindow, QPlainTextEdit, QTabBar, QVBoxLayout, QWidget

from sourcemap_overlay.config import DEBUG_FILENAME, SETTINGS_FILENAME, DebugConfig, is_dev_mode, load_debug_config, load_settings
from sourcemap_overlay.debounce import Debouncer
from sourcemap_overlay.hover_resolver import Pane
from sourcemap_overlay.logging_utils import configure_logging, get_logger
from sourcemap_overlay.overlay_widget import SourcemapOverlayWidget
from sourcemap_overlay.qt_surface import PlainTextEditorSurface, PointerEventBridge, TabBarPanel, qt_after, qt_after_cancel
from sourcemap_overlay.session import SourcemapSession

_LOGGER = get_logger()


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


class _EditorPanel(QWidget):
    def __init__(self, files: Dict[str, str], parent: Optional[QWidget] = None, *, read_only: bool = False) -> None:
        super().__init__(parent)
        self.files = dict(files)
        self.tab_bar = QTabBar(self)
        self.editor = QPlainTextEdit(self)
        self.editor.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        self.editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.editor.setReadOnly(read_only)
        for filename in self.files:
            index = self.tab_bar.addTab(filename)
            self.tab_bar.setTabData(index, filename)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.tab_bar)
        layout.addWidget(self.editor)
        self.show_file(0)

    def filenames(self) -> List[str]:
        return list(self.files)

    def show_file(self, index: int) -> None:
        names = self.filenames()
        if 0 <= index < len(names):
            self.editor.blockSignals(True)
            self.editor.setPlainText(self.files[names[index]])
            self.editor.blockSignals(False)


class SourcemapWindow(QMainWindow):
    """Source pane on the left, output pane on the right, overlay on top of both."""

    def __init__(
        self,
        session: SourcemapSession,
        sources: Dict[str, str],
        outputs: Dict[str, str],
        *,
        debug_config: Optional[DebugConfig] = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Sourcemap overlay")
        self._session = session
        central = QWidget(self)
        outer = QVBoxLayout(central)
        toggles = QHBoxLayout()
        self.enable_box = QCheckBox("Sourcemap", central)
        self.format_box = QCheckBox("Format output", central)
        toggles.addWidget(self.enable_box)
        toggles.addWidget(self.format_box)
        toggles.addStretch(1)
        outer.addLayout(toggles)

        panes = QHBoxLayout()
        self.source_panel = _EditorPanel(sources, central)
        self.output_panel = _EditorPanel(outputs, central, read_only=True)
        panes.addWidget(self.source_panel)
        panes.addWidget(self.output_panel)
        outer.addLayout(panes)
        self.setCentralWidget(central)

        self.source_surface = PlainTextEditorSurface(self.source_panel.editor, name="input")
        self.output_surface = PlainTextEditorSurface(self.output_panel.editor, name="output")
        self._bridges = [
            PointerEventBridge(self.source_surface, Pane.SOURCE, session.pointer_moved, session.pointer_left),
            PointerEventBridge(self.output_surface, Pane.OUTPUT, session.pointer_moved, session.pointer_left),
        ]
        self.overlay = SourcemapOverlayWidget(
            session,
            central,
            source_panel=TabBarPanel(self.source_panel, self.source_panel.tab_bar),
            debug_config=debug_config,
        )
        self.overlay.watch_editor(self.source_surface)
        self.overlay.watch_editor(self.output_surface)

        session.set_files(self.source_panel.filenames(), self.output_panel.filenames())
        session.mount(Pane.SOURCE, self.source_surface)
        session.mount(Pane.OUTPUT, self.output_surface)

        self.enable_box.setChecked(session.enabled)
        self.format_box.setChecked(session.format_output)
        self.enable_box.toggled.connect(self._on_enable_toggled)
        self.format_box.toggled.connect(self._on_format_toggled)
        self.source_panel.tab_bar.currentChanged.connect(self._on_source_tab)
        self.output_panel.tab_bar.currentChanged.connect(self._on_output_tab)
        self.source_panel.editor.textChanged.connect(self._on_source_edited)
        self.output_panel.editor.textChanged.connect(self._on_output_edited)

    def _sync_toggles(self) -> None:
        for box, value in ((self.enable_box, self._session.enabled), (self.format_box, self._session.format_output)):
            box.blockSignals(True)
            box.setChecked(value)
            box.blockSignals(False)

    def _on_enable_toggled(self, checked: bool) -> None:
        self._session.set_enabled(checked)
        self._sync_toggles()

    def _on_format_toggled(self, checked: bool) -> None:
        self._session.set_format_output(checked)
        self._sync_toggles()

    def _on_source_tab(self, index: int) -> None:
        self.source_panel.show_file(index)
        self._session.set_active_input(index)

    def _on_output_tab(self, index: int) -> None:
        self.output_panel.show_file(index)
        self._session.set_active_output(index)

    def _on_source_edited(self) -> None:
        name = self._session.active_input
        if name is not None:
            self.source_panel.files[name] = self.source_panel.editor.toPlainText()
        self._session.content_edited()

    def _on_output_edited(self) -> None:
        name = self._session.active_output
        if name is not None:
            self.output_panel.files[name] = self.output_panel.editor.toPlainText()
        self._session.content_edited()

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self.overlay.dispose()
        self._session.dispose()
        super().closeEvent(event)


def _display_name(path: Path) -> str:
    try:
        return path.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def load_inputs(output: Path, map_path: Optional[Path], sources: Sequence[Path]) -> tuple[Dict[str, str], Dict[str, str], Dict[str, str]]:
    """Read sources, the generated file and its map; returns ``(sources, outputs, bundle result)``."""
    resolved_map = map_path or output.with_name(output.name + ".map")
    output_name = output.name
    source_texts = {_display_name(path): _read_text(path) for path in sources}
    outputs = {output_name: _read_text(output)}
    bundle: Dict[str, str] = {}
    try:
        bundle[output_name] = _read_text(resolved_map)
    except OSError as exc:
        _LOGGER.warning("No source map for %s (%s); hover will stay inactive", output_name, exc)
    return source_texts, outputs, bundle


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Show source map correspondences between a source and its output")
    parser.add_argument("output", help="Generated file")
    parser.add_argument("sources", nargs="+", help="Original source files to open")
    parser.add_argument("--map", dest="map_path", help="Source map for the output (default: <output>.map)")
    parser.add_argument("--settings", help=f"Settings file (default: ./{SETTINGS_FILENAME})")
    parser.add_argument("--enable", action="store_true", help="Start with the visualization enabled")
    args = parser.parse_args(argv)

    settings_path = Path(args.settings or SETTINGS_FILENAME).expanduser()
    settings = load_settings(settings_path)
    if args.enable:
        settings = replace(settings, enabled=True, format_output=False)
    debug_config = load_debug_config(Path(DEBUG_FILENAME))
    configure_logging(debug_enabled=is_dev_mode(), retention=settings.log_retention)

    sources, outputs, bundle = load_inputs(
        Path(args.output).expanduser(),
        Path(args.map_path).expanduser() if args.map_path else None,
        [Path(item).expanduser() for item in args.sources],
    )
    _LOGGER.info("Starting sourcemap overlay (pid=%s)", os.getpid())
    _LOGGER.debug(
        "Loaded settings from %s: enabled=%s debounce=%dms settle=%dms",
        settings_path,
        settings.enabled,
        settings.redecorate_debounce_ms,
        settings.settle_delay_ms,
    )

    app = QApplication(sys.argv[:1])
    session = SourcemapSession(
        settings,
        debug_config=debug_config,
        debouncer=Debouncer(after=qt_after, after_cancel=qt_after_cancel, default_delay_ms=settings.redecorate_debounce_ms),
    )
    session.set_bundle_result(bundle)
    window = SourcemapWindow(session, sources, outputs, debug_config=debug_config)
    window.resize(1200, 720)
    window.show()

    exit_code = app.exec()
    _LOGGER.info("Sourcemap overlay exiting with code %s", exit_code)
    return int(exit_code)
