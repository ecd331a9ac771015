"""Session-scoped state for one bundle lifecycle.

The session owns the mapping index cache, the color table of the latest
decoration pass and the current cross-reference. Host events arrive as plain
method calls (``pointer_moved``, ``pointer_left``, ``set_bundle_result`` ...)
and are handled synchronously; listeners are told after every state change so
overlay widgets can repaint.
"""
from __future__ import annotations

from typing import Callable, List, Mapping as MappingType, Optional, Sequence

from sourcemap_overlay.config import DebugConfig, OverlaySettings
from sourcemap_overlay.debounce import Debouncer
from sourcemap_overlay.decorations import DecorationApplier
from sourcemap_overlay.editor_surface import EditorSurface
from sourcemap_overlay.hover_resolver import CrossReference, HoverPosition, HoverResolver, Pane
from sourcemap_overlay.logging_utils import get_logger
from sourcemap_overlay.mapping_index import MappingIndexCache
from sourcemap_overlay.path_matching import find_source_key
from sourcemap_overlay.segment_colors import SegmentColorTable

_LOGGER = get_logger("Session")

REDECORATE_KEY = "redecorate"

Listener = Callable[[], None]


class SourcemapSession:
    def __init__(
        self,
        settings: Optional[OverlaySettings] = None,
        *,
        debug_config: Optional[DebugConfig] = None,
        debouncer: Optional[Debouncer] = None,
    ) -> None:
        self.settings = settings or OverlaySettings()
        self._debug = debug_config or DebugConfig()
        self._debouncer = debouncer
        self._cache = MappingIndexCache()
        self._resolver = HoverResolver(self._cache)
        self._decorations = DecorationApplier()
        self._color_table = SegmentColorTable()
        self._listeners: List[Listener] = []
        self._editors = {Pane.SOURCE: None, Pane.OUTPUT: None}

        self.enabled = self.settings.enabled
        self.format_output = self.settings.format_output and not self.enabled
        self.input_files: List[str] = []
        self.output_files: List[str] = []
        self.active_input_index = 0
        self.active_output_index = 0
        self.hover: Optional[HoverPosition] = None
        self.cross_reference: Optional[CrossReference] = None
        self._disposed = False

    # -- accessors -----------------------------------------------------------------

    @property
    def cache(self) -> MappingIndexCache:
        return self._cache

    @property
    def color_table(self) -> SegmentColorTable:
        return self._color_table

    @property
    def decorations(self) -> DecorationApplier:
        return self._decorations

    @property
    def active_input(self) -> Optional[str]:
        if 0 <= self.active_input_index < len(self.input_files):
            return self.input_files[self.active_input_index]
        return None

    @property
    def active_output(self) -> Optional[str]:
        if 0 <= self.active_output_index < len(self.output_files):
            return self.output_files[self.active_output_index]
        return None

    def editor(self, pane: Pane) -> Optional[EditorSurface]:
        return self._editors[pane]

    # -- listeners -----------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -- lifecycle -----------------------------------------------------------------

    def mount(self, pane: Pane, editor: EditorSurface) -> None:
        self._editors[pane] = editor
        _LOGGER.debug("Editor mounted for %s pane", pane.value)
        self.redecorate()

    def unmount(self, pane: Pane) -> None:
        self._editors[pane] = None
        self._decorations.forget(pane)
        self._set_cross_reference(None, None)

    def dispose(self) -> None:
        if self._disposed:
            return
        if self._debouncer is not None:
            self._debouncer.cancel_all()
        self._decorations.clear(
            source_editor=self._editors[Pane.SOURCE],
            output_editor=self._editors[Pane.OUTPUT],
        )
        self._cache.reset(None)
        self._color_table = SegmentColorTable()
        self.hover = None
        self.cross_reference = None
        self._notify()
        self._listeners.clear()
        self._editors = {Pane.SOURCE: None, Pane.OUTPUT: None}
        self._disposed = True
        _LOGGER.debug("Session disposed")

    # -- toggles -------------------------------------------------------------------

    def set_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled and self.format_output:
            # Formatted output is not covered by the source map.
            self.format_output = False
        if enabled == self.enabled:
            return
        self.enabled = enabled
        _LOGGER.info("Sourcemap visualization %s", "enabled" if enabled else "disabled")
        if not enabled:
            self._set_cross_reference(None, None)
        self.redecorate()

    def set_format_output(self, format_output: bool) -> None:
        self.format_output = bool(format_output)
        if self.format_output and self.enabled:
            self.set_enabled(False)

    # -- bundle and file state -----------------------------------------------------

    def set_bundle_result(self, payloads: Optional[MappingType[str, str]]) -> None:
        if not self._cache.reset(payloads):
            return
        self._set_cross_reference(None, None)
        self.redecorate()

    def set_files(self, input_files: Sequence[str], output_files: Sequence[str]) -> None:
        self.input_files = list(input_files)
        self.output_files = list(output_files)
        self.active_input_index = min(self.active_input_index, max(0, len(self.input_files) - 1))
        self.active_output_index = min(self.active_output_index, max(0, len(self.output_files) - 1))
        self.redecorate()

    def set_active_input(self, index: int) -> None:
        if index == self.active_input_index:
            return
        self.active_input_index = index
        self.redecorate()

    def set_active_output(self, index: int) -> None:
        if index == self.active_output_index:
            return
        self.active_output_index = index
        self.redecorate()

    def content_edited(self) -> None:
        """Schedule a re-decorate pass after bulk edits settle."""
        if self._debouncer is None:
            self.redecorate()
            return
        self._debouncer.schedule(REDECORATE_KEY, self.redecorate, delay_ms=self.settings.redecorate_debounce_ms)

    # -- decoration ----------------------------------------------------------------

    def redecorate(self) -> None:
        """Full decoration pass; also rebuilds the color table used by hover lookups."""
        source_editor = self._editors[Pane.SOURCE]
        output_editor = self._editors[Pane.OUTPUT]
        if not self.enabled or source_editor is None or output_editor is None:
            self._decorations.clear(source_editor=source_editor, output_editor=output_editor)
            self._color_table = SegmentColorTable()
            self._notify()
            return

        output_filename = self.active_output
        input_filename = self.active_input
        index = self._cache.get(output_filename) if output_filename else None
        if index is None:
            self._decorations.clear(source_editor=source_editor, output_editor=output_editor)
            self._color_table = SegmentColorTable()
            self._notify()
            return

        source_key = find_source_key(index.sources(), input_filename) if input_filename else None
        self._color_table = self._decorations.apply(
            source_editor=source_editor,
            output_editor=output_editor,
            output_index=index,
            source_key=source_key,
        )
        self._notify()

    # -- hover ---------------------------------------------------------------------

    def pointer_moved(self, pane: Pane, line: int, column: int) -> Optional[CrossReference]:
        """Handle a pointer move reported with a 1-based line and 1-based column."""
        if not self.enabled:
            return None
        checked_column = column - 1
        if pane is Pane.OUTPUT:
            filename = self.active_output
            result = None
            if filename is not None:
                result = self._resolver.resolve_output_hover(
                    output_filename=filename,
                    line=line,
                    column=checked_column,
                    input_files=self.input_files,
                    active_input=self.active_input,
                    color_table=self._color_table,
                )
        else:
            filename = self.active_input
            result = None
            if filename is not None:
                result = self._resolver.resolve_source_hover(
                    source_filename=filename,
                    line=line,
                    column=checked_column,
                    output_files=self._output_search_order(),
                    color_table=self._color_table,
                )
        if self._debug.trace_hover:
            _LOGGER.debug("Hover %s %s:%d:%d -> %s", pane.value, filename, line, column, result)

        hover = None
        if result is not None and filename is not None:
            hover = HoverPosition(pane=pane, filename=filename, line=line, column=column)
        self._set_cross_reference(hover, result)
        return result

    def pointer_left(self) -> None:
        self._set_cross_reference(None, None)

    def _output_search_order(self) -> List[str]:
        order = [name for name in self.output_files if name in self._cache.payloads]
        for name in self._cache.output_filenames():
            if name not in order:
                order.append(name)
        active = self.active_output
        if active in order:
            order.remove(active)
            order.insert(0, active)
        return order

    def _set_cross_reference(self, hover: Optional[HoverPosition], cross_reference: Optional[CrossReference]) -> None:
        if hover == self.hover and cross_reference == self.cross_reference:
            return
        self.hover = hover
        self.cross_reference = cross_reference
        self._notify()
