"""Persistent per-segment background highlights in both panes."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sourcemap_overlay.editor_surface import DecorationSpec, EditorSurface
from sourcemap_overlay.hover_resolver import Pane
from sourcemap_overlay.logging_utils import get_logger
from sourcemap_overlay.mapping_index import MappingIndex
from sourcemap_overlay.segment_colors import PALETTE_SIZE, ColorPass, SegmentColorTable, assign_segment_colors, color_key

_LOGGER = get_logger("Decorations")


def _spec(line: int, start: int, end: int, value: int) -> DecorationSpec:
    return DecorationSpec(
        line=line,
        start_column=start,
        end_column=end,
        color_index=value % PALETTE_SIZE,
        color_key=color_key(value),
    )


def build_decoration_specs(
    output_index: MappingIndex,
    source_key: Optional[str],
    color_pass: ColorPass,
) -> Tuple[List[DecorationSpec], List[DecorationSpec]]:
    """Return ``(source_specs, output_specs)`` for one pass."""
    output_specs = [
        _spec(mapping.generated_line, mapping.generated_column, mapping.generated_column_end, value)
        for mapping, value in zip(output_index.iter_generated(), color_pass.generated_values)
    ]
    source_specs: List[DecorationSpec] = []
    if source_key is not None:
        for mapping, value in zip(output_index.iter_original(source_key), color_pass.original_values):
            source_specs.append(
                _spec(
                    mapping.original_line,  # type: ignore[arg-type]
                    mapping.original_column,  # type: ignore[arg-type]
                    mapping.original_column_end,  # type: ignore[arg-type]
                    value,
                )
            )
    return source_specs, output_specs


class DecorationApplier:
    """Tracks applied decoration ids per pane so every pass replaces the previous one."""

    def __init__(self) -> None:
        self._applied: Dict[Pane, List[str]] = {Pane.SOURCE: [], Pane.OUTPUT: []}

    def applied_ids(self, pane: Pane) -> List[str]:
        return list(self._applied[pane])

    def _replace(self, pane: Pane, editor: Optional[EditorSurface], specs: List[DecorationSpec]) -> None:
        if editor is None:
            return
        previous = self._applied[pane]
        if not previous and not specs:
            return
        self._applied[pane] = list(editor.replace_decorations(previous, specs))

    def apply(
        self,
        *,
        source_editor: Optional[EditorSurface],
        output_editor: Optional[EditorSurface],
        output_index: MappingIndex,
        source_key: Optional[str],
    ) -> SegmentColorTable:
        """Run a full decoration pass and return the color table it produced."""
        color_pass = assign_segment_colors(output_index, source_key)
        source_specs, output_specs = build_decoration_specs(output_index, source_key, color_pass)
        self._replace(Pane.SOURCE, source_editor, source_specs)
        self._replace(Pane.OUTPUT, output_editor, output_specs)
        _LOGGER.debug(
            "Decoration pass applied: source=%d output=%d source_key=%s",
            len(source_specs),
            len(output_specs),
            source_key or "none",
        )
        return color_pass.table

    def clear(self, *, source_editor: Optional[EditorSurface], output_editor: Optional[EditorSurface]) -> None:
        self._replace(Pane.SOURCE, source_editor, [])
        self._replace(Pane.OUTPUT, output_editor, [])

    def forget(self, pane: Pane) -> None:
        """Drop tracked ids for a pane whose editor was disposed."""
        self._applied[pane] = []
