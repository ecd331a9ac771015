"""Overlay geometry: highlight boxes, the connecting curve and its arrowhead.

Everything in this module is pure apart from ``render_overlay``, which only
talks to an ``OverlayPainterAdapter``. Coordinates returned here are relative
to the overlay canvas' top-left corner.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from sourcemap_overlay.config import OverlaySettings
from sourcemap_overlay.editor_surface import EditorSurface, Rect, TabStripPanel
from sourcemap_overlay.errors import GeometryUnavailable
from sourcemap_overlay.hover_resolver import CrossReference
from sourcemap_overlay.logging_utils import get_logger
from sourcemap_overlay.segment_colors import RGBA, SegmentColor, color_for_segment

_LOGGER = get_logger("Overlay")

Point = Tuple[float, float]

MIN_BOX_WIDTH = 4.0
BOX_STROKE_WIDTH = 2.0
CURVE_STROKE_WIDTH = 2.5
ARROW_ANGLE = math.pi / 6

PLACEHOLDER_INSET_X = 20.0
PLACEHOLDER_INSET_Y = 35.0
PLACEHOLDER_MAX_WIDTH = 200.0
PLACEHOLDER_HEIGHT = 24.0


@dataclass(frozen=True)
class BoxGeometry:
    x: float
    y: float
    width: float
    height: float

    @property
    def left_center(self) -> Point:
        return (self.x, self.y + self.height / 2)

    @property
    def right_center(self) -> Point:
        return (self.x + self.width, self.y + self.height / 2)


@dataclass(frozen=True)
class ConnectorGeometry:
    start: Point
    control1: Point
    control2: Point
    end: Point
    arrow_left: Point
    arrow_right: Point


@dataclass(frozen=True)
class OverlayScene:
    source_box: BoxGeometry
    output_box: BoxGeometry
    connector: ConnectorGeometry
    color: SegmentColor


def resolve_line_height(editor: EditorSurface, default: float) -> float:
    try:
        value = float(editor.line_height())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def box_for_position(
    editor: EditorSurface,
    line: int,
    column: int,
    column_end: Optional[int],
    canvas_rect: Rect,
    settings: OverlaySettings,
) -> BoxGeometry:
    """Box around ``[column, column_end)`` on ``line``, or the word at ``column`` when no end is given."""
    start_column = column
    end_column = column + 1
    if column_end is not None:
        end_column = max(column_end, start_column + 1)
    else:
        word = editor.word_range_at(line, column)
        if word is not None:
            start_column, end_column = word

    start = editor.scrolled_visible_position(line, start_column)
    end = editor.scrolled_visible_position(line, end_column)
    if start is None or end is None:
        raise GeometryUnavailable(f"line {line} columns {start_column}-{end_column} not rendered")
    editor_rect = editor.viewport_rect()
    if editor_rect is None:
        raise GeometryUnavailable("editor viewport is not mounted")

    line_height = resolve_line_height(editor, float(settings.default_line_height))
    box_height = math.floor(line_height * settings.box_height_ratio)
    vertical_padding = math.floor((line_height - box_height) / 2)

    left = editor_rect.x - canvas_rect.x + start[0]
    top = editor_rect.y - canvas_rect.y + start[1]
    return BoxGeometry(
        x=left,
        y=top + vertical_padding,
        width=max(end[0] - start[0], MIN_BOX_WIDTH),
        height=box_height,
    )


def _rect_on_screen(rect: Rect, window_rect: Rect) -> bool:
    return (
        rect.x >= window_rect.x
        and rect.y >= window_rect.y
        and rect.x < window_rect.right
        and rect.y < window_rect.bottom
    )


def tab_fallback_box(panel: TabStripPanel, filename: str, canvas_rect: Rect, window_rect: Rect) -> BoxGeometry:
    """Box the tab of a file that is not shown, or a placeholder under the panel header."""
    tab = panel.tab_rect(filename)
    if tab is not None and _rect_on_screen(tab, window_rect):
        return BoxGeometry(
            x=tab.x - canvas_rect.x,
            y=tab.y - canvas_rect.y,
            width=tab.width,
            height=tab.height,
        )
    panel_rect = panel.panel_rect()
    if panel_rect is None:
        raise GeometryUnavailable("source panel is not mounted")
    return BoxGeometry(
        x=panel_rect.x - canvas_rect.x + PLACEHOLDER_INSET_X,
        y=panel_rect.y - canvas_rect.y + PLACEHOLDER_INSET_Y,
        width=min(PLACEHOLDER_MAX_WIDTH, panel_rect.width - 2 * PLACEHOLDER_INSET_X),
        height=PLACEHOLDER_HEIGHT,
    )


def compute_connector(
    source_box: BoxGeometry,
    output_box: BoxGeometry,
    *,
    max_control_offset: float = 100.0,
    arrow_size: float = 8.0,
) -> ConnectorGeometry:
    start_x, start_y = source_box.right_center
    end_x, end_y = output_box.left_center
    control_offset = min(abs(end_x - start_x) / 2, max_control_offset)
    control1 = (start_x + control_offset, start_y)
    control2 = (end_x - control_offset, end_y)

    angle = math.atan2(end_y - control2[1], end_x - control2[0])
    arrow_left = (
        end_x - arrow_size * math.cos(angle - ARROW_ANGLE),
        end_y - arrow_size * math.sin(angle - ARROW_ANGLE),
    )
    arrow_right = (
        end_x - arrow_size * math.cos(angle + ARROW_ANGLE),
        end_y - arrow_size * math.sin(angle + ARROW_ANGLE),
    )
    return ConnectorGeometry(
        start=(start_x, start_y),
        control1=control1,
        control2=control2,
        end=(end_x, end_y),
        arrow_left=arrow_left,
        arrow_right=arrow_right,
    )


def build_overlay_scene(
    cross_reference: Optional[CrossReference],
    *,
    source_editor: Optional[EditorSurface],
    output_editor: Optional[EditorSurface],
    source_panel: Optional[TabStripPanel],
    canvas_rect: Optional[Rect],
    window_rect: Optional[Rect],
    active_output: Optional[str],
    settings: OverlaySettings,
) -> Optional[OverlayScene]:
    """Compute the scene for one frame; None means draw nothing."""
    if cross_reference is None or source_editor is None or output_editor is None:
        return None
    try:
        if canvas_rect is None or canvas_rect.width <= 0 or canvas_rect.height <= 0:
            raise GeometryUnavailable("overlay canvas has no size")
        if cross_reference.generated_filename != active_output:
            raise GeometryUnavailable(f"{cross_reference.generated_filename} is not the displayed output")

        output_box = box_for_position(
            output_editor,
            cross_reference.generated_line,
            cross_reference.generated_column,
            cross_reference.generated_column_end,
            canvas_rect,
            settings,
        )
        if cross_reference.is_original_visible:
            source_box = box_for_position(
                source_editor,
                cross_reference.original_line,
                cross_reference.original_column,
                cross_reference.original_column_end,
                canvas_rect,
                settings,
            )
        else:
            if source_panel is None:
                raise GeometryUnavailable("source panel is not mounted")
            source_box = tab_fallback_box(
                source_panel,
                cross_reference.original_filename,
                canvas_rect,
                window_rect or canvas_rect,
            )
    except GeometryUnavailable as exc:
        _LOGGER.debug("Skipping overlay frame: %s", exc)
        return None

    return OverlayScene(
        source_box=source_box,
        output_box=output_box,
        connector=compute_connector(
            source_box,
            output_box,
            max_control_offset=settings.max_control_offset,
            arrow_size=settings.arrow_size,
        ),
        color=color_for_segment(cross_reference.color_index),
    )


class OverlayPainterAdapter:
    def set_pen(self, color: RGBA, *, width: float) -> None: ...
    def set_fill(self, color: Optional[RGBA]) -> None: ...
    def draw_rect(self, box: BoxGeometry) -> None: ...
    def draw_cubic(self, start: Point, control1: Point, control2: Point, end: Point) -> None: ...
    def draw_line(self, start: Point, end: Point) -> None: ...


def render_overlay(
    adapter: OverlayPainterAdapter,
    scene: Optional[OverlayScene],
    *,
    trace: Optional[Callable[[str, Mapping[str, Any]], None]] = None,
) -> None:
    """Paint source box, output box, curve and arrowhead, in that order."""
    if scene is None:
        return
    stroke = scene.color.border
    fill = scene.color.bg

    for box in (scene.source_box, scene.output_box):
        adapter.set_pen(stroke, width=BOX_STROKE_WIDTH)
        adapter.set_fill(fill)
        adapter.draw_rect(box)

    connector = scene.connector
    adapter.set_pen(stroke, width=CURVE_STROKE_WIDTH)
    adapter.set_fill(None)
    adapter.draw_cubic(connector.start, connector.control1, connector.control2, connector.end)
    adapter.draw_line(connector.end, connector.arrow_left)
    adapter.draw_line(connector.end, connector.arrow_right)
    if trace:
        trace(
            "render_overlay:draw",
            {
                "source_box": scene.source_box,
                "output_box": scene.output_box,
                "start": connector.start,
                "end": connector.end,
            },
        )
