from __future__ import annotations

from types import SimpleNamespace

import pytest

from sourcemap_overlay.config import OverlaySettings
from sourcemap_overlay.editor_surface import Rect
from sourcemap_overlay.errors import GeometryUnavailable
from sourcemap_overlay.hover_resolver import CrossReference, Pane
from sourcemap_overlay.overlay_geometry import (
    BoxGeometry,
    OverlayPainterAdapter,
    box_for_position,
    build_overlay_scene,
    compute_connector,
    render_overlay,
    tab_fallback_box,
)
from sourcemap_overlay.segment_colors import SEGMENT_COLORS

CANVAS = Rect(10.0, 20.0, 800.0, 500.0)
WINDOW = Rect(0.0, 0.0, 900.0, 600.0)
SETTINGS = OverlaySettings()


def _cross_reference(**overrides) -> CrossReference:
    values = dict(
        pane=Pane.OUTPUT,
        original_filename="src/index.js",
        original_line=1,
        original_column=9,
        original_column_end=14,
        generated_filename="bundle.js",
        generated_line=3,
        generated_column=10,
        generated_column_end=13,
        is_original_visible=True,
        color_index=2,
    )
    values.update(overrides)
    return CrossReference(**values)


def test_box_covers_segment_range(fake_editor_factory):
    editor = fake_editor_factory(["", "", "x" * 40])

    box = box_for_position(editor, 3, 10, 13, CANVAS, SETTINGS)

    # viewport (100, 50) - canvas (10, 20) + column offset (80, 40); 17px tall box centered in 20px
    assert box == BoxGeometry(x=170.0, y=71.0, width=24.0, height=17)


def test_box_falls_back_to_word_under_column(fake_editor_factory):
    editor = fake_editor_factory(["let greeting = 1"])

    box = box_for_position(editor, 1, 6, None, CANVAS, SETTINGS)

    assert box.x == 100 - 10 + 4 * 8
    assert box.width == (12 - 4) * 8


def test_box_enforces_minimum_width(fake_editor_factory):
    editor = fake_editor_factory(["abc"], char_width=2.0)

    box = box_for_position(editor, 1, 1, 1, CANVAS, SETTINGS)

    assert box.width == 4.0


def test_box_unavailable_when_line_scrolled_out(fake_editor_factory):
    editor = fake_editor_factory(["a"] * 10, scroll_top=100.0)

    with pytest.raises(GeometryUnavailable):
        box_for_position(editor, 1, 0, 1, CANVAS, SETTINGS)


def test_tab_fallback_uses_visible_tab(fake_panel_factory):
    panel = fake_panel_factory({"src/util.js": Rect(120.0, 5.0, 80.0, 24.0)})

    box = tab_fallback_box(panel, "src/util.js", CANVAS, WINDOW)

    assert box == BoxGeometry(x=110.0, y=-15.0, width=80.0, height=24.0)


def test_tab_fallback_placeholder_when_tab_offscreen(fake_panel_factory):
    panel = fake_panel_factory({"src/util.js": Rect(950.0, 5.0, 80.0, 24.0)})

    box = tab_fallback_box(panel, "src/util.js", CANVAS, WINDOW)

    assert box == BoxGeometry(x=110.0, y=15.0, width=200.0, height=24.0)


def test_tab_fallback_placeholder_width_shrinks_with_panel(fake_panel_factory):
    panel = fake_panel_factory({}, panel=Rect(0.0, 0.0, 100.0, 300.0))

    box = tab_fallback_box(panel, "missing.js", CANVAS, WINDOW)

    assert box.width == 60.0


def test_connector_control_points_and_arrowhead():
    connector = compute_connector(
        BoxGeometry(0.0, 0.0, 10.0, 10.0),
        BoxGeometry(300.0, 100.0, 20.0, 10.0),
    )

    assert connector.start == (10.0, 5.0)
    assert connector.end == (300.0, 105.0)
    assert connector.control1 == (110.0, 5.0)
    assert connector.control2 == (200.0, 105.0)
    assert connector.arrow_left == pytest.approx((293.0718, 109.0), abs=1e-3)
    assert connector.arrow_right == pytest.approx((293.0718, 101.0), abs=1e-3)


def test_connector_offset_is_half_distance_when_close():
    connector = compute_connector(BoxGeometry(0.0, 0.0, 10.0, 10.0), BoxGeometry(50.0, 0.0, 10.0, 10.0))
    assert connector.control1 == (30.0, 5.0)
    assert connector.control2 == (30.0, 5.0)


def test_scene_with_visible_original(fake_editor_factory, fake_panel_factory):
    source_editor = fake_editor_factory(["function greet() {}"], viewport=Rect(0.0, 40.0, 400.0, 400.0))
    output_editor = fake_editor_factory(["", "", "x" * 40])

    scene = build_overlay_scene(
        _cross_reference(),
        source_editor=source_editor,
        output_editor=output_editor,
        source_panel=fake_panel_factory(),
        canvas_rect=CANVAS,
        window_rect=WINDOW,
        active_output="bundle.js",
        settings=SETTINGS,
    )

    assert scene is not None
    assert scene.source_box.x == 0 - 10 + 9 * 8
    assert scene.source_box.width == 5 * 8
    assert scene.output_box.x == 170.0
    assert scene.connector.start == scene.source_box.right_center
    assert scene.connector.end == scene.output_box.left_center
    assert scene.color == SEGMENT_COLORS[2]


def test_scene_boxes_tab_when_original_hidden(fake_editor_factory, fake_panel_factory):
    panel = fake_panel_factory({"src/index.js": Rect(120.0, 5.0, 80.0, 24.0)})

    scene = build_overlay_scene(
        _cross_reference(is_original_visible=False),
        source_editor=fake_editor_factory(["unrelated"]),
        output_editor=fake_editor_factory(["", "", "x" * 40]),
        source_panel=panel,
        canvas_rect=CANVAS,
        window_rect=WINDOW,
        active_output="bundle.js",
        settings=SETTINGS,
    )

    assert scene.source_box == BoxGeometry(x=110.0, y=-15.0, width=80.0, height=24.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"canvas_rect": None},
        {"canvas_rect": Rect(0.0, 0.0, 0.0, 0.0)},
        {"active_output": "other.js"},
        {"source_editor": None},
    ],
)
def test_scene_skipped_when_geometry_unavailable(fake_editor_factory, fake_panel_factory, overrides):
    kwargs = dict(
        source_editor=fake_editor_factory(["function greet() {}"]),
        output_editor=fake_editor_factory(["", "", "x" * 40]),
        source_panel=fake_panel_factory(),
        canvas_rect=CANVAS,
        window_rect=WINDOW,
        active_output="bundle.js",
        settings=SETTINGS,
    )
    kwargs.update(overrides)

    assert build_overlay_scene(_cross_reference(), **kwargs) is None


def test_scene_skipped_when_output_viewport_unmounted(fake_editor_factory, fake_panel_factory):
    scene = build_overlay_scene(
        _cross_reference(),
        source_editor=fake_editor_factory(["function greet() {}"]),
        output_editor=fake_editor_factory(["", "", "x" * 40], viewport=None),
        source_panel=fake_panel_factory(),
        canvas_rect=CANVAS,
        window_rect=WINDOW,
        active_output="bundle.js",
        settings=SETTINGS,
    )
    assert scene is None


def test_no_cross_reference_draws_nothing():
    calls = []
    render_overlay(SimpleNamespace(set_pen=lambda *a, **k: calls.append(a)), None)
    assert calls == []


class _RecordingAdapter(OverlayPainterAdapter):
    def __init__(self) -> None:
        self.calls = []

    def set_pen(self, color, *, width):
        self.calls.append(("pen", color, width))

    def set_fill(self, color):
        self.calls.append(("fill", color))

    def draw_rect(self, box):
        self.calls.append(("rect", box))

    def draw_cubic(self, start, control1, control2, end):
        self.calls.append(("cubic", start, end))

    def draw_line(self, start, end):
        self.calls.append(("line", start, end))


def test_render_order_boxes_then_curve_then_arrow():
    source_box = BoxGeometry(0.0, 0.0, 10.0, 10.0)
    output_box = BoxGeometry(300.0, 100.0, 20.0, 10.0)
    color = SEGMENT_COLORS[4]
    scene = SimpleNamespace(
        source_box=source_box,
        output_box=output_box,
        connector=compute_connector(source_box, output_box),
        color=color,
    )
    adapter = _RecordingAdapter()
    traces = []

    render_overlay(adapter, scene, trace=lambda stage, details: traces.append(stage))

    kinds = [call[0] for call in adapter.calls]
    assert kinds == ["pen", "fill", "rect", "pen", "fill", "rect", "pen", "fill", "cubic", "line", "line"]
    assert adapter.calls[2] == ("rect", source_box)
    assert adapter.calls[5] == ("rect", output_box)
    assert adapter.calls[0] == ("pen", color.border, 2.0)
    assert adapter.calls[1] == ("fill", color.bg)
    assert adapter.calls[6] == ("pen", color.border, 2.5)
    assert adapter.calls[7] == ("fill", None)
    assert traces == ["render_overlay:draw"]
