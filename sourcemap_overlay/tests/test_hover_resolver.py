from __future__ import annotations

from sourcemap_overlay.hover_resolver import HoverResolver, Pane
from sourcemap_overlay.mapping_index import MappingIndexCache
from sourcemap_overlay.segment_colors import assign_segment_colors

SOURCE = "webpack:///./src/index.js"
INPUT_FILES = ["src/index.js", "src/util.js"]


def _resolver(payload):
    cache = MappingIndexCache({"bundle.js": payload})
    return HoverResolver(cache), cache


def test_output_hover_picks_nearest_preceding_segment(basic_payload):
    resolver, _cache = _resolver(basic_payload)

    result = resolver.resolve_output_hover(
        output_filename="bundle.js",
        line=1,
        column=12,
        input_files=INPUT_FILES,
        active_input="src/index.js",
    )

    assert result is not None
    assert result.pane is Pane.OUTPUT
    assert result.original_filename == "src/index.js"
    assert (result.original_line, result.original_column, result.original_column_end) == (1, 9, 14)
    assert (result.generated_line, result.generated_column, result.generated_column_end) == (1, 10, 20)
    assert result.is_original_visible is True


def test_output_hover_past_last_segment_still_resolves(basic_payload):
    resolver, _cache = _resolver(basic_payload)

    result = resolver.resolve_output_hover(
        output_filename="bundle.js",
        line=3,
        column=50,
        input_files=INPUT_FILES,
        active_input="src/index.js",
    )

    assert result is not None
    assert result.generated_column == 10
    assert (result.original_line, result.original_column) == (3, 5)


def test_output_hover_round_trips_through_source_hover(basic_payload):
    resolver, _cache = _resolver(basic_payload)
    forward = resolver.resolve_output_hover(
        output_filename="bundle.js",
        line=1,
        column=12,
        input_files=INPUT_FILES,
        active_input="src/index.js",
    )
    backward = resolver.resolve_source_hover(
        source_filename=forward.original_filename,
        line=forward.original_line,
        column=forward.original_column,
    )

    assert backward is not None
    assert backward.generated_filename == "bundle.js"
    assert backward.generated_line == 1
    assert backward.generated_column <= 12 < backward.generated_column_end


def test_output_hover_before_first_segment_or_on_empty_line(basic_payload):
    resolver, _cache = _resolver(basic_payload)
    kwargs = dict(output_filename="bundle.js", input_files=INPUT_FILES, active_input="src/index.js")

    assert resolver.resolve_output_hover(line=2, column=0, **kwargs) is None
    assert resolver.resolve_output_hover(line=99, column=0, **kwargs) is None


def test_output_hover_without_map_or_open_file(basic_payload):
    resolver, _cache = _resolver(basic_payload)

    assert (
        resolver.resolve_output_hover(
            output_filename="other.js", line=1, column=0, input_files=INPUT_FILES, active_input=None
        )
        is None
    )
    assert (
        resolver.resolve_output_hover(
            output_filename="bundle.js", line=1, column=0, input_files=["src/util.js"], active_input="src/util.js"
        )
        is None
    )


def test_switching_active_input_flips_visibility_without_rebuild(basic_payload):
    resolver, cache = _resolver(basic_payload)
    kwargs = dict(output_filename="bundle.js", line=1, column=0, input_files=INPUT_FILES)

    visible = resolver.resolve_output_hover(active_input="src/index.js", **kwargs)
    hidden = resolver.resolve_output_hover(active_input="src/util.js", **kwargs)

    assert visible.is_original_visible is True
    assert hidden.is_original_visible is False
    assert hidden.original_filename == "src/index.js"
    assert cache.build_count == 1


def test_source_hover_requires_column_inside_segment(basic_payload):
    resolver, _cache = _resolver(basic_payload)

    assert resolver.resolve_source_hover(source_filename="src/index.js", line=3, column=20) is None

    inside = resolver.resolve_source_hover(source_filename="src/index.js", line=3, column=7)
    assert inside is not None
    assert inside.pane is Pane.SOURCE
    assert (inside.original_column, inside.original_column_end) == (5, 8)
    assert (inside.generated_line, inside.generated_column, inside.generated_column_end) == (3, 10, 13)
    assert inside.is_original_visible is True


def test_source_hover_for_unmapped_file_or_line(basic_payload):
    resolver, _cache = _resolver(basic_payload)

    assert resolver.resolve_source_hover(source_filename="src/util.js", line=1, column=0) is None
    assert resolver.resolve_source_hover(source_filename="src/index.js", line=42, column=0) is None


def test_source_hover_walks_outputs_in_given_order(payload_factory):
    cache = MappingIndexCache(
        {
            "a.js": payload_factory([(1, 0, "src/index.js", 1, 0, None)]),
            "b.js": payload_factory([(5, 4, "src/index.js", 1, 0, None)]),
        }
    )
    resolver = HoverResolver(cache)

    first = resolver.resolve_source_hover(source_filename="src/index.js", line=1, column=0, output_files=["b.js", "a.js"])

    assert first.generated_filename == "b.js"
    assert (first.generated_line, first.generated_column) == (5, 4)


def test_color_index_comes_from_latest_pass(basic_payload):
    resolver, cache = _resolver(basic_payload)
    table = assign_segment_colors(cache.get("bundle.js"), SOURCE).table

    output_side = resolver.resolve_output_hover(
        output_filename="bundle.js",
        line=1,
        column=12,
        input_files=INPUT_FILES,
        active_input="src/index.js",
        color_table=table,
    )
    source_side = resolver.resolve_source_hover(
        source_filename="src/index.js", line=1, column=10, color_table=table
    )

    assert output_side.color_index == 1
    assert source_side.color_index == 1


def test_undecodable_payload_resolves_to_no_match():
    cache = MappingIndexCache({"bundle.js": "{broken"})
    resolver = HoverResolver(cache)

    assert (
        resolver.resolve_output_hover(
            output_filename="bundle.js", line=1, column=0, input_files=INPUT_FILES, active_input="src/index.js"
        )
        is None
    )
    assert resolver.resolve_source_hover(source_filename="src/index.js", line=1, column=0) is None
    assert cache.get("bundle.js").is_empty
