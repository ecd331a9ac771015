"""Segment palette and per-pass color assignment."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from sourcemap_overlay.mapping_index import MappingIndex

SegmentKey = Tuple[str, int, int]
RGBA = Tuple[int, int, int, float]

BACKGROUND_ALPHA = 0.25
BORDER_ALPHA = 0.8


@dataclass(frozen=True)
class SegmentColor:
    bg: RGBA
    border: RGBA

    @staticmethod
    def css(rgba: RGBA) -> str:
        red, green, blue, alpha = rgba
        return f"rgba({red}, {green}, {blue}, {alpha})"


def _color(red: int, green: int, blue: int) -> SegmentColor:
    return SegmentColor(bg=(red, green, blue, BACKGROUND_ALPHA), border=(red, green, blue, BORDER_ALPHA))


SEGMENT_COLORS: Tuple[SegmentColor, ...] = (
    _color(255, 99, 132),  # pink
    _color(54, 162, 235),  # blue
    _color(255, 206, 86),  # yellow
    _color(75, 192, 192),  # teal
    _color(153, 102, 255),  # purple
    _color(255, 159, 64),  # orange
    _color(46, 204, 113),  # green
    _color(231, 76, 60),  # red
    _color(52, 152, 219),  # light blue
    _color(155, 89, 182),  # violet
    _color(241, 196, 15),  # gold
    _color(26, 188, 156),  # turquoise
    _color(230, 126, 34),  # carrot
    _color(149, 165, 166),  # gray
    _color(211, 84, 0),  # pumpkin
    _color(142, 68, 173),  # amethyst
)
PALETTE_SIZE = len(SEGMENT_COLORS)


def color_for_segment(index: Optional[int]) -> SegmentColor:
    """Palette entry for a color index; unset falls back to entry 0."""
    return SEGMENT_COLORS[(index or 0) % PALETTE_SIZE]


def color_key(index: int) -> str:
    return f"segment-bg-{index % PALETTE_SIZE}"


@dataclass
class SegmentColorTable:
    """Counter values assigned during one decoration pass."""

    assigned: Dict[SegmentKey, int] = field(default_factory=dict)
    counter: int = 0

    def next_value(self) -> int:
        value = self.counter
        self.counter += 1
        return value

    def record(self, key: SegmentKey, value: int) -> None:
        self.assigned[key] = value

    def value_for(self, key: SegmentKey) -> Optional[int]:
        return self.assigned.get(key)

    def color_index(self, source: str, line: int, column: int) -> Optional[int]:
        value = self.assigned.get((source, line, column))
        if value is None:
            return None
        return value % PALETTE_SIZE

    def __len__(self) -> int:
        return len(self.assigned)


@dataclass(frozen=True)
class ColorPass:
    """Result of one pass: the table plus the raw value given to every decorated mapping."""

    table: SegmentColorTable
    generated_values: Tuple[int, ...]
    original_values: Tuple[int, ...]


def assign_segment_colors(output_index: MappingIndex, source_key: Optional[str]) -> ColorPass:
    """Run a full color pass over the active output file and the active original file.

    Generated mappings are walked in line/column order and each one takes the
    next counter value. The original file's mappings then reuse the value of
    their generated counterpart, or take a fresh one when there is none.
    """
    table = SegmentColorTable()
    generated_values = []
    for mapping in output_index.iter_generated():
        value = table.next_value()
        key = mapping.segment_key
        if key is not None:
            table.record(key, value)
        generated_values.append(value)

    original_values = []
    if source_key is not None:
        for mapping in output_index.iter_original(source_key):
            key = (source_key, mapping.original_line, mapping.original_column)
            value = table.value_for(key)  # type: ignore[arg-type]
            if value is None:
                value = table.next_value()
                table.record(key, value)  # type: ignore[arg-type]
            original_values.append(value)

    return ColorPass(
        table=table,
        generated_values=tuple(generated_values),
        original_values=tuple(original_values),
    )
