"""Resolution of a live pointer position into a cross-reference.

Columns handled here are 0-based. The two directions differ:

* output -> source takes the nearest preceding segment with no upper bound,
  so a pointer past the last segment on a line still resolves to it;
* source -> output requires the pointer to fall inside the segment's derived
  ``[start, end)`` range.
"""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from operator import attrgetter
from typing import Optional, Sequence

from sourcemap_overlay.logging_utils import get_logger
from sourcemap_overlay.mapping_index import Mapping, MappingIndexCache
from sourcemap_overlay.path_matching import find_source_key, resolve_open_file
from sourcemap_overlay.segment_colors import SegmentColorTable

_LOGGER = get_logger("Hover")

_BY_GENERATED_COLUMN = attrgetter("generated_column")
_BY_ORIGINAL_COLUMN = attrgetter("original_column")


class Pane(str, Enum):
    SOURCE = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class HoverPosition:
    pane: Pane
    filename: str
    line: int
    column: int


@dataclass(frozen=True)
class CrossReference:
    pane: Pane
    original_filename: str
    original_line: int
    original_column: int
    original_column_end: Optional[int]
    generated_filename: str
    generated_line: int
    generated_column: int
    generated_column_end: Optional[int]
    is_original_visible: bool
    color_index: Optional[int] = None


def _last_at_or_before(bucket: Sequence[Mapping], column: int, key) -> Optional[Mapping]:
    position = bisect_right(bucket, column, key=key)
    if position == 0:
        return None
    return bucket[position - 1]


class HoverResolver:
    """Stateless lookups over a ``MappingIndexCache``."""

    def __init__(self, cache: MappingIndexCache) -> None:
        self._cache = cache

    def resolve_output_hover(
        self,
        *,
        output_filename: str,
        line: int,
        column: int,
        input_files: Sequence[str],
        active_input: Optional[str],
        color_table: Optional[SegmentColorTable] = None,
    ) -> Optional[CrossReference]:
        index = self._cache.get(output_filename)
        if index is None:
            return None
        match = _last_at_or_before(index.generated_bucket(line), column, _BY_GENERATED_COLUMN)
        if match is None or not match.has_original:
            return None

        target = resolve_open_file(match.source, input_files)
        if target is None:
            _LOGGER.debug("No open file for source %r (output %s:%d)", match.source, output_filename, line)
            return None

        color_index = None
        if color_table is not None:
            color_index = color_table.color_index(match.source, match.original_line, match.original_column)
            if color_index is None:
                color_index = color_table.color_index(target, match.original_line, match.original_column)

        return CrossReference(
            pane=Pane.OUTPUT,
            original_filename=target,
            original_line=match.original_line,  # type: ignore[arg-type]
            original_column=match.original_column,  # type: ignore[arg-type]
            original_column_end=match.original_column_end,
            generated_filename=output_filename,
            generated_line=line,
            generated_column=match.generated_column,
            generated_column_end=match.generated_column_end,
            is_original_visible=target == active_input,
            color_index=color_index,
        )

    def resolve_source_hover(
        self,
        *,
        source_filename: str,
        line: int,
        column: int,
        output_files: Optional[Sequence[str]] = None,
        color_table: Optional[SegmentColorTable] = None,
    ) -> Optional[CrossReference]:
        candidates = list(output_files) if output_files is not None else self._cache.output_filenames()
        for output_filename in candidates:
            index = self._cache.get(output_filename)
            if index is None:
                continue
            source_key = find_source_key(index.sources(), source_filename)
            if source_key is None:
                continue
            match = _last_at_or_before(index.original_bucket(source_key, line), column, _BY_ORIGINAL_COLUMN)
            if match is None:
                continue
            end = match.original_column_end
            if end is not None and column >= end:
                continue

            color_index = None
            if color_table is not None:
                color_index = color_table.color_index(source_key, match.original_line, match.original_column)

            return CrossReference(
                pane=Pane.SOURCE,
                original_filename=source_filename,
                original_line=match.original_line,  # type: ignore[arg-type]
                original_column=match.original_column,  # type: ignore[arg-type]
                original_column_end=end,
                generated_filename=output_filename,
                generated_line=match.generated_line,
                generated_column=match.generated_column,
                generated_column_end=match.generated_column_end,
                is_original_visible=True,
                color_index=color_index,
            )
        return None
