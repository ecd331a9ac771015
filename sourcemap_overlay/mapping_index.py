"""Source-map decoding and per-line lookup indices.

A payload is decoded once into ``Mapping`` records and bucketed two ways:
by generated line, and by (original source, original line). Within each
bucket the records are sorted by column and every record gets a derived
exclusive end column: the start of the next record in the same bucket, or a
width heuristic for the last one. When several records share a start column
in a bucket only the last one decoded is kept, so starts within a bucket are
unique.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping as MappingType, Optional, Sequence, Tuple

from ecma426.codec import decode

from sourcemap_overlay.errors import DecodeError
from sourcemap_overlay.logging_utils import get_logger

_LOGGER = get_logger("Index")

FALLBACK_SEGMENT_WIDTH = 5
SUPPORTED_VERSION = 3


@dataclass(frozen=True)
class Mapping:
    generated_line: int
    generated_column: int
    generated_column_end: int
    source: Optional[str] = None
    original_line: Optional[int] = None
    original_column: Optional[int] = None
    original_column_end: Optional[int] = None
    name: Optional[str] = None

    @property
    def has_original(self) -> bool:
        return bool(self.source) and self.original_line is not None and self.original_column is not None

    @property
    def segment_key(self) -> Optional[Tuple[str, int, int]]:
        if not self.has_original:
            return None
        return (self.source, self.original_line, self.original_column)  # type: ignore[return-value]


@dataclass(frozen=True)
class MappingIndex:
    by_generated_line: Dict[int, List[Mapping]] = field(default_factory=dict)
    by_original: Dict[str, Dict[int, List[Mapping]]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "MappingIndex":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.by_generated_line and not self.by_original

    def generated_bucket(self, line: int) -> Sequence[Mapping]:
        return self.by_generated_line.get(line, ())

    def original_bucket(self, source: str, line: int) -> Sequence[Mapping]:
        lines = self.by_original.get(source)
        if lines is None:
            return ()
        return lines.get(line, ())

    def sources(self) -> List[str]:
        return list(self.by_original.keys())

    def iter_generated(self) -> Iterator[Mapping]:
        """All mappings in generated line order, then column order."""
        for line in sorted(self.by_generated_line):
            yield from self.by_generated_line[line]

    def iter_original(self, source: str) -> Iterator[Mapping]:
        """All mappings of ``source`` in original line order, then column order."""
        lines = self.by_original.get(source) or {}
        for line in sorted(lines):
            yield from lines[line]


@dataclass(frozen=True)
class _RawRecord:
    generated_line: int
    generated_column: int
    source: Optional[str]
    original_line: Optional[int]
    original_column: Optional[int]
    name: Optional[str]


def _segment_end(start: int, next_start: Optional[int], name: Optional[str]) -> int:
    if next_start is not None:
        end = next_start
    else:
        end = start + (len(name) if name else FALLBACK_SEGMENT_WIDTH)
    return max(end, start + 1)


def _last_per_column(positions: List[int], column_of: Callable[[int], int]) -> List[int]:
    """Sort ``positions`` by start column, keeping only the last record decoded for each column."""
    by_column: Dict[int, int] = {}
    for position in positions:
        by_column[column_of(position)] = position
    return [by_column[column] for column in sorted(by_column)]


def _join_source_root(source_root: Any, source: str) -> str:
    if not source or not isinstance(source_root, str) or not source_root:
        return source
    if "://" in source or source.startswith("/"):
        return source
    return source_root.rstrip("/") + "/" + source


def _decode_records(obj: Dict[str, Any]) -> List[_RawRecord]:
    version = obj.get("version")
    if version is not None and version != SUPPORTED_VERSION:
        raise DecodeError(f"unsupported source map version {version!r}")

    # The codec validates field and element types for regular and sectioned maps.
    tokens = decode(obj).tokens
    source_root = None if "sections" in obj else obj.get("sourceRoot")

    records: List[_RawRecord] = []
    for token in tokens:
        if token.source:
            records.append(
                _RawRecord(
                    generated_line=token.generated_line + 1,
                    generated_column=token.generated_column,
                    source=_join_source_root(source_root, token.source),
                    original_line=token.original_line + 1,
                    original_column=token.original_column,
                    name=token.name,
                )
            )
        else:
            records.append(
                _RawRecord(
                    generated_line=token.generated_line + 1,
                    generated_column=token.generated_column,
                    source=None,
                    original_line=None,
                    original_column=None,
                    name=None,
                )
            )
    return records


def parse_payload(payload: str, *, filename: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(payload, str) or not payload.strip():
        raise DecodeError("empty source map payload", filename=filename)
    try:
        obj = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc}", filename=filename) from exc
    if not isinstance(obj, dict):
        raise DecodeError("source map payload is not a JSON object", filename=filename)
    return obj


def _index_records(records: List[_RawRecord]) -> MappingIndex:
    generated_buckets: Dict[int, List[int]] = {}
    for position, record in enumerate(records):
        generated_buckets.setdefault(record.generated_line, []).append(position)
    for line, positions in generated_buckets.items():
        generated_buckets[line] = _last_per_column(positions, lambda pos: records[pos].generated_column)
    kept = sorted(pos for positions in generated_buckets.values() for pos in positions)

    original_buckets: Dict[str, Dict[int, List[int]]] = {}
    for position in kept:
        record = records[position]
        if record.source and record.original_line is not None:
            lines = original_buckets.setdefault(record.source, {})
            lines.setdefault(record.original_line, []).append(position)
    for lines in original_buckets.values():
        for line, positions in lines.items():
            lines[line] = _last_per_column(positions, lambda pos: records[pos].original_column)

    generated_ends: Dict[int, int] = {}
    for positions in generated_buckets.values():
        for offset, pos in enumerate(positions):
            next_start = records[positions[offset + 1]].generated_column if offset + 1 < len(positions) else None
            generated_ends[pos] = _segment_end(records[pos].generated_column, next_start, records[pos].name)

    # Keyed by segment so records sharing an original start get the same range.
    original_ends: Dict[Tuple[str, int, int], int] = {}
    for source, lines in original_buckets.items():
        for line, positions in lines.items():
            for offset, pos in enumerate(positions):
                next_start = records[positions[offset + 1]].original_column if offset + 1 < len(positions) else None
                original_ends[(source, line, records[pos].original_column)] = _segment_end(
                    records[pos].original_column, next_start, records[pos].name
                )

    mappings: Dict[int, Mapping] = {}
    for pos in kept:
        record = records[pos]
        original_end = None
        if record.source and record.original_line is not None:
            original_end = original_ends.get((record.source, record.original_line, record.original_column))
        mappings[pos] = Mapping(
            generated_line=record.generated_line,
            generated_column=record.generated_column,
            generated_column_end=generated_ends[pos],
            source=record.source,
            original_line=record.original_line,
            original_column=record.original_column,
            original_column_end=original_end,
            name=record.name,
        )

    return MappingIndex(
        by_generated_line={
            line: [mappings[pos] for pos in positions] for line, positions in generated_buckets.items()
        },
        by_original={
            source: {line: [mappings[pos] for pos in positions] for line, positions in lines.items()}
            for source, lines in original_buckets.items()
        },
    )


def build_mapping_index(payload: str, *, filename: Optional[str] = None) -> MappingIndex:
    """Decode ``payload`` and build both lookup indices.

    Raises ``DecodeError`` for anything the codec rejects or the records cannot index.
    """
    obj = parse_payload(payload, filename=filename)
    try:
        index = _index_records(_decode_records(obj))
    except DecodeError as exc:
        exc.filename = exc.filename or filename
        raise
    except (ValueError, TypeError, KeyError, IndexError) as exc:
        raise DecodeError(str(exc) or type(exc).__name__, filename=filename) from exc

    _LOGGER.debug(
        "Built mapping index for %s: generated_lines=%d sources=%d",
        filename or "<payload>",
        len(index.by_generated_line),
        len(index.by_original),
    )
    return index


class MappingIndexCache:
    """Per-output-file index cache bound to one bundle result.

    Indices are built lazily and stored only once complete. Handing over a
    different bundle result object drops every cached index.
    """

    def __init__(self, payloads: Optional[MappingType[str, str]] = None) -> None:
        self._payloads: MappingType[str, str] = payloads if payloads is not None else {}
        self._indices: Dict[str, MappingIndex] = {}
        self.build_count = 0

    @property
    def payloads(self) -> MappingType[str, str]:
        return self._payloads

    def output_filenames(self) -> List[str]:
        return list(self._payloads.keys())

    def reset(self, payloads: Optional[MappingType[str, str]]) -> bool:
        """Bind a new bundle result; returns True when the cache was cleared."""
        new_payloads: MappingType[str, str] = payloads if payloads is not None else {}
        if new_payloads is self._payloads:
            return False
        self._payloads = new_payloads
        self._indices = {}
        _LOGGER.debug("Mapping index cache cleared (%d payloads)", len(new_payloads))
        return True

    def clear(self) -> None:
        self._indices = {}

    def get(self, filename: str) -> Optional[MappingIndex]:
        """Return the index for ``filename``, or None when the bundle has no map for it.

        Undecodable payloads are cached as an empty index.
        """
        cached = self._indices.get(filename)
        if cached is not None:
            return cached
        payload = self._payloads.get(filename)
        if payload is None:
            return None
        try:
            index = build_mapping_index(payload, filename=filename)
        except DecodeError as exc:
            _LOGGER.debug("Treating %s as unmapped: %s", filename, exc)
            index = MappingIndex.empty()
        self.build_count += 1
        self._indices = {**self._indices, filename: index}
        return index
