"""Matching of source ids recorded in a source map to open file names.

Bundlers record sources under virtual roots (``webpack:///``) or with a
leading ``./``; the editor shows plain relative names. Matching is exact
first, then by path suffix in either direction. Suffixes only match on a
``/`` boundary, so ``data.js`` never matches ``a.js``.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

VIRTUAL_ROOT_PREFIXES = ("webpack:///",)
RELATIVE_PREFIX = "./"


def source_candidates(source: str) -> List[str]:
    """Return the raw id, the id with the virtual root stripped, then with ``./`` stripped."""
    candidates = [source]
    for prefix in VIRTUAL_ROOT_PREFIXES:
        if source.startswith(prefix):
            candidates.append(source[len(prefix):])
    if source.startswith(RELATIVE_PREFIX):
        candidates.append(source[len(RELATIVE_PREFIX):])
    unique: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def _suffix_match(longer: str, shorter: str) -> bool:
    if not shorter or len(shorter) >= len(longer):
        return False
    return longer.endswith(shorter) and (shorter.startswith("/") or longer[-len(shorter) - 1] == "/")


def paths_match(candidate: str, filename: str) -> bool:
    return candidate == filename or _suffix_match(candidate, filename) or _suffix_match(filename, candidate)


def resolve_open_file(source: Optional[str], open_files: Sequence[str]) -> Optional[str]:
    """Map a recorded source id to one of ``open_files``; None when nothing matches."""
    if not source or not open_files:
        return None
    candidates = source_candidates(source)
    for candidate in candidates:
        for filename in open_files:
            if candidate == filename:
                return filename
    for candidate in candidates:
        for filename in open_files:
            if paths_match(candidate, filename):
                return filename
    return None


def find_source_key(sources: Iterable[str], filename: str) -> Optional[str]:
    """Pick the recorded source id that names ``filename``; exact matches win."""
    keys = list(sources)
    if not filename:
        return None
    for key in keys:
        if filename in source_candidates(key):
            return key
    for key in keys:
        if any(paths_match(candidate, filename) for candidate in source_candidates(key)):
            return key
    return None
