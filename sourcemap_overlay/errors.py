"""Exception types raised inside the overlay core.

None of these reach the host UI: each one is recovered where it is caught and
degrades to "show nothing".
"""
from __future__ import annotations


class SourcemapOverlayError(Exception):
    """Base class for overlay core errors."""


class DecodeError(SourcemapOverlayError):
    """A source-map payload could not be decoded."""

    def __init__(self, message: str, *, filename: str | None = None) -> None:
        super().__init__(message)
        self.filename = filename

    def __str__(self) -> str:
        base = super().__str__()
        if self.filename:
            return f"{self.filename}: {base}"
        return base


class GeometryUnavailable(SourcemapOverlayError):
    """Live editor geometry is missing for the current frame."""
