"""Bidirectional source-map hover visualization for a source pane and an output pane."""
from __future__ import annotations

__version__ = "0.3.0"
