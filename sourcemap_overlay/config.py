"""Settings and dev-mode debug flags for the sourcemap overlay."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

SETTINGS_FILENAME = "sourcemap_overlay_settings.json"
DEBUG_FILENAME = "debug.json"
DEV_MODE_ENV_VAR = "SOURCEMAP_OVERLAY_DEV_MODE"

LOG_RETENTION_MIN = 1
LOG_RETENTION_MAX = 20
DEBOUNCE_MIN_MS = 25


def is_dev_mode() -> bool:
    value = os.getenv(DEV_MODE_ENV_VAR)
    if value is None:
        return False
    token = value.strip().lower()
    if token in {"1", "true", "yes", "on"}:
        return True
    return False


@dataclass(frozen=True)
class OverlaySettings:
    """Values used to bootstrap the visualization."""

    enabled: bool = False
    format_output: bool = True
    redecorate_debounce_ms: int = 300
    settle_delay_ms: int = 100
    box_height_ratio: float = 0.85
    max_control_offset: float = 100.0
    arrow_size: float = 8.0
    default_line_height: int = 20
    log_retention: int = 5


@dataclass(frozen=True)
class DebugConfig:
    trace_hover: bool = False
    outline_canvas: bool = False


def _coerce_int(value: Any, fallback: int) -> int:
    if value is None:
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _coerce_float(value: Any, fallback: float) -> float:
    if value is None:
        return fallback
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def _read_json_object(path: Path) -> Optional[Dict[str, Any]]:
    try:
        raw = path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    return data


def load_settings(settings_path: Path) -> OverlaySettings:
    """Read settings from ``settings_path``; missing or invalid files yield defaults."""
    defaults = OverlaySettings()
    data = _read_json_object(settings_path)
    if data is None:
        return defaults

    enabled = bool(data.get("enabled", defaults.enabled))
    format_output = bool(data.get("format_output", defaults.format_output))
    if enabled:
        # Formatted output has no source map, so the two cannot both be on.
        format_output = False

    ratio = _coerce_float(data.get("box_height_ratio"), defaults.box_height_ratio)
    if not 0.0 < ratio <= 1.0:
        ratio = defaults.box_height_ratio

    retention = _coerce_int(data.get("log_retention"), defaults.log_retention)
    retention = min(LOG_RETENTION_MAX, max(LOG_RETENTION_MIN, retention))

    line_height = _coerce_int(data.get("default_line_height"), defaults.default_line_height)

    return OverlaySettings(
        enabled=enabled,
        format_output=format_output,
        redecorate_debounce_ms=max(
            DEBOUNCE_MIN_MS,
            _coerce_int(data.get("redecorate_debounce_ms"), defaults.redecorate_debounce_ms),
        ),
        settle_delay_ms=max(0, _coerce_int(data.get("settle_delay_ms"), defaults.settle_delay_ms)),
        box_height_ratio=ratio,
        max_control_offset=max(0.0, _coerce_float(data.get("max_control_offset"), defaults.max_control_offset)),
        arrow_size=max(0.0, _coerce_float(data.get("arrow_size"), defaults.arrow_size)),
        default_line_height=line_height if line_height > 0 else defaults.default_line_height,
        log_retention=retention,
    )


def load_debug_config(path: Path, *, enabled: Optional[bool] = None) -> DebugConfig:
    """Load dev-mode-only flags from debug.json."""
    if enabled is None:
        enabled = is_dev_mode()
    if not enabled:
        return DebugConfig()
    data = _read_json_object(path) or {}
    tracing = data.get("tracing")
    if isinstance(tracing, dict):
        trace_hover = bool(tracing.get("hover", False))
    else:
        trace_hover = bool(data.get("trace_hover", False))
    return DebugConfig(
        trace_hover=trace_hover,
        outline_canvas=bool(data.get("outline_canvas", False)),
    )
