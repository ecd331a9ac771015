from __future__ import annotations

from typing import Callable, Dict, Optional

from sourcemap_overlay.logging_utils import get_logger

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]

_LOGGER = get_logger("Session")


class Debouncer:
    """Keyed debounce helpers over an injected scheduler."""

    def __init__(self, *, after: AfterFn, after_cancel: AfterCancelFn, default_delay_ms: int = 300) -> None:
        self._after = after
        self._after_cancel = after_cancel
        self.default_delay_ms = max(0, int(default_delay_ms))
        self._handles: Dict[str, object] = {}

    def schedule(self, key: str, callback: Callable[[], None], *, delay_ms: Optional[int] = None) -> object:
        self.cancel(key)
        delay = self.default_delay_ms if delay_ms is None else max(0, int(delay_ms))

        def _fire() -> None:
            self._handles.pop(key, None)
            callback()

        handle = self._after(delay, _fire)
        self._handles[key] = handle
        return handle

    def cancel(self, key: str) -> None:
        handle = self._handles.pop(key, None)
        if handle is None:
            return
        try:
            self._after_cancel(handle)
        except (RuntimeError, ValueError) as exc:
            _LOGGER.debug("Failed to cancel debounce %s: %s", key, exc)

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(key)

    def pending(self, key: str) -> bool:
        return key in self._handles
