from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Generic, TypeVar


T = TypeVar("T")


class DebounceState(str, Enum):
    idle = "idle"
    pending = "pending"
    computed = "computed"


class ZoomDebouncer(Generic[T]):
    """
    Coalesce a burst of values (zoom levels during a pinch) into one callback.

    idle -> pending(timer) -> computed. Every `push` cancels the previous timer handle,
    so a stale value's callback never runs.
    """

    def __init__(
        self,
        callback: Callable[[T], Any],
        *,
        delay_s: float = 0.1,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.callback = callback
        self.delay_s = float(delay_s)
        self.state = DebounceState.idle
        self.last_value: T | None = None
        self._pending_value: T | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._loop = loop

    @property
    def is_pending(self) -> bool:
        return self.state == DebounceState.pending

    def push(self, value: T) -> None:
        self._cancel_timer()
        loop = self._loop or asyncio.get_running_loop()
        self._pending_value = value
        self.state = DebounceState.pending
        self._handle = loop.call_later(self.delay_s, self._fire)

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending_value = None
        if self.state == DebounceState.pending:
            self.state = DebounceState.computed if self.last_value is not None else DebounceState.idle

    def flush(self) -> None:
        """
        Run the pending callback now instead of waiting for the timer.
        """
        if self.state != DebounceState.pending:
            return
        self._cancel_timer()
        self._fire()

    def _fire(self) -> None:
        self._handle = None
        value = self._pending_value
        self._pending_value = None
        self.last_value = value
        self.state = DebounceState.computed
        self.callback(value)  # type: ignore[arg-type]

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
