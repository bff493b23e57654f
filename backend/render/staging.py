from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Sequence

from clustering.policy import StagingPolicy
from poi.types import RenderItem


class StagingState(str, Enum):
    idle = "idle"
    rendering = "rendering"
    complete = "complete"


class StagedRenderer:
    """
    Release a marker list to the renderer in small batches across event-loop ticks.

    The first batch goes out synchronously; the rest are scheduled `batch_delay_s` apart.
    A new `render()` (or `reset()`) cancels the scheduled batch of the previous list.
    """

    def __init__(
        self,
        on_batch: Callable[[list[RenderItem]], Any],
        *,
        initial_batch: int = 50,
        batch_size: int = 25,
        batch_delay_s: float = 0.016,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if initial_batch < 1 or batch_size < 1:
            raise ValueError("batch sizes must be >= 1")
        self.on_batch = on_batch
        self.initial_batch = int(initial_batch)
        self.batch_size = int(batch_size)
        self.batch_delay_s = float(batch_delay_s)
        self.state = StagingState.idle
        self._items: list[RenderItem] = []
        self._rendered = 0
        self._handle: asyncio.TimerHandle | None = None
        self._loop = loop

    @classmethod
    def from_policy(
        cls, policy: StagingPolicy, on_batch: Callable[[list[RenderItem]], Any]
    ) -> "StagedRenderer":
        return cls(
            on_batch,
            initial_batch=policy.initial_batch,
            batch_size=policy.batch_size,
            batch_delay_s=policy.batch_delay_s,
        )

    @property
    def rendered(self) -> list[RenderItem]:
        return self._items[: self._rendered]

    @property
    def progress(self) -> float:
        if not self._items:
            return 1.0 if self.state == StagingState.complete else 0.0
        return self._rendered / len(self._items)

    def render(self, items: Sequence[RenderItem]) -> None:
        self._cancel_timer()
        self._items = list(items)
        self._rendered = 0
        self.state = StagingState.rendering
        self._emit(self.initial_batch)

    def force_complete(self) -> None:
        if self.state != StagingState.rendering:
            return
        self._cancel_timer()
        self._emit(len(self._items) - self._rendered)

    def reset(self) -> None:
        self._cancel_timer()
        self._items = []
        self._rendered = 0
        self.state = StagingState.idle

    def _emit(self, n: int) -> None:
        batch = self._items[self._rendered : self._rendered + n]
        self._rendered += len(batch)
        if batch:
            self.on_batch(batch)
        if self._rendered >= len(self._items):
            self.state = StagingState.complete
            return
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.batch_delay_s, self._next_batch)

    def _next_batch(self) -> None:
        self._handle = None
        self._emit(self.batch_size)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
