"""Shared test utilities for OmniView tests."""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable
from typing import Any

from omniview.grid.protocols import FrameView, SessionStatus


class FakeHandle:
    """Timer handle returned by FakeLoop."""

    def __init__(self, callback: Callable[..., None], args: tuple[Any, ...]) -> None:
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Event loop stand-in whose clock only moves when advanced.

    Implements the subset of the asyncio loop API the scheduler uses:
    ``time()``, ``call_at()`` and ``call_soon()``.

    Args:
        honor_cancel: When False, cancelled handles still run, which mimics a
            timer that was already due when it got cancelled.
    """

    def __init__(self, honor_cancel: bool = True) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, FakeHandle]] = []
        self._seq = itertools.count()
        self._honor_cancel = honor_cancel

    def time(self) -> float:
        return self._now

    def call_at(self, when: float, callback: Callable[..., None], *args: Any) -> FakeHandle:
        handle = FakeHandle(callback, args)
        heapq.heappush(self._queue, (when, next(self._seq), handle))
        return handle

    def call_soon(self, callback: Callable[..., None], *args: Any) -> FakeHandle:
        return self.call_at(self._now, callback, *args)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that comes due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            if handle.cancelled and self._honor_cancel:
                continue
            handle.callback(*handle.args)
        self._now = target

    def advance_ms(self, ms: float) -> None:
        self.advance(ms / 1000)

    @property
    def now_ms(self) -> int:
        return round(self._now * 1000)


class ActivationRecorder:
    """Pool subscriber that records (time_ms, session_id) for each activation.

    An activation is a snapshot where a session is active with a generation
    it did not have in the previous snapshot.
    """

    def __init__(self, loop: FakeLoop) -> None:
        self._loop = loop
        self._last: dict[int, tuple[SessionStatus, int]] = {}
        self.activations: list[tuple[int, int]] = []
        self.snapshots: list[tuple[FrameView, ...]] = []

    def __call__(self, views: tuple[FrameView, ...]) -> None:
        self.snapshots.append(views)
        for view in views:
            previous = self._last.get(view.id)
            if view.status is SessionStatus.ACTIVE and (
                previous is None
                or previous[0] is not SessionStatus.ACTIVE
                or previous[1] != view.generation
            ):
                self.activations.append((self._loop.now_ms, view.id))
            self._last[view.id] = (view.status, view.generation)

    @property
    def ids(self) -> list[int]:
        return [session_id for _, session_id in self.activations]
