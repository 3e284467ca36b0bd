"""Staggered activation of viewport sessions.

Spreads a batch of activations over time so a URL change does not fire a
burst of simultaneous loads. Only the most recent batch is ever live.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from omniview.grid.protocols import DEFAULT_STAGGER_DELAY_MS
from omniview.logging import TRACE, get_logger

log = get_logger("scheduler")


class StaggerScheduler:
    """Schedules one activation per session id, ``delay_ms`` apart.

    Responsibilities:
    - Place ``ids[i]`` at ``i * delay_ms`` after the ``schedule()`` call
    - Supersede: each ``schedule()`` revokes every earlier batch first
    - Revoke everything on ``cancel_all()`` without firing anything

    Holds no session data, only ids and the current batch number. A deferred
    callback reaches the activation hook only while its batch is current; the
    hook itself must re-check that the session still wants activating.
    """

    def __init__(
        self,
        activate: Callable[[int], None],
        *,
        delay_ms: int = DEFAULT_STAGGER_DELAY_MS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            activate: Called with a session id when its slot comes up.
            delay_ms: Spacing between successive activations in a batch.
            loop: Event loop for timers. Defaults to the running loop at
                ``schedule()`` time; with neither, a batch is activated
                synchronously in order.
        """
        self._activate = activate
        self._delay_ms = max(0, delay_ms)
        self._loop = loop

        # Revocation token: callbacks from any other batch are dropped
        self._batch = 0

        # Timer handles for the current batch keyed by position
        self._handles: dict[int, asyncio.Handle] = {}

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @delay_ms.setter
    def delay_ms(self, value: int) -> None:
        self._delay_ms = max(0, value)

    @property
    def batch(self) -> int:
        """Number of the current (possibly empty) batch."""
        return self._batch

    @property
    def pending(self) -> int:
        """Activations of the current batch that have not fired yet."""
        return len(self._handles)

    def schedule(self, ids: Sequence[int]) -> int:
        """Replace any pending batch with activations for ``ids``, in order.

        ``schedule([])`` is valid and only cancels the previous batch.

        Returns:
            The batch number assigned to this call.
        """
        self.cancel_all()
        batch = self._batch

        if not ids:
            log.debug("Batch %d is empty", batch)
            return batch

        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No loop to defer on: activate the batch now, in order
                log.debug("Batch %d: no running loop, activating immediately", batch)
                for session_id in ids:
                    if batch != self._batch:
                        break
                    self._activate(session_id)
                return batch

        start = loop.time()
        step = self._delay_ms / 1000

        for index, session_id in enumerate(ids):
            if step:
                handle: asyncio.Handle = loop.call_at(
                    start + index * step, self._fire, batch, index, session_id
                )
            else:
                # call_soon keeps FIFO order where equal deadlines would not
                handle = loop.call_soon(self._fire, batch, index, session_id)
            self._handles[index] = handle

        log.debug(
            "Batch %d: %d activation(s), %d ms apart", batch, len(ids), self._delay_ms
        )
        return batch

    def cancel_all(self) -> int:
        """Revoke every pending activation without firing it.

        Returns:
            Number of activations cancelled.
        """
        self._batch += 1
        cancelled = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if cancelled:
            log.debug("Cancelled %d pending activation(s)", cancelled)
        return cancelled

    def _fire(self, batch: int, index: int, session_id: int) -> None:
        if batch != self._batch:
            log.log(TRACE, "Dropped stale activation of %d from batch %d", session_id, batch)
            return
        self._handles.pop(index, None)
        self._activate(session_id)
