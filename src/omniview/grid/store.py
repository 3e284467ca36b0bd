"""SessionStore: the viewport pool and all of its state transitions.

The store is the single owner of the session records. Every mutation is
synchronous; the only deferred work is staggered activation, which is
delegated to a StaggerScheduler and re-validated here when it fires.
Subscribers receive an immutable snapshot of the whole pool after each
mutation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from omniview.grid.capabilities import capabilities_for, grants_same_origin
from omniview.grid.protocols import (
    DEFAULT_STAGGER_DELAY_MS,
    FrameSession,
    FrameView,
    IsolationMode,
    PoolObserver,
    SessionStatus,
    new_identity,
    parse_delay,
    parse_isolation_mode,
)
from omniview.grid.scheduler import StaggerScheduler
from omniview.grid.url import build_effective_url, now_ms
from omniview.logging import TRACE, get_logger

log = get_logger("grid")

if TYPE_CHECKING:
    from omniview.config.schema import Config, ProxyConfig

    ModeInput = IsolationMode | str | Iterable[IsolationMode | str] | None


class SessionStore:
    """Fixed-size pool of viewport sessions.

    Sessions follow the master URL unless locked. URL changes are activated
    through the scheduler one session at a time; manual per-session edits
    take effect immediately.

    Per-session operations ignore ids outside ``0..n-1``.
    """

    def __init__(
        self,
        count: int = 0,
        *,
        sync_enabled: bool = True,
        isolation_mode: ModeInput = None,
        stagger_delay_ms: int | str = DEFAULT_STAGGER_DELAY_MS,
        proxy: ProxyConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the store.

        Args:
            count: Pool size to create immediately.
            sync_enabled: Whether master URL changes reach unlocked sessions.
            isolation_mode: Initial isolation mode (members or names).
            stagger_delay_ms: Milliseconds or a preset name.
            proxy: Optional proxy rewrite for effective URLs.
            loop: Event loop for the scheduler's timers.
            clock: Millisecond clock used for cache-bust parameters.
        """
        self._sessions: list[FrameSession] = []
        self._master_url = ""
        self._sync_enabled = sync_enabled
        self._mode = parse_isolation_mode(isolation_mode)
        self._proxy = proxy
        self._clock = clock
        self._observers: list[PoolObserver] = []
        self._scheduler = StaggerScheduler(
            self._activate,
            delay_ms=parse_delay(stagger_delay_ms),
            loop=loop,
        )
        if count:
            self.initialize(count)

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> SessionStore:
        """Build a store from configuration (the global config by default)."""
        if config is None:
            from omniview.config import get_config

            config = get_config()
        grid = config.grid
        return cls(
            grid.count,
            sync_enabled=grid.sync_enabled,
            isolation_mode=grid.isolation,
            stagger_delay_ms=grid.stagger_delay_ms,
            proxy=config.proxy,
            loop=loop,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def master_url(self) -> str:
        return self._master_url

    @property
    def sync_enabled(self) -> bool:
        return self._sync_enabled

    @property
    def isolation_mode(self) -> frozenset[IsolationMode]:
        return self._mode

    @property
    def stagger_delay_ms(self) -> int:
        return self._scheduler.delay_ms

    @property
    def proxy(self) -> ProxyConfig | None:
        return self._proxy

    @property
    def scheduler(self) -> StaggerScheduler:
        return self._scheduler

    @property
    def is_blank(self) -> bool:
        """No master URL and no session carrying a URL."""
        return not self._master_url and not any(s.raw_url for s in self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    # -------------------------------------------------------------------------
    # Pool-wide operations
    # -------------------------------------------------------------------------

    def initialize(self, count: int) -> None:
        """Replace the pool with ``count`` fresh idle sessions."""
        self._scheduler.cancel_all()
        count = max(0, count)
        self._sessions = [FrameSession(id=i) for i in range(count)]
        log.info("Initialized pool with %d session(s)", count)
        self._notify()

    def set_master_url(self, url: str) -> None:
        """Store the master URL and propagate it to unlocked sessions.

        A non-empty URL (with sync enabled) schedules every unlocked session
        in id order. An empty URL resets unlocked sessions to idle.
        """
        self._master_url = url.strip()

        if not self._master_url:
            for session in self._sessions:
                if not session.locked:
                    session.raw_url = ""
                    session.status = SessionStatus.IDLE
                    session.effective_url = ""
            log.debug("Master URL cleared")
            self._notify()
            return

        if not self._sync_enabled:
            log.debug("Master URL set to %s (sync disabled)", self._master_url)
            self._notify()
            return

        for session in self._sessions:
            if not session.locked:
                session.raw_url = self._master_url
                session.status = SessionStatus.SCHEDULED
                self._recompute(session)

        ids = [s.id for s in self._sessions if not s.locked]
        log.info("Master URL set to %s, staggering %d session(s)", self._master_url, len(ids))
        self._submit(ids)
        self._notify()

    def set_sync_enabled(self, enabled: bool) -> None:
        """Toggle master URL synchronization. Never schedules anything."""
        if enabled == self._sync_enabled:
            return
        self._sync_enabled = enabled
        log.debug("Sync %s", "enabled" if enabled else "disabled")
        self._notify()

    def set_isolation_mode(self, mode: ModeInput) -> None:
        """Switch isolation mode and recompute URLs and capabilities.

        A mode with unique identity gives every session a new identity and a
        generation bump right away; no activation sequence is started.
        """
        self._mode = parse_isolation_mode(mode)
        fresh_identity = IsolationMode.UNIQUE_IDENTITY in self._mode
        for session in self._sessions:
            if fresh_identity:
                session.identity = new_identity()
                session.generation += 1
            self._recompute(session)
        log.info(
            "Isolation mode: %s",
            ", ".join(sorted(m.value for m in self._mode)) or "none",
        )
        self._notify()

    def set_stagger_delay(self, delay: int | str) -> None:
        """Set the spacing for future batches (ms or preset name)."""
        self._scheduler.delay_ms = parse_delay(delay)
        log.debug("Stagger delay set to %d ms", self._scheduler.delay_ms)
        self._notify()

    def set_proxy(self, proxy: ProxyConfig | None) -> None:
        """Set or clear the proxy rewrite."""
        self._proxy = proxy
        for session in self._sessions:
            self._recompute(session)
        self._notify()

    def refresh_all(self) -> None:
        """Re-run the stagger sequence over every session showing a URL.

        Covers sessions with a URL that are unlocked or already past idle
        (active, or still waiting on a batch this call supersedes).
        """
        fresh_identity = IsolationMode.UNIQUE_IDENTITY in self._mode
        ids: list[int] = []
        for session in self._sessions:
            if not session.raw_url:
                continue
            if session.locked and session.status is SessionStatus.IDLE:
                continue
            session.status = SessionStatus.SCHEDULED
            if fresh_identity:
                session.identity = new_identity()
                self._recompute(session)
            ids.append(session.id)

        log.info("Refreshing %d session(s)", len(ids))
        self._submit(ids)
        self._notify()

    # -------------------------------------------------------------------------
    # Per-session operations
    # -------------------------------------------------------------------------

    def set_url(self, session_id: int, url: str) -> None:
        """Manually point one session at ``url``: locks and activates it now."""
        session = self._get(session_id)
        if session is None:
            return
        session.raw_url = url
        session.locked = True
        session.status = SessionStatus.ACTIVE
        session.generation += 1
        self._recompute(session)
        log.debug("Session %d set to %s", session_id, url)
        self._notify()

    def toggle_lock(self, session_id: int) -> None:
        """Detach a session from, or re-attach it to, master URL sync."""
        session = self._get(session_id)
        if session is None:
            return
        session.locked = not session.locked
        log.debug("Session %d %s", session_id, "locked" if session.locked else "unlocked")
        self._notify()

    def refresh_one(self, session_id: int) -> None:
        """Force one session to reload its current URL."""
        session = self._get(session_id)
        if session is None:
            return
        if IsolationMode.UNIQUE_IDENTITY in self._mode:
            session.identity = new_identity()
        session.generation += 1
        self._recompute(session)
        self._notify()

    def get(self, session_id: int) -> FrameView | None:
        """Snapshot of a single session, or None for an unknown id."""
        session = self._get(session_id)
        if session is None:
            return None
        return self._view(session)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, observer: PoolObserver) -> Callable[[], None]:
        """Register a callback for pool snapshots.

        Returns:
            A function to unregister the callback.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def snapshot(self) -> tuple[FrameView, ...]:
        """Immutable view of the whole pool."""
        return tuple(self._view(s) for s in self._sessions)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Tear the pool down. Pending activations are cancelled first."""
        cancelled = self._scheduler.cancel_all()
        self._sessions = []
        self._observers.clear()
        log.debug("Pool closed (%d pending activation(s) dropped)", cancelled)

    async def __aenter__(self) -> SessionStore:
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get(self, session_id: int) -> FrameSession | None:
        if 0 <= session_id < len(self._sessions):
            return self._sessions[session_id]
        log.debug("Ignoring unknown session id %r", session_id)
        return None

    def _submit(self, ids: list[int]) -> None:
        # Sessions stranded by the batch being superseded go back to idle
        keep = set(ids)
        for session in self._sessions:
            if session.status is SessionStatus.SCHEDULED and session.id not in keep:
                session.status = SessionStatus.IDLE
        self._scheduler.schedule(ids)

    def _activate(self, session_id: int) -> None:
        if not 0 <= session_id < len(self._sessions):
            log.log(TRACE, "Activation for vanished session %d dropped", session_id)
            return
        session = self._sessions[session_id]
        if session.status is not SessionStatus.SCHEDULED:
            log.log(TRACE, "Session %d no longer scheduled, skipping", session_id)
            return
        session.status = SessionStatus.ACTIVE
        session.generation += 1
        self._recompute(session)
        log.debug("Session %d active (generation %d)", session_id, session.generation)
        self._notify()

    def _recompute(self, session: FrameSession) -> None:
        session.effective_url = build_effective_url(
            session.raw_url,
            self._mode,
            session.identity,
            self._proxy,
            timestamp=self._clock(),
        )

    def _view(self, session: FrameSession) -> FrameView:
        sandbox = "st" if grants_same_origin(self._mode) else "sl"
        cache = "cb" if IsolationMode.CACHE_BUST in self._mode else "nc"
        return FrameView(
            id=session.id,
            raw_url=session.raw_url,
            effective_url=session.effective_url,
            capabilities=capabilities_for(self._mode),
            status=session.status,
            generation=session.generation,
            locked=session.locked,
            render_key=f"{session.generation}-{sandbox}-{cache}",
        )

    def _notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                log.warning("Pool subscriber error: %s", e)
