"""Viewport grid core: session pool, stagger scheduler, URL and sandbox policy."""

from omniview.grid.capabilities import capabilities_for, sandbox_attribute
from omniview.grid.protocols import (
    DELAY_PRESETS,
    Capability,
    FrameSession,
    FrameView,
    IsolationMode,
    PoolObserver,
    SessionStatus,
    parse_delay,
    parse_isolation_mode,
)
from omniview.grid.scheduler import StaggerScheduler
from omniview.grid.store import SessionStore
from omniview.grid.url import build_effective_url

__all__ = [
    "Capability",
    "DELAY_PRESETS",
    "FrameSession",
    "FrameView",
    "IsolationMode",
    "PoolObserver",
    "SessionStatus",
    "SessionStore",
    "StaggerScheduler",
    "build_effective_url",
    "capabilities_for",
    "parse_delay",
    "parse_isolation_mode",
    "sandbox_attribute",
]
