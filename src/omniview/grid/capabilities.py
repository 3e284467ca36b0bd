"""Sandbox capability policy for rendering surfaces."""

from __future__ import annotations

from collections.abc import Iterable

from omniview.grid.protocols import Capability, IsolationMode

BASE_CAPABILITIES: tuple[Capability, ...] = (
    Capability.SCRIPTS,
    Capability.FORMS,
    Capability.POPUPS,
    Capability.MODALS,
    Capability.POPUPS_TO_ESCAPE_SANDBOX,
    Capability.DOWNLOADS,
)

# Any of these means the session must not see or keep cookies/storage
_ISOLATING_MODES = frozenset({IsolationMode.STATELESS, IsolationMode.UNIQUE_IDENTITY})


def grants_same_origin(mode: Iterable[IsolationMode]) -> bool:
    """Whether a mode leaves same-origin/persistent storage enabled."""
    return _ISOLATING_MODES.isdisjoint(mode)


def capabilities_for(mode: Iterable[IsolationMode]) -> tuple[Capability, ...]:
    """Ordered, duplicate-free capability set for an isolation mode."""
    if grants_same_origin(mode):
        return BASE_CAPABILITIES + (Capability.SAME_ORIGIN,)
    return BASE_CAPABILITIES


def sandbox_attribute(capabilities: Iterable[Capability]) -> str:
    """Render capabilities as a space-separated sandbox attribute value."""
    return " ".join(c.value for c in capabilities)
