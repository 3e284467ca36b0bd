"""Core types for the viewport grid.

These types define the contract between:
- The session store and the stagger scheduler
- The session store and whatever renders the grid (subscribers)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

DEFAULT_POOL_SIZE = 10
DEFAULT_STAGGER_DELAY_MS = 800

# Named stagger delays offered by the grid toolbar
DELAY_PRESETS: dict[str, int] = {
    "fast": 200,
    "normal": 800,
    "slow": 2000,
    "safe": 5000,
}

REFERRER_POLICY = "no-referrer"

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class SessionStatus(Enum):
    """Lifecycle state of a viewport session."""

    IDLE = "idle"
    SCHEDULED = "scheduled"  # Waiting for its slot in a stagger batch
    ACTIVE = "active"


class IsolationMode(Enum):
    """Isolation flags. A pool's mode is a frozenset of these; empty means none."""

    CACHE_BUST = "cacheBust"
    STATELESS = "stateless"
    UNIQUE_IDENTITY = "uniqueIdentity"


class Capability(Enum):
    """Sandbox capabilities granted to a rendering surface."""

    SCRIPTS = "allow-scripts"
    FORMS = "allow-forms"
    POPUPS = "allow-popups"
    MODALS = "allow-modals"
    POPUPS_TO_ESCAPE_SANDBOX = "allow-popups-to-escape-sandbox"
    DOWNLOADS = "allow-downloads"
    SAME_ORIGIN = "allow-same-origin"


NO_ISOLATION: frozenset[IsolationMode] = frozenset()

_MODE_ALIASES = {
    "cachebust": IsolationMode.CACHE_BUST,
    "stateless": IsolationMode.STATELESS,
    "uniqueidentity": IsolationMode.UNIQUE_IDENTITY,
}


def _parse_mode_name(name: str) -> IsolationMode | None:
    key = name.strip().lower().replace("_", "").replace("-", "")
    if key in ("", "none"):
        return None
    try:
        return _MODE_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown isolation mode: {name!r}") from None


def parse_isolation_mode(
    value: IsolationMode | str | Iterable[IsolationMode | str] | None,
) -> frozenset[IsolationMode]:
    """Normalize an isolation mode given as a member, a name, or a collection.

    Names are matched case-insensitively and may use camelCase, snake_case or
    kebab-case ("cacheBust", "cache_bust", "cache-bust"). "none" contributes
    nothing. A single string may list several names separated by commas.

    Raises:
        ValueError: If a name is not a known isolation mode.
    """
    if value is None:
        return NO_ISOLATION
    if isinstance(value, IsolationMode):
        return frozenset({value})
    if isinstance(value, str):
        value = value.split(",")

    modes: set[IsolationMode] = set()
    for item in value:
        if isinstance(item, IsolationMode):
            modes.add(item)
            continue
        mode = _parse_mode_name(str(item))
        if mode is not None:
            modes.add(mode)
    return frozenset(modes)


def mode_names(mode: Iterable[IsolationMode]) -> list[str]:
    """Canonical names of a mode, in declaration order."""
    members = set(mode)
    return [m.value for m in IsolationMode if m in members]


def parse_delay(value: int | str) -> int:
    """Resolve a stagger delay in milliseconds.

    Accepts an integer, a string of digits, or a preset name from
    ``DELAY_PRESETS``. Negative values clamp to 0.

    Raises:
        ValueError: For an unknown preset name.
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text in DELAY_PRESETS:
            return DELAY_PRESETS[text]
        try:
            value = int(text)
        except ValueError:
            raise ValueError(
                f"Unknown stagger delay {value!r} "
                f"(expected milliseconds or one of {', '.join(DELAY_PRESETS)})"
            ) from None
    return max(0, int(value))


def new_identity() -> str:
    """Generate an opaque per-session identity token."""
    return uuid.uuid4().hex


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class FrameSession:
    """Mutable record for one pool slot. Owned exclusively by SessionStore."""

    id: int
    raw_url: str = ""
    locked: bool = False
    status: SessionStatus = SessionStatus.IDLE
    identity: str = field(default_factory=new_identity)
    generation: int = 0
    effective_url: str = ""


@dataclass(frozen=True, slots=True)
class FrameView:
    """Immutable snapshot of one session, as delivered to subscribers.

    A rendering surface reloads its content if and only if ``generation``
    differs from the value it last rendered.
    """

    id: int
    raw_url: str
    effective_url: str
    capabilities: tuple[Capability, ...]
    status: SessionStatus
    generation: int
    locked: bool
    render_key: str
    referrer_policy: str = REFERRER_POLICY

    @property
    def displayable(self) -> bool:
        """True when the surface should show content rather than a placeholder."""
        return bool(self.raw_url) and self.status is SessionStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form with enum members replaced by their values."""
        data = asdict(self)
        data["status"] = self.status.value
        data["capabilities"] = [c.value for c in self.capabilities]
        data["displayable"] = self.displayable
        return data


# Subscriber callback: receives the full pool snapshot after every mutation
PoolObserver = Callable[[tuple[FrameView, ...]], None]
