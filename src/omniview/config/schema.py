"""Configuration schema dataclasses for OmniView.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class GridConfig:
    """Viewport pool defaults.

    Example config.yaml:
        grid:
          count: 10
          sync_enabled: true
          stagger_delay_ms: normal   # or fast/slow/safe, or milliseconds
          isolation: [cacheBust, stateless]
    """

    count: int = 10  # Number of viewport sessions in the pool
    sync_enabled: bool = True  # Master URL propagates to unlocked sessions
    stagger_delay_ms: int = 800  # Spacing between activations in a batch
    isolation: list[str] = field(default_factory=list)  # Isolation mode names


@dataclass(frozen=True)
class ProxyConfig:
    """URL rewrite applied before a session loads its target.

    The target URL is percent-encoded and appended to ``prefix``, e.g.
    ``https://proxy.example/fetch?url=``.
    """

    prefix: str
    enabled: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level when set
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object.

    Aggregates all configuration sections. Unknown top-level keys are kept
    in ``extra``.
    """

    grid: GridConfig = field(default_factory=GridConfig)
    proxy: ProxyConfig | None = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    extra: dict[str, Any] = field(default_factory=dict)
