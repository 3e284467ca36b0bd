"""OmniView: a pool of viewport sessions with staggered, isolated loading."""

__version__ = "0.1.0"

# Public API
from omniview.config import Config, get_config, load_config
from omniview.grid import (
    Capability,
    FrameView,
    IsolationMode,
    SessionStatus,
    SessionStore,
    StaggerScheduler,
    build_effective_url,
    capabilities_for,
)

__all__ = [
    # Grid
    "Capability",
    "FrameView",
    "IsolationMode",
    "SessionStatus",
    "SessionStore",
    "StaggerScheduler",
    "build_effective_url",
    "capabilities_for",
    # Config
    "Config",
    "load_config",
    "get_config",
]
