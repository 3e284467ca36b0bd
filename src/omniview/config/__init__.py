"""Configuration management for OmniView.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/omniview/ or %PROGRAMDATA%)
- User-level config (~/.config/omniview/, ~/.omniview/ or %APPDATA%)
- Project-level config ($project_root/.omniview/)
- Environment variable overrides (highest priority)

Example usage:
    from omniview.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.grid.count)
    print(config.grid.stagger_delay_ms)
"""

from omniview.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from omniview.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from omniview.config.schema import (
    Config,
    GridConfig,
    LoggingConfig,
    ProxyConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "GridConfig",
    "LoggingConfig",
    "ProxyConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
