"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from omniview.config.merge import merge_configs
from omniview.config.paths import get_config_paths
from omniview.config.schema import Config, GridConfig, LoggingConfig, ProxyConfig
from omniview.grid.protocols import (
    DEFAULT_POOL_SIZE,
    DEFAULT_STAGGER_DELAY_MS,
    mode_names,
    parse_delay,
    parse_isolation_mode,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("omniview.config")

_cached_config: Config | None = None

_KNOWN_KEYS = {"grid", "proxy", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    Recognized:
        OV_LOG            -> logging.file
        OV_STAGGER_DELAY  -> grid.stagger_delay_ms (ms or preset name)
        OV_PROXY_PREFIX   -> proxy.prefix
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("OV_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    delay = os.environ.get("OV_STAGGER_DELAY")
    if delay:
        overrides.setdefault("grid", {})["stagger_delay_ms"] = delay

    proxy_prefix = os.environ.get("OV_PROXY_PREFIX")
    if proxy_prefix:
        overrides.setdefault("proxy", {})["prefix"] = proxy_prefix

    return overrides


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _pool_size(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"grid.count must be an integer, got {value!r}") from None
    if count < 0:
        raise ValueError(f"grid.count must not be negative, got {count}")
    return count


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Raises:
        ValueError: For unknown isolation mode names, unknown delay presets
            or a malformed pool size.
    """
    grid_data = _section(data, "grid")
    grid = GridConfig(
        count=_pool_size(grid_data.get("count", DEFAULT_POOL_SIZE)),
        sync_enabled=bool(grid_data.get("sync_enabled", True)),
        stagger_delay_ms=parse_delay(
            grid_data.get("stagger_delay_ms", DEFAULT_STAGGER_DELAY_MS)
        ),
        isolation=mode_names(parse_isolation_mode(grid_data.get("isolation"))),
    )

    proxy_data = _section(data, "proxy")
    proxy = None
    if proxy_data.get("prefix"):
        proxy = ProxyConfig(
            prefix=str(proxy_data["prefix"]),
            enabled=bool(proxy_data.get("enabled", True)),
        )

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}

    return Config(grid=grid, proxy=proxy, logging=logging_config, extra=extra)


def load_config(
    project_root: str | None = None,
    config_file: Path | None = None,
    reload: bool = False,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit config file (``--config``)
    3. Project config ($project_root/.omniview/config.yaml)
    4. User config (~/.config/omniview/ or %APPDATA%)
    5. System config (/etc/omniview/ or %PROGRAMDATA%)

    Args:
        project_root: Project directory for project-level config.
        config_file: Extra config file layered above the standard locations.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    is_global = project_root is None and config_file is None
    if _cached_config is not None and not reload and is_global:
        return _cached_config

    paths = get_config_paths(project_root)
    if config_file is not None:
        if not config_file.exists():
            _log.warning("Config file not found: %s", config_file)
        paths.append(config_file)

    configs: list[dict[str, Any]] = []
    for path in paths:
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))

    if is_global:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config.

    Useful for testing or forcing a reload.
    """
    global _cached_config
    _cached_config = None
