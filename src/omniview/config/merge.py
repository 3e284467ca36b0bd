"""Deep merge for configuration cascading.

Later configs override earlier ones; nested dicts merge recursively and
None values never clobber a setting from a lower layer.
"""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Rules:
    - Nested dicts are recursively merged
    - Lists are replaced entirely (``grid.isolation`` is never concatenated)
    - None values in override do NOT override base (enables partial configs)
    - Other values are replaced

    Args:
        base: Lower-priority layer, e.g. the user config.
        override: Higher-priority layer, e.g. the project config or env.

    Returns:
        A new dictionary with merged values. Neither input is modified.
    """
    result = base.copy()

    for key, override_value in override.items():
        if override_value is None:
            continue

        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
        else:
            result[key] = override_value

    return result


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple configs in order (later overrides earlier).

    Args:
        *configs: Config layers from lowest to highest priority. Empty
            layers (missing or invalid files) are skipped.

    Returns:
        A single merged config dict.
    """
    result: dict[str, Any] = {}
    for config in configs:
        if config:
            result = deep_merge(result, config)
    return result
