from __future__ import annotations

"""Shared readers for configuration sections.

Every reader takes the full dotted key (e.g. ``search.items_per_page``) so
errors point at the offending YAML entry.
"""

from typing import Any, Mapping


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return a mapping section from the root config.

    Args:
        raw: Root configuration mapping.
        key: Section name.
        required: Whether the section must exist.

    Returns:
        Section mapping, or an empty mapping for a missing optional section.

    Raises:
        ValueError: If the section is required but missing.
        TypeError: If the section is not a mapping.
    """
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config section: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{key} must be a mapping, got {type(section).__name__}")
    return section


def get_required_value(section: Mapping[str, Any], field: str, config_key: str) -> Any:
    """Return a required field value, raising ValueError naming ``config_key``."""
    if field not in section:
        raise ValueError(f"Missing required config key: {config_key}")
    return section[field]


def expect_str(value: Any, config_key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{config_key} must be a string, got {type(value).__name__}")
    return value


def expect_bool(value: Any, config_key: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{config_key} must be a boolean, got {type(value).__name__}")
    return value


def expect_int(value: Any, config_key: str) -> int:
    """Validate an integer value; booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{config_key} must be an integer, got {type(value).__name__}")
    return value


def expect_float(value: Any, config_key: str) -> float:
    """Validate a number and return it as float; booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{config_key} must be a number, got {type(value).__name__}")
    return float(value)


def read_str(section: Mapping[str, Any], field: str, prefix: str) -> str:
    key = f"{prefix}.{field}"
    return expect_str(get_required_value(section, field, key), key)


def read_bool(section: Mapping[str, Any], field: str, prefix: str) -> bool:
    key = f"{prefix}.{field}"
    return expect_bool(get_required_value(section, field, key), key)


def read_int(section: Mapping[str, Any], field: str, prefix: str) -> int:
    key = f"{prefix}.{field}"
    return expect_int(get_required_value(section, field, key), key)


def read_float(section: Mapping[str, Any], field: str, prefix: str) -> float:
    key = f"{prefix}.{field}"
    return expect_float(get_required_value(section, field, key), key)


def check_positive(value: int | float, config_key: str) -> None:
    if value <= 0:
        raise ValueError(f"{config_key} must be positive")


def check_non_empty(value: str, config_key: str) -> None:
    if not value.strip():
        raise ValueError(f"{config_key} must not be empty")
