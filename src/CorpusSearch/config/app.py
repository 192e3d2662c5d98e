from __future__ import annotations

"""Root config assembly: YAML layering, per-section loading and cross-checks."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from CorpusSearch.config.backend import BackendConfig, check_backend, load_backend
from CorpusSearch.config.runtime import RuntimeConfig, check_runtime, load_runtime
from CorpusSearch.config.search import SearchSettings, check_search, load_search

DEFAULT_CONFIG_PATH = Path("config/default.yml")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Validated settings for one CLI run."""

    runtime: RuntimeConfig
    backend: BackendConfig
    search: SearchSettings


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from an already merged mapping.

    Each section is loaded first, then checked, then the cross-section
    constraints are applied.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a key is missing or a constraint fails.
    """
    config = AppConfig(
        runtime=load_runtime(raw),
        backend=load_backend(raw),
        search=load_search(raw),
    )
    check_runtime(config.runtime)
    check_backend(config.backend)
    check_search(config.search)
    check_cross_domain(config)
    return config


def load_config(path: Path) -> AppConfig:
    """Load `path` layered over `config/default.yml`."""
    return load_config_with_defaults(path)


def load_config_with_defaults(config_path: Path, default_path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load the default file and deep-merge `config_path` over it.

    Passing the default path itself loads the defaults alone.
    """
    merged = read_yaml_file(default_path)
    if Path(config_path).resolve() != Path(default_path).resolve():
        merged = merge_config_dicts(merged, read_yaml_file(config_path))
    return parse_config_dict(merged)


def check_cross_domain(config: AppConfig) -> None:
    """Validate constraints spanning several sections."""
    if config.search.results_per_fetch > config.backend.max_result_window:
        raise ValueError("search.results_per_fetch must not exceed opensearch.max_result_window")


def read_yaml_file(path: Path) -> dict[str, Any]:
    return parse_yaml(Path(path).read_text(encoding="utf-8"), source=str(path))


def parse_yaml(text: str, source: str = "<string>") -> dict[str, Any]:
    """Parse YAML text whose root must be a mapping; empty text gives `{}`."""
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Config root in {source} must be a mapping")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge `override` into a copy of `base`.

    Nested mappings merge key by key; any other override value replaces the
    base value outright, lists included.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(current, value)
        else:
            merged[key] = value
    return merged
