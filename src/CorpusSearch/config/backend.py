"""Search backend (OpenSearch) connection configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from CorpusSearch.config.common import (
    check_non_empty,
    check_positive,
    get_section,
    read_bool,
    read_float,
    read_int,
    read_str,
)


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Connection settings for the OpenSearch index.

    Credentials never live in YAML: ``user_env`` / ``password_env`` name the
    environment variables that hold them (``.env`` is loaded by the CLI).
    """

    base_url: str
    index: str
    user_env: str
    password_env: str
    user: str
    password: str
    timeout: float
    verify_tls: bool
    max_result_window: int


def load_backend(raw: Mapping[str, Any]) -> BackendConfig:
    """Load the ``opensearch`` section and resolve credentials from the environment.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "opensearch", required=True)
    user_env = read_str(section, "user_env", "opensearch")
    password_env = read_str(section, "password_env", "opensearch")
    return BackendConfig(
        base_url=read_str(section, "base_url", "opensearch").strip(),
        index=read_str(section, "index", "opensearch").strip(),
        user_env=user_env,
        password_env=password_env,
        user=_load_from_env(user_env),
        password=_load_from_env(password_env),
        timeout=read_float(section, "timeout", "opensearch"),
        verify_tls=read_bool(section, "verify_tls", "opensearch"),
        max_result_window=read_int(section, "max_result_window", "opensearch"),
    )


def check_backend(config: BackendConfig) -> None:
    """Validate backend constraints.

    Raises:
        ValueError: If a value is blank, non-positive or not an http(s) URL.
    """
    check_non_empty(config.base_url, "opensearch.base_url")
    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError("opensearch.base_url must start with http:// or https://")
    check_non_empty(config.index, "opensearch.index")
    check_non_empty(config.user_env, "opensearch.user_env")
    check_non_empty(config.password_env, "opensearch.password_env")
    check_positive(config.timeout, "opensearch.timeout")
    check_positive(config.max_result_window, "opensearch.max_result_window")


def _load_from_env(name: str) -> str:
    return os.getenv(name, "").strip() if name.strip() else ""
