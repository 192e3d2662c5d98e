from __future__ import annotations

"""Public configuration API for CorpusSearch."""

from CorpusSearch.config.app import (
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
)
from CorpusSearch.config.backend import BackendConfig
from CorpusSearch.config.runtime import RuntimeConfig
from CorpusSearch.config.search import SearchSettings

__all__ = [
    "RuntimeConfig",
    "BackendConfig",
    "SearchSettings",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
    "check_cross_domain",
]
