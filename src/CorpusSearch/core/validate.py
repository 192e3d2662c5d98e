"""Shape validation for search configs.

The query compiler assumes a well-formed config; callers (CLI, link parsing)
validate first with `validate_search_config`.
"""

from __future__ import annotations

from typing import Final, Sequence

from CorpusSearch.core.models import (
    AdvancedSearch,
    ProximitySearch,
    SearchConfig,
    SearchField,
    SimpleSearch,
)
from CorpusSearch.core.params import TERM_LIST_SEPARATOR

MIN_GROUP_FIELDS: Final = 2
MAX_GROUP_FIELDS: Final = 5
MIN_SLOP: Final = 1
MAX_SLOP: Final = 10


class SearchConfigError(ValueError):
    """Raised when a search config does not have a valid shape."""


def validate_search_config(config: SearchConfig) -> None:
    """Validate a search config.

    Rules:
    - every term is non-blank;
    - advanced: 2-5 AND terms; OR terms are either absent or 2-5; no term
      contains a comma, which separates terms in link parameters;
    - proximity: single-word terms, slop between 1 and 10.

    Args:
        config: Config to check.

    Raises:
        SearchConfigError: On the first violated rule.
    """
    if isinstance(config, SimpleSearch):
        _check_term(config.field, "term")
    elif isinstance(config, AdvancedSearch):
        _check_group(config.and_fields, "AND", allow_empty=False)
        _check_group(config.or_fields, "OR", allow_empty=True)
    elif isinstance(config, ProximitySearch):
        for label, search_field in (("first term", config.first_term), ("second term", config.second_term)):
            _check_term(search_field, label)
            if len(search_field.term.split()) > 1:
                raise SearchConfigError(f"proximity {label} must be a single word")
        if not MIN_SLOP <= config.slop <= MAX_SLOP:
            raise SearchConfigError(f"slop must be between {MIN_SLOP} and {MAX_SLOP}, got {config.slop}")
    else:
        raise SearchConfigError(f"Unsupported search config: {type(config).__name__}")

    if any(text_id < 0 for text_id in config.selected_texts):
        raise SearchConfigError("selected text ids must be non-negative")


def _check_term(search_field: SearchField, label: str) -> None:
    if not search_field.term or not search_field.term.strip():
        raise SearchConfigError(f"{label} must not be empty")


def _check_group(fields: Sequence[SearchField], group: str, *, allow_empty: bool) -> None:
    if not fields and allow_empty:
        return
    if not MIN_GROUP_FIELDS <= len(fields) <= MAX_GROUP_FIELDS:
        raise SearchConfigError(
            f"{group} group needs {MIN_GROUP_FIELDS}-{MAX_GROUP_FIELDS} terms, got {len(fields)}"
        )
    for idx, search_field in enumerate(fields):
        label = f"{group} term {idx + 1}"
        _check_term(search_field, label)
        if TERM_LIST_SEPARATOR in search_field.term:
            raise SearchConfigError(f"{label} must not contain {TERM_LIST_SEPARATOR!r}")
