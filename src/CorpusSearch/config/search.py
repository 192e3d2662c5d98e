"""Search paging and highlighting configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from CorpusSearch.config.common import check_non_empty, check_positive, get_section, read_int, read_str
from CorpusSearch.sources.opensearch.query import QuerySettings


@dataclass(frozen=True, slots=True)
class SearchSettings:
    """Batch/page sizes and highlight options for search sessions."""

    results_per_fetch: int
    items_per_page: int
    fragment_size: int
    phrase_limit: int
    number_of_fragments: int
    pre_tag: str
    post_tag: str
    boundary_locale: str

    def query_settings(self) -> QuerySettings:
        """Build compiler settings; index field names keep their defaults."""
        return QuerySettings(
            fragment_size=self.fragment_size,
            phrase_limit=self.phrase_limit,
            number_of_fragments=self.number_of_fragments,
            pre_tag=self.pre_tag,
            post_tag=self.post_tag,
            boundary_locale=self.boundary_locale,
        )


def load_search(raw: Mapping[str, Any]) -> SearchSettings:
    """Load the ``search`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "search", required=True)
    highlight = get_section(section, "highlight", required=True)
    return SearchSettings(
        results_per_fetch=read_int(section, "results_per_fetch", "search"),
        items_per_page=read_int(section, "items_per_page", "search"),
        fragment_size=read_int(highlight, "fragment_size", "search.highlight"),
        phrase_limit=read_int(highlight, "phrase_limit", "search.highlight"),
        number_of_fragments=read_int(highlight, "number_of_fragments", "search.highlight"),
        pre_tag=read_str(highlight, "pre_tag", "search.highlight"),
        post_tag=read_str(highlight, "post_tag", "search.highlight"),
        boundary_locale=read_str(highlight, "boundary_locale", "search.highlight"),
    )


def check_search(config: SearchSettings) -> None:
    """Validate search constraints.

    Raises:
        ValueError: If sizes are non-positive, a batch is not a whole number
            of pages, or a highlight tag is blank.
    """
    check_positive(config.items_per_page, "search.items_per_page")
    check_positive(config.results_per_fetch, "search.results_per_fetch")
    if config.results_per_fetch % config.items_per_page != 0:
        raise ValueError("search.results_per_fetch must be a multiple of search.items_per_page")
    check_positive(config.fragment_size, "search.highlight.fragment_size")
    check_positive(config.phrase_limit, "search.highlight.phrase_limit")
    check_positive(config.number_of_fragments, "search.highlight.number_of_fragments")
    check_non_empty(config.pre_tag, "search.highlight.pre_tag")
    check_non_empty(config.post_tag, "search.highlight.post_tag")
    check_non_empty(config.boundary_locale, "search.highlight.boundary_locale")
