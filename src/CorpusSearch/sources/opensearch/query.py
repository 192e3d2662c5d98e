"""OpenSearch query compiler.

Compiles a `SearchConfig` (simple / advanced / proximity) into a
`StructuredQuery` whose body can be posted to the `_search` endpoint.

Field mapping
- token search, no modifiers      -> page_content
- token search, definite          -> page_content.definite
- token search, proclitic         -> page_content.proclitic
- token search, definite+proclitic -> page_content.combined
- root search                     -> token_roots (see `terms.root_pattern`)

Term shapes (token fields)
- one word, no wildcard           -> match_phrase
- one word with `*`/`?`           -> wildcard (case-insensitive)
- phrase, no wildcard             -> match_phrase over the whole phrase
- phrase with a wildcarded word   -> span_near(slop=0, in_order) over
                                     span_term / span_multi(wildcard) words

Pagination uses the UI page size for the offset and the batch size for the
window: `from = (page - 1) * page_size`, `size = batch_size`.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Final

from CorpusSearch.core.models import (
    AdvancedSearch,
    ProximitySearch,
    SearchConfig,
    SearchField,
    SimpleSearch,
)
from CorpusSearch.core.query import Clause, HighlightField, HighlightSpec, StructuredQuery
from CorpusSearch.sources.opensearch.terms import has_wildcard, normalize_term, root_pattern, split_words

PLAIN_HIGHLIGHTER: Final = "plain"
FAST_VECTOR_HIGHLIGHTER: Final = "fvh"


class QueryCompileError(ValueError):
    """Raised when a search config cannot be compiled into a query."""


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Index field names and highlighting options used by the compiler."""

    base_field: str = "page_content"
    definite_field: str = "page_content.definite"
    proclitic_field: str = "page_content.proclitic"
    combined_field: str = "page_content.combined"
    root_field: str = "token_roots"
    id_field: str = "text_id"
    sort_field: str = "uri"
    source_fields: tuple[str, ...] = ("text_id", "vol", "page_num", "page_id", "uri")
    fragment_size: int = 150
    phrase_limit: int = 150
    number_of_fragments: int = 100
    pre_tag: str = '<span class="highlight">'
    post_tag: str = "</span>"
    boundary_locale: str = "ar"


DEFAULT_SETTINGS: Final = QuerySettings()


@dataclass(slots=True)
class _QueryParts:
    must: list[Clause] = field(default_factory=list)
    filter: list[Clause] = field(default_factory=list)
    highlight_fields: dict[str, HighlightField] = field(default_factory=dict)


def resolve_token_field(definite: bool, proclitic: bool, settings: QuerySettings = DEFAULT_SETTINGS) -> str:
    """Pick the token field variant for the morphological modifiers."""
    if definite and proclitic:
        return settings.combined_field
    if definite:
        return settings.definite_field
    if proclitic:
        return settings.proclitic_field
    return settings.base_field


def compile_search_query(
    config: SearchConfig,
    *,
    page: int = 1,
    batch_size: int = 20,
    page_size: int = 20,
    settings: QuerySettings | None = None,
) -> StructuredQuery:
    """Compile a search config into a structured query.

    Args:
        config: Simple, advanced or proximity search config.
        page: 1-based UI page used to compute the offset.
        batch_size: Number of hits to fetch.
        page_size: UI page size used to compute the offset.
        settings: Field names and highlight options; defaults to the
            standard corpus index layout.

    Returns:
        A freshly built `StructuredQuery`.

    Raises:
        QueryCompileError: If the config type is unsupported, a required term
            is empty, or the pagination arguments are invalid.
    """
    settings = settings or DEFAULT_SETTINGS
    if page < 1:
        raise QueryCompileError(f"page must be >= 1, got {page}")
    if batch_size <= 0 or page_size <= 0:
        raise QueryCompileError("batch_size and page_size must be positive")

    parts = _QueryParts()
    if isinstance(config, SimpleSearch):
        _compile_simple(parts, config, settings)
    elif isinstance(config, AdvancedSearch):
        _compile_advanced(parts, config, settings)
    elif isinstance(config, ProximitySearch):
        _compile_proximity(parts, config, settings)
    else:
        mode = getattr(config, "mode", type(config).__name__)
        raise QueryCompileError(f"Unsupported search mode: {mode}")

    if not parts.must:
        raise QueryCompileError(f"{config.mode} search produced no query clauses")

    if config.selected_texts:
        parts.filter.append({"terms": {settings.id_field: list(config.selected_texts)}})

    return StructuredQuery(
        from_=(page - 1) * page_size,
        size=batch_size,
        must=tuple(parts.must),
        filter=tuple(parts.filter),
        sort=({settings.sort_field: {"order": "asc"}},),
        source_fields=settings.source_fields,
        highlight=HighlightSpec(
            pre_tags=(settings.pre_tag,),
            post_tags=(settings.post_tag,),
            fields=parts.highlight_fields,
        ),
    )


def _compile_simple(parts: _QueryParts, config: SimpleSearch, settings: QuerySettings) -> None:
    search_field = config.field
    term = normalize_term(search_field.term)
    if not term:
        raise QueryCompileError("simple search requires a non-empty term")

    if search_field.is_root:
        target = settings.root_field
        clause = _match_phrase(target, root_pattern(term))
    else:
        target = resolve_token_field(search_field.definite, search_field.proclitic, settings)
        clause = _token_clause(term, target)

    _register_highlight(parts, target, clause, PLAIN_HIGHLIGHTER, settings)
    parts.must.append(clause)


def _compile_advanced(parts: _QueryParts, config: AdvancedSearch, settings: QuerySettings) -> None:
    for search_field in config.and_fields:
        compiled = _advanced_clause(search_field, settings)
        if compiled is None:
            continue
        target, clause = compiled
        _register_highlight(parts, target, clause, FAST_VECTOR_HIGHLIGHTER, settings)
        parts.must.append(clause)

    should: list[Clause] = []
    for search_field in config.or_fields:
        compiled = _advanced_clause(search_field, settings)
        if compiled is None:
            continue
        target, clause = compiled
        _register_highlight(parts, target, clause, FAST_VECTOR_HIGHLIGHTER, settings)
        should.append(clause)

    if should:
        parts.must.append({"bool": {"should": should, "minimum_should_match": 1}})


def _advanced_clause(search_field: SearchField, settings: QuerySettings) -> tuple[str, Clause] | None:
    term = normalize_term(search_field.term)
    if not term:
        return None
    if search_field.is_root:
        return settings.root_field, _wildcard(settings.root_field, root_pattern(term))
    target = resolve_token_field(search_field.definite, search_field.proclitic, settings)
    return target, _token_clause(term, target)


def _compile_proximity(parts: _QueryParts, config: ProximitySearch, settings: QuerySettings) -> None:
    first = normalize_term(config.first_term.term)
    second = normalize_term(config.second_term.term)
    if not first or not second:
        raise QueryCompileError("proximity search requires two non-empty terms")
    if config.slop < 0:
        raise QueryCompileError(f"slop must be >= 0, got {config.slop}")

    if config.first_term.is_root or config.second_term.is_root:
        target = settings.root_field
        clauses = [_span_wildcard(target, root_pattern(first)), _span_wildcard(target, root_pattern(second))]
    else:
        # Both terms are matched on the field picked by the first term's modifiers.
        target = resolve_token_field(config.first_term.definite, config.first_term.proclitic, settings)
        clauses = [_span_word(target, first), _span_word(target, second)]

    clause = _span_near(clauses, slop=config.slop, in_order=False)
    _register_highlight(parts, target, clause, PLAIN_HIGHLIGHTER, settings)
    parts.must.append(clause)


def _token_clause(term: str, target: str) -> Clause:
    words = split_words(term)
    if len(words) == 1:
        return _wildcard(target, term) if has_wildcard(term) else _match_phrase(target, term)
    if not any(has_wildcard(word) for word in words):
        return _match_phrase(target, term)
    return _span_near([_span_word(target, word) for word in words], slop=0, in_order=True)


def _match_phrase(target: str, text: str) -> Clause:
    return {"match_phrase": {target: {"query": text}}}


def _wildcard(target: str, value: str) -> Clause:
    return {"wildcard": {target: {"value": value, "case_insensitive": True}}}


def _span_wildcard(target: str, value: str) -> Clause:
    return {"span_multi": {"match": _wildcard(target, value)}}


def _span_word(target: str, word: str) -> Clause:
    if has_wildcard(word):
        return _span_wildcard(target, word)
    return {"span_term": {target: word}}


def _span_near(clauses: list[Clause], *, slop: int, in_order: bool) -> Clause:
    return {"span_near": {"clauses": clauses, "slop": slop, "in_order": in_order}}


def _register_highlight(
    parts: _QueryParts,
    target: str,
    clause: Clause,
    highlighter: str,
    settings: QuerySettings,
) -> None:
    # Root patterns carry a separator per letter, so their fragments run longer.
    fragment_size = settings.fragment_size * 2 if target == settings.root_field else settings.fragment_size
    highlight_query: dict[str, Any] | None = None
    if "wildcard" in clause or "span_near" in clause:
        highlight_query = deepcopy(dict(clause))
    parts.highlight_fields[target] = HighlightField(
        type=highlighter,
        phrase_limit=settings.phrase_limit,
        fragment_size=fragment_size,
        number_of_fragments=settings.number_of_fragments,
        matched_fields=(target,),
        require_field_match=True,
        boundary_scanner_locale=settings.boundary_locale,
        highlight_query=highlight_query,
    )
