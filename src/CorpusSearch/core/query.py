from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any, Final, Mapping

# The backend refuses to page past this many hits.
MAX_RESULT_WINDOW: Final = 10_000

Clause = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class HighlightField:
    """Highlighting options for one index field."""

    type: str
    phrase_limit: int
    fragment_size: int
    number_of_fragments: int
    matched_fields: tuple[str, ...]
    require_field_match: bool = True
    boundary_scanner_locale: str = "ar"
    highlight_query: Clause | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "phrase_limit": self.phrase_limit,
            "fragment_size": self.fragment_size,
            "number_of_fragments": self.number_of_fragments,
            "matched_fields": list(self.matched_fields),
            "require_field_match": self.require_field_match,
            "boundary_scanner_locale": self.boundary_scanner_locale,
        }
        if self.highlight_query is not None:
            out["highlight_query"] = deepcopy(dict(self.highlight_query))
        return out


@dataclass(frozen=True, slots=True)
class HighlightSpec:
    """Highlight markup tags plus per-field options."""

    pre_tags: tuple[str, ...]
    post_tags: tuple[str, ...]
    fields: Mapping[str, HighlightField] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pre_tags": list(self.pre_tags),
            "post_tags": list(self.post_tags),
            "fields": {name: spec.to_dict() for name, spec in self.fields.items()},
        }


@dataclass(frozen=True, slots=True)
class StructuredQuery:
    """Backend-agnostic search request.

    Built once per request by the query compiler. The only supported change
    after construction is replacing the pagination window through
    `with_window`, which returns a new object.

    Attributes:
        from_: Absolute offset of the first hit to return.
        size: Number of hits to return.
        must: Conjunctive clauses.
        should: Disjunctive clauses at the top level.
        filter: Non-scoring restriction clauses.
        sort: Sort specification, in priority order.
        source_fields: Stored fields to return with each hit.
        highlight: Highlighting specification.
        track_total_hits: Ask the backend for an exact total.
    """

    from_: int
    size: int
    must: tuple[Clause, ...] = ()
    should: tuple[Clause, ...] = ()
    filter: tuple[Clause, ...] = ()
    sort: tuple[Clause, ...] = ()
    source_fields: tuple[str, ...] = ()
    highlight: HighlightSpec = HighlightSpec(pre_tags=(), post_tags=())
    track_total_hits: bool = True

    def with_window(self, from_: int, size: int) -> StructuredQuery:
        """Return a copy with a different pagination window.

        Args:
            from_: New absolute offset.
            size: New page size.

        Returns:
            A new query sharing every other part of this one.

        Raises:
            ValueError: If `from_` is negative or `size` is not positive.
        """
        if from_ < 0:
            raise ValueError("from_ must be >= 0")
        if size <= 0:
            raise ValueError("size must be positive")
        return replace(self, from_=from_, size=size)

    def to_body(self) -> dict[str, Any]:
        """Render the query as an OpenSearch `_search` request body."""
        return {
            "from": self.from_,
            "size": self.size,
            "track_total_hits": self.track_total_hits,
            "_source": list(self.source_fields),
            "query": {
                "bool": {
                    "must": [deepcopy(dict(clause)) for clause in self.must],
                    "should": [deepcopy(dict(clause)) for clause in self.should],
                    "filter": [deepcopy(dict(clause)) for clause in self.filter],
                }
            },
            "sort": [deepcopy(dict(clause)) for clause in self.sort],
            "highlight": self.highlight.to_dict(),
        }
