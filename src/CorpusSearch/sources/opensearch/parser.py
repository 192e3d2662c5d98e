"""OpenSearch response parser.

Maps a `_search` JSON response into a `SearchPage`.
"""

from __future__ import annotations

from typing import Any, Mapping

from CorpusSearch.core.models import SearchPage, SearchResult
from CorpusSearch.utils.log import log


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_total(total: Any) -> int:
    # Older clusters report a bare integer, newer ones {"value": n, "relation": "eq"}.
    if isinstance(total, Mapping):
        return _as_int(total.get("value")) or 0
    return _as_int(total) or 0


def parse_hit(hit: Mapping[str, Any]) -> SearchResult:
    """Parse one entry of `hits.hits`.

    Args:
        hit: Raw hit with `_source`, optional `highlight` and `_score`.

    Returns:
        Parsed result. A missing or empty `highlight` gives empty highlights.

    Raises:
        ValueError: If the hit has no usable `text_id`.
    """
    source = hit.get("_source") or {}
    text_id = _as_int(source.get("text_id"))
    if text_id is None:
        raise ValueError(f"Search hit without text_id: {hit.get('_id')}")

    highlight = hit.get("highlight") or {}
    highlights = {
        str(name): [str(fragment) for fragment in fragments]
        for name, fragments in highlight.items()
        if isinstance(fragments, list)
    }

    score = hit.get("_score")
    vol = source.get("vol")
    vol_number = _as_int(vol)
    return SearchResult(
        text_id=text_id,
        vol=vol_number if vol_number is not None else vol,
        page_num=_as_int(source.get("page_num")),
        page_id=_as_int(source.get("page_id")),
        uri=str(source.get("uri") or ""),
        highlights=highlights,
        score=float(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else None,
    )


def parse_search_response(payload: Mapping[str, Any]) -> SearchPage:
    """Parse a `_search` response body into a `SearchPage`.

    Args:
        payload: Decoded JSON response.

    Returns:
        Page of results. A payload without `hits` yields an empty page, and
        hits without a usable `text_id` are left out.
    """
    took = _as_int(payload.get("took")) or 0
    hits = payload.get("hits")
    if not isinstance(hits, Mapping) or not isinstance(hits.get("hits"), list):
        log.warning("Invalid OpenSearch response format: missing hits")
        return SearchPage(results=(), total_results=0, took=took)

    results: list[SearchResult] = []
    for hit in hits["hits"]:
        if not isinstance(hit, Mapping):
            log.warning("Skipping non-object hit: %r", hit)
            continue
        try:
            results.append(parse_hit(hit))
        except ValueError as e:
            log.warning("Skipping malformed hit _id=%s: %s", hit.get("_id"), e)
    return SearchPage(results=results, total_results=_parse_total(hits.get("total")), took=took)
